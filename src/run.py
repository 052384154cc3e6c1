# src/run.py

import atexit

from app import create_app, shutdown_app

app = create_app()
atexit.register(shutdown_app, app)

if __name__ == "__main__":
	app.run(port=5001, debug=True, use_reloader=False)
