bind = "127.0.0.1:8000"
wsgi_app = "run:app"
chdir = "src"

# The session cache lives in process memory and create_app() starts its
# cleanup thread. Each worker process would hold its own cache, so keep one
# worker and use threads for concurrency.
workers = 1
threads = 8
worker_class = "gthread"

timeout = 60
graceful_timeout = 30
keepalive = 5

accesslog = "-"
errorlog = "-"
loglevel = "info"
capture_output = True

# Restarting a worker also empties its session cache; lookups fall back to the database.
max_requests = 1000
max_requests_jitter = 100

limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190
