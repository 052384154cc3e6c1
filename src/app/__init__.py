# __init__.py
import logging

import flask
import psycopg2

from app.api_common import extract_auth_token, json_error
from app.api_context import ApiContext
from app.api_handlers import register_all
from sql.psql_client import PSQLClient
from sql.psql_interface import PSQLInterface
from util.config_reader import AppConfig, load_config
from util.periodic_worker import start_cache_cleanup_thread, start_token_purge_thread
from util.session_cache import SessionCache

logger = logging.getLogger(__name__)

CORS_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
CORS_ALLOW_HEADERS = "Content-Type, Authorization"


class LowercasePathMiddleware:
	"""WSGI wrapper: routes are matched case-insensitively."""
	def __init__(self, wsgi_app):
		self.wsgi_app = wsgi_app

	def __call__(self, environ, start_response):
		environ["PATH_INFO"] = (environ.get("PATH_INFO") or "").lower()
		return self.wsgi_app(environ, start_response)


def build_store(config: AppConfig) -> PSQLInterface | None:
	try:
		client = PSQLClient(
			minconn=config.db_minconn,
			maxconn=config.db_maxconn,
			**config.db_kwargs(),
		)
	except psycopg2.Error:
		logger.exception("Could not connect to database '%s'; auth routes will fail.", config.database)
		return None

	store = PSQLInterface(
		client,
		token_ttl_days=config.token_ttl_days,
		token_length=config.token_length,
		bcrypt_rounds=config.bcrypt_rounds,
	)
	store.verify_tables()
	return store


def create_app(
	config: AppConfig | None = None,
	*,
	store: PSQLInterface | None = None,
	cache: SessionCache | None = None,
) -> flask.Flask:
	config = config or load_config()

	logging.basicConfig(
		level=getattr(logging, str(config.log_level).upper(), logging.INFO),
		format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
	)

	# One cache per process, shared by every request thread and the cleanup worker.
	if cache is None:
		cache = SessionCache(config.cache_max_size, config.cache_ttl_seconds)
	if store is None:
		store = build_store(config)

	ctx = ApiContext(store=store, cache=cache, config=config)

	app = flask.Flask(__name__)
	app.wsgi_app = LowercasePathMiddleware(app.wsgi_app)
	app.extensions["api_context"] = ctx

	api = flask.Blueprint("api", __name__)
	register_all(api, ctx)
	app.register_blueprint(api)

	@app.before_request
	def load_auth_token():
		"""
		Preflight requests are answered here; otherwise stash the auth token on flask.g.
		"""
		if flask.request.method == "OPTIONS":
			return flask.make_response("", 200)
		flask.g.auth_token = extract_auth_token(config.auth_cookie_name)

	@app.after_request
	def add_cors_headers(response):
		response.headers["Access-Control-Allow-Origin"] = config.cors_allow_origin
		response.headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
		response.headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
		return response

	@app.errorhandler(psycopg2.Error)
	def handle_database_error(exc):
		logger.exception("Database error: %s", exc)
		return json_error("Database error", 500)

	@app.errorhandler(404)
	def handle_not_found(_exc):
		return json_error("Not found", 404)

	@app.errorhandler(405)
	def handle_method_not_allowed(_exc):
		return json_error("Method not allowed", 405)

	workers = []
	if config.start_workers:
		logger.debug("Starting session cache cleanup thread")
		workers.append(start_cache_cleanup_thread(cache, config.cache_cleanup_interval_seconds))
		if store is not None:
			logger.debug("Starting expired token purge thread")
			workers.append(start_token_purge_thread(store, config.token_purge_interval_seconds))
	app.extensions["background_workers"] = workers

	return app


def stop_background_workers(app: flask.Flask) -> None:
	for worker in app.extensions.get("background_workers", []):
		worker.stop()


def shutdown_app(app: flask.Flask) -> None:
	"""Stop the background workers, then close the connection pool."""
	stop_background_workers(app)
	ctx = app.extensions.get("api_context")
	if ctx is not None and ctx.store is not None:
		ctx.store.close()
		logger.info("Database connection pool closed.")
