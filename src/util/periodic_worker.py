import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)

CACHE_CLEANUP_INTERVAL = 10 * 60
TOKEN_PURGE_INTERVAL = 60 * 60


class PeriodicWorker:
	"""
	Daemon thread that calls `fn` every `interval_seconds` until stop() is called.
	The first call happens one interval after start(). Errors from `fn` are logged
	and the loop keeps going.
	"""
	def __init__(self, name: str, interval_seconds: float, fn: Callable[[], object]):
		if interval_seconds <= 0:
			raise ValueError("interval_seconds must be positive.")
		self.name = name
		self.interval_seconds = float(interval_seconds)
		self._fn = fn
		self._stop_event = threading.Event()
		self._thread: threading.Thread | None = None
		self._start_lock = threading.Lock()

	@property
	def is_running(self) -> bool:
		return self._thread is not None and self._thread.is_alive()

	def start(self) -> "PeriodicWorker":
		with self._start_lock:
			if self.is_running:
				return self
			self._stop_event.clear()
			self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
			self._thread.start()
		logger.info("Worker '%s' started (every %ss).", self.name, self.interval_seconds)
		return self

	def stop(self, timeout: float | None = 5.0) -> None:
		self._stop_event.set()
		thread = self._thread
		if thread is not None and thread is not threading.current_thread():
			thread.join(timeout)
		logger.info("Worker '%s' stopped.", self.name)

	def run_once(self):
		return self._fn()

	def _run(self) -> None:
		while not self._stop_event.wait(self.interval_seconds):
			try:
				self._fn()
			except Exception:
				logger.exception("Worker '%s' task failed.", self.name)


def start_cache_cleanup_thread(cache, interval_seconds: float = CACHE_CLEANUP_INTERVAL) -> PeriodicWorker:
	return PeriodicWorker("session-cache-cleanup", interval_seconds, cache.cleanup).start()


def start_token_purge_thread(store, interval_seconds: float = TOKEN_PURGE_INTERVAL) -> PeriodicWorker:
	return PeriodicWorker("expired-token-purge", interval_seconds, store.expire_tokens).start()
