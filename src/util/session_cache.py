import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from util.rw_lock import ReadWriteLock

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 100
DEFAULT_TTL_SECONDS = 30 * 60


@dataclass
class CacheEntry:
	token: str
	value: Any
	expires_at: float

	def is_expired(self, now: float) -> bool:
		return now >= self.expires_at


class SessionCache:
	"""
	In-memory map of auth token -> cached user, bounded in size, with a fixed TTL per entry.

	- get() runs under the shared lock; set/delete/clear/cleanup take the exclusive lock.
	- An expired entry is never returned by get(), swept or not.
	- set() on a full cache drops every expired entry first, then, if still full,
	  one live entry. Which live entry goes is not part of the contract.
	"""
	def __init__(
		self,
		max_size: int = DEFAULT_MAX_SIZE,
		ttl_seconds: float = DEFAULT_TTL_SECONDS,
		*,
		now: Callable[[], float] | None = None,
	):
		if not isinstance(max_size, int) or max_size <= 0:
			raise ValueError("max_size must be a positive integer.")
		if ttl_seconds <= 0:
			raise ValueError("ttl_seconds must be positive.")
		self._max_size = max_size
		self._ttl_seconds = float(ttl_seconds)
		self._now = now or time.monotonic
		self._lock = ReadWriteLock()
		self._entries: dict[str, CacheEntry] = {}

	@property
	def max_size(self) -> int:
		return self._max_size

	@property
	def ttl_seconds(self) -> float:
		return self._ttl_seconds

	def __len__(self) -> int:
		with self._lock.read_locked():
			return len(self._entries)

	def get(self, token: str) -> tuple[Any, bool]:
		now = self._now()
		with self._lock.read_locked():
			entry = self._entries.get(token)
			if entry is None or entry.is_expired(now):
				return None, False
			return entry.value, True

	def set(self, token: str, value: Any) -> None:
		with self._lock.write_locked():
			now = self._now()
			if token not in self._entries and len(self._entries) >= self._max_size:
				self._reclaim(now)
			self._entries[token] = CacheEntry(
				token=token,
				value=value,
				expires_at=now + self._ttl_seconds,
			)

	def delete(self, token: str) -> None:
		with self._lock.write_locked():
			self._entries.pop(token, None)

	def clear(self) -> None:
		with self._lock.write_locked():
			self._entries.clear()

	def cleanup(self) -> int:
		with self._lock.write_locked():
			removed = self._drop_expired(self._now())
		if removed:
			logger.debug("Session cache cleanup removed %d expired entries.", removed)
		return removed

	def stats(self) -> dict:
		now = self._now()
		with self._lock.read_locked():
			expired = sum(1 for e in self._entries.values() if e.is_expired(now))
			size = len(self._entries)
		return {
			"size": size,
			"expired": expired,
			"max_size": self._max_size,
			"ttl_seconds": self._ttl_seconds,
		}

	# Callers hold the write lock.
	def _drop_expired(self, now: float) -> int:
		expired = [k for k, e in self._entries.items() if e.is_expired(now)]
		for k in expired:
			del self._entries[k]
		return len(expired)

	def _reclaim(self, now: float) -> None:
		self._drop_expired(now)
		if len(self._entries) >= self._max_size:
			evicted = next(iter(self._entries))
			del self._entries[evicted]
			logger.debug("Session cache full (%d); evicted one live entry.", self._max_size)
