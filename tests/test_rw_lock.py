from __future__ import annotations

import threading
import time

import pytest

from util.rw_lock import ReadWriteLock


def test_readers_share_the_lock():
	lock = ReadWriteLock()
	barrier = threading.Barrier(3, timeout=5)
	results = []

	def reader():
		with lock.read_locked():
			# all three readers must be inside at once to pass the barrier
			barrier.wait()
			results.append(True)

	threads = [threading.Thread(target=reader) for _ in range(3)]
	for t in threads:
		t.start()
	for t in threads:
		t.join(timeout=10)
	assert results == [True, True, True]


def test_writer_waits_for_reader():
	lock = ReadWriteLock()
	acquired = threading.Event()

	def writer():
		with lock.write_locked():
			acquired.set()

	lock.acquire_read()
	t = threading.Thread(target=writer)
	t.start()
	assert not acquired.wait(0.2)
	lock.release_read()
	assert acquired.wait(5)
	t.join(timeout=5)


def test_reader_waits_for_writer():
	lock = ReadWriteLock()
	acquired = threading.Event()

	def reader():
		with lock.read_locked():
			acquired.set()

	lock.acquire_write()
	t = threading.Thread(target=reader)
	t.start()
	assert not acquired.wait(0.2)
	lock.release_write()
	assert acquired.wait(5)
	t.join(timeout=5)


def test_waiting_writer_blocks_new_readers():
	lock = ReadWriteLock()
	order = []
	lock.acquire_read()

	def writer():
		with lock.write_locked():
			order.append("writer")

	def late_reader():
		with lock.read_locked():
			order.append("reader")

	w = threading.Thread(target=writer)
	w.start()
	# let the writer register as waiting
	deadline = time.monotonic() + 5
	while lock._writers_waiting == 0 and time.monotonic() < deadline:
		time.sleep(0.01)
	r = threading.Thread(target=late_reader)
	r.start()
	time.sleep(0.1)
	assert order == []

	lock.release_read()
	w.join(timeout=5)
	r.join(timeout=5)
	assert order == ["writer", "reader"]


def test_writers_are_mutually_exclusive():
	lock = ReadWriteLock()
	counter = {"value": 0}

	def bump():
		for _ in range(1000):
			with lock.write_locked():
				current = counter["value"]
				counter["value"] = current + 1

	threads = [threading.Thread(target=bump) for _ in range(8)]
	for t in threads:
		t.start()
	for t in threads:
		t.join(timeout=30)
	assert counter["value"] == 8000


def test_release_without_acquire_raises():
	lock = ReadWriteLock()
	with pytest.raises(RuntimeError):
		lock.release_read()
	with pytest.raises(RuntimeError):
		lock.release_write()
