"""
Reader/writer lock for the package catalog.

Many readers or one writer at a time. Waiting writers block new readers so
that a steady stream of lookups cannot starve a reload. The writing thread
may take the lock again for reading or writing.

Usage:
    lock = ReadWriteLock()
    with lock.read_locked():
        ...
    with lock.write_locked():
        ...
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional


class ReadWriteLock:
    """Writer-preferring reader/writer lock."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer: Optional[int] = None
        self._write_depth = 0
        self._waiting_writers = 0
        self._local = threading.local()

    def _read_depth(self) -> int:
        return getattr(self._local, "read_depth", 0)

    def acquire_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._write_depth += 1
                return
            # re-entrant reads must not wait behind writers, or they deadlock
            if self._read_depth() == 0:
                while self._writer is not None or self._waiting_writers:
                    self._cond.wait()
            self._readers += 1
            self._local.read_depth = self._read_depth() + 1

    def release_read(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._write_depth -= 1
                return
            if self._read_depth() == 0:
                raise RuntimeError("Read lock released without being held")
            self._readers -= 1
            self._local.read_depth = self._read_depth() - 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        me = threading.get_ident()
        with self._cond:
            if self._writer == me:
                self._write_depth += 1
                return
            if self._read_depth() > 0:
                raise RuntimeError("Cannot upgrade a read lock to a write lock")
            self._waiting_writers += 1
            try:
                while self._writer is not None or self._readers > 0:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = me
            self._write_depth = 1

    def release_write(self) -> None:
        with self._cond:
            if self._writer != threading.get_ident():
                raise RuntimeError("Write lock released by a thread that does not hold it")
            self._write_depth -= 1
            if self._write_depth == 0:
                self._writer = None
                self._cond.notify_all()

    def is_write_locked(self) -> bool:
        """True if the calling thread holds the write lock."""
        with self._cond:
            return self._writer == threading.get_ident()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
