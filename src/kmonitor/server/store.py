"""
Holds the latest published snapshot for the HTTP handlers.

Readers and the collector's publish race by design; a single
reader/writer lock guards the (ready, snapshot) pair so a reader sees
either the old pair or the new one, never a mix.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from kmonitor.metrics import ClusterSnapshot

log = logging.getLogger(__name__)


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class SnapshotStore:

    def __init__(self):
        self._lock = ReadWriteLock()
        self._snapshot: Optional[ClusterSnapshot] = None
        self._ready = False

    def publish(self, snapshot: ClusterSnapshot) -> None:
        """Replace the held snapshot. Flips the store to ready for good."""
        with self._lock.write_locked():
            first = not self._ready
            self._snapshot = snapshot
            self._ready = True
        if first:
            log.info("First snapshot published, now serving metrics")

    def read(self) -> Tuple[bool, Optional[ClusterSnapshot]]:
        with self._lock.read_locked():
            return self._ready, self._snapshot

    @property
    def ready(self) -> bool:
        with self._lock.read_locked():
            return self._ready
