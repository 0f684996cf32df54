"""
Periodic collection loop.

One daemon thread runs a cycle immediately, then one per interval.
A cycle is fetch nodes -> fetch pods -> bundle -> hand the snapshot to
the registered callback. Any failure aborts the cycle before the
callback runs, so a consumer only ever sees complete snapshots.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from kmonitor.collector.base import MetricsSource, MetricsSourceError
from kmonitor.config import DEFAULT_REQUEST_TIMEOUT
from kmonitor.metrics import ClusterSnapshot

log = logging.getLogger(__name__)

SnapshotCallback = Callable[[ClusterSnapshot], None]


class CollectionHandle:
    """Returned by MetricsCollector.start(). Calling it stops the loop."""

    def __init__(self, thread: threading.Thread, stop_event: threading.Event):
        self._thread = thread
        self._stop_event = stop_event
        self._lock = threading.Lock()

    def __call__(self) -> None:
        self.stop()

    def stop(self) -> None:
        """Signal the loop to exit after its current cycle. Repeat calls are no-ops."""
        with self._lock:
            if self._stop_event.is_set():
                log.debug("Collection already stopped, ignoring stop()")
                return
            self._stop_event.set()
        log.info("Stopping metrics collection")

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the loop thread to exit. Returns True if it did."""
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()


class MetricsCollector:

    def __init__(self, source: MetricsSource, request_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self._source = source
        self._request_timeout = request_timeout
        self._handle: Optional[CollectionHandle] = None

    @property
    def source(self) -> MetricsSource:
        return self._source

    def collect(self) -> ClusterSnapshot:
        """Run one collection cycle and return the snapshot without publishing it."""
        nodes = self._source.list_node_usage(timeout=self._request_timeout)
        pods = self._source.list_pod_usage("", timeout=self._request_timeout)
        return ClusterSnapshot(
            nodes=tuple(nodes),
            pods=tuple(pods),
            collected_at=datetime.now(timezone.utc),
        )

    def collect_and_publish(self, on_snapshot: SnapshotCallback) -> bool:
        """Collect once and pass the result to `on_snapshot`.

        Returns False (without calling `on_snapshot`) if either fetch failed.
        """
        try:
            snapshot = self.collect()
        except MetricsSourceError as e:
            log.warning("Collection failed, keeping previous snapshot: %s", e)
            return False
        except Exception:
            log.exception("Unexpected error during collection")
            return False

        log.debug("Collected %d nodes, %d pods", len(snapshot.nodes), len(snapshot.pods))
        try:
            on_snapshot(snapshot)
        except Exception:
            log.exception("Snapshot callback raised")
            return False
        return True

    def start(self, interval_seconds: float, on_snapshot: SnapshotCallback) -> CollectionHandle:
        """Begin periodic collection in a background thread.

        Raises RuntimeError if a previous loop is still running, even if stopping.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if self._handle is not None and self._handle.running:
            raise RuntimeError("collection already running")

        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._run,
            args=(interval_seconds, on_snapshot, stop_event),
            daemon=True,
            name="MetricsCollector",
        )
        self._handle = CollectionHandle(thread, stop_event)
        log.info("Starting collection: source=%s, interval=%.1fs", self._source.name(), interval_seconds)
        thread.start()
        return self._handle

    def _run(self, interval: float, on_snapshot: SnapshotCallback, stop_event: threading.Event) -> None:
        next_tick = time.monotonic()
        while not stop_event.is_set():
            self.collect_and_publish(on_snapshot)

            next_tick += interval
            now = time.monotonic()
            if next_tick < now:
                # Overran the interval: drop the missed ticks instead of bursting
                log.debug("Collection cycle overran interval by %.2fs", now - next_tick)
                next_tick = now
            stop_event.wait(timeout=next_tick - now)
        log.debug("Collection loop exited")
