"""
Process lifecycle for `kmonitor serve`: wire the collector to the store,
serve HTTP, and shut both down in order on SIGINT/SIGTERM.
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import Optional

from kmonitor.collector.base import MetricsSource
from kmonitor.collector.periodic import MetricsCollector
from kmonitor.config import Settings
from kmonitor.server.http import MetricsServer
from kmonitor.server.store import SnapshotStore

log = logging.getLogger(__name__)

# How long to wait for the collector thread after stopping it
COLLECTOR_JOIN_TIMEOUT = 5.0


class MonitorService:
    """Owns the store, collector, and HTTP server for one process."""

    def __init__(self, source: MetricsSource, settings: Settings):
        self.settings = settings
        self.store = SnapshotStore()
        self.collector = MetricsCollector(source, request_timeout=settings.request_timeout)
        # Binds the listen socket; raises OSError if the address is taken
        self.server = MetricsServer(
            (settings.host, settings.port),
            self.store,
            read_timeout=settings.read_timeout,
        )
        self._server_thread: Optional[threading.Thread] = None
        self._stop_collection = None
        self._shutdown = threading.Event()
        self._server_error: Optional[BaseException] = None

    def start(self) -> None:
        self._stop_collection = self.collector.start(self.settings.interval_seconds, self.store.publish)
        self._server_thread = threading.Thread(
            target=self._serve,
            daemon=True,
            name="MetricsServer",
        )
        self._server_thread.start()
        log.info("Serving metrics on http://%s:%d/api/metrics", self.settings.host, self.server.port)

    def _serve(self) -> None:
        try:
            self.server.serve_forever()
        except Exception as e:
            log.exception("HTTP server failed")
            self._server_error = e
            self._shutdown.set()

    def request_shutdown(self, reason: str = "requested") -> None:
        log.info("Start shutdown... %s", reason)
        self._shutdown.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown is requested. Returns False on timeout."""
        return self._shutdown.wait(timeout=timeout)

    def stop(self) -> bool:
        """Stop collection, then drain and close the HTTP server.

        Returns True if every in-flight request finished within the grace period.
        """
        if self._stop_collection is not None:
            self._stop_collection()

        drained = True
        if self._server_thread is not None and self._server_thread.is_alive():
            drained = self.server.shutdown_gracefully(self.settings.shutdown_timeout)
        else:
            self.server.server_close()

        if self._stop_collection is not None and not self._stop_collection.join(COLLECTOR_JOIN_TIMEOUT):
            log.warning("Collector still finishing its last cycle after %.1fs", COLLECTOR_JOIN_TIMEOUT)
        log.info("Shutdown complete")
        return drained

    @property
    def server_error(self) -> Optional[BaseException]:
        return self._server_error


def run_server(source: MetricsSource, settings: Settings) -> None:
    """Run until SIGINT/SIGTERM. Raises the serve-loop error if serving failed."""
    service = MonitorService(source, settings)

    def _on_signal(signum, frame):
        service.request_shutdown(f"signal: {signal.Signals(signum).name}")

    previous = {sig: signal.signal(sig, _on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        service.start()
        service.wait()
    finally:
        service.stop()
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if service.server_error is not None:
        raise service.server_error
