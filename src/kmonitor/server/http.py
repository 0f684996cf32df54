"""
HTTP server for the latest snapshot.

    GET     /api/metrics   200 + JSON once ready, 503 before that
    OPTIONS /api/metrics   CORS preflight, always 200

Each request runs on its own thread. The handler takes a single read()
from the store and serializes that, so it never straddles a publish.
"""

from __future__ import annotations

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Tuple

from kmonitor.config import DEFAULT_READ_TIMEOUT, METRICS_PATH
from kmonitor.server.store import SnapshotStore

log = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class _MetricsHandler(BaseHTTPRequestHandler):
    server: MetricsServer

    def setup(self):
        self.timeout = self.server.read_timeout
        super().setup()

    def _send(self, status: int, body: bytes = b"", content_type: str = "text/plain; charset=utf-8"):
        self.send_response(status)
        for name, value in CORS_HEADERS.items():
            self.send_header(name, value)
        if body:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body:
            self.wfile.write(body)

    def _path_ok(self) -> bool:
        if self.path.split("?", 1)[0] == METRICS_PATH:
            return True
        self._send(404, b"Not found\n")
        return False

    def do_OPTIONS(self):
        if self._path_ok():
            self._send(200)

    def do_GET(self):
        if not self._path_ok():
            return

        ready, snapshot = self.server.store.read()
        if not ready:
            self._send(503, b"Service not ready\n")
            return

        try:
            body = json.dumps(snapshot.to_dict()).encode()
        except (TypeError, ValueError) as e:
            log.error("Failed to encode snapshot: %s", e)
            self._send(500, f"{e}\n".encode())
            return

        self._send(200, body, content_type="application/json")

    def _method_not_allowed(self):
        if self._path_ok():
            self._send(405, b"Method not allowed\n")

    do_POST = do_PUT = do_DELETE = do_PATCH = _method_not_allowed

    def log_message(self, format, *args):
        log.debug("%s - %s", self.address_string(), format % args)


class MetricsServer(ThreadingHTTPServer):
    """Thread-per-request server that tracks in-flight requests for shutdown."""

    daemon_threads = True

    def __init__(
        self,
        server_address: Tuple[str, int],
        store: SnapshotStore,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ):
        self.store = store
        self.read_timeout = read_timeout
        self._in_flight = 0
        self._idle = threading.Condition()
        super().__init__(server_address, _MetricsHandler)

    @property
    def port(self) -> int:
        return self.server_address[1]

    @property
    def in_flight(self) -> int:
        with self._idle:
            return self._in_flight

    def process_request(self, request, client_address):
        # Counted on the serve thread so shutdown() never returns before the count sees it
        with self._idle:
            self._in_flight += 1
        try:
            super().process_request(request, client_address)
        except BaseException:
            with self._idle:
                self._in_flight -= 1
                if self._in_flight == 0:
                    self._idle.notify_all()
            raise

    def process_request_thread(self, request, client_address):
        try:
            super().process_request_thread(request, client_address)
        finally:
            with self._idle:
                self._in_flight -= 1
                if self._in_flight == 0:
                    self._idle.notify_all()

    def shutdown_gracefully(self, timeout: float) -> bool:
        """Stop accepting, give in-flight requests `timeout` seconds, then close.

        Must not be called from the thread running serve_forever().
        Returns False if the deadline passed and the close was forced.
        """
        self.shutdown()
        with self._idle:
            drained = self._idle.wait_for(lambda: self._in_flight == 0, timeout=timeout)
        if not drained:
            log.warning(
                "Graceful shutdown did not complete in %.1fs (%d requests in flight), forcing close",
                timeout, self.in_flight,
            )
        self.server_close()
        return drained
