"""End-to-end tests for the serve lifecycle: collector -> store -> HTTP -> shutdown."""

import os
import signal
import threading

import httpx
import pytest

from kmonitor.config import Settings
from kmonitor.service import MonitorService, run_server
from tests.fakes import FakeSource, wait_for


def _settings(**overrides) -> Settings:
    defaults = dict(host="127.0.0.1", port=0, interval_seconds=0.05, shutdown_timeout=2.0)
    defaults.update(overrides)
    return Settings(**defaults)


def test_service_serves_collected_snapshot():
    source = FakeSource(node_count=3)
    service = MonitorService(source, _settings())
    service.start()
    try:
        assert wait_for(lambda: service.store.ready)
        resp = httpx.get(f"http://127.0.0.1:{service.server.port}/api/metrics")
        assert resp.status_code == 200
        assert len(resp.json()["nodes"]) == 3
    finally:
        service.request_shutdown()
        assert service.stop() is True


def test_service_stays_available_when_collection_starts_failing():
    source = FakeSource()
    service = MonitorService(source, _settings())
    service.start()
    try:
        assert wait_for(lambda: service.store.ready)
        source.fail_nodes = True
        fetches = source.fetch_count
        assert wait_for(lambda: source.fetch_count >= fetches + 2)

        resp = httpx.get(f"http://127.0.0.1:{service.server.port}/api/metrics")
        assert resp.status_code == 200
    finally:
        service.stop()


def test_stop_halts_collection():
    source = FakeSource()
    service = MonitorService(source, _settings())
    service.start()
    assert wait_for(lambda: source.fetch_count >= 2)

    service.stop()
    fetches = source.fetch_count
    threading.Event().wait(0.2)
    assert source.fetch_count == fetches


def test_wait_returns_after_shutdown_request():
    service = MonitorService(FakeSource(), _settings())
    service.start()
    try:
        assert service.wait(timeout=0.05) is False
        threading.Timer(0.05, service.request_shutdown).start()
        assert service.wait(timeout=2.0) is True
    finally:
        service.stop()


def test_stop_without_start_closes_socket():
    service = MonitorService(FakeSource(), _settings())
    assert service.stop() is True


def test_run_server_exits_on_sigterm():
    source = FakeSource()
    previous = signal.getsignal(signal.SIGTERM)

    def _send_sigterm():
        wait_for(lambda: source.fetch_count >= 1)
        os.kill(os.getpid(), signal.SIGTERM)

    threading.Thread(target=_send_sigterm, daemon=True).start()
    run_server(source, _settings(interval_seconds=60))

    assert source.fetch_count >= 1
    assert signal.getsignal(signal.SIGTERM) is previous


def test_run_server_stops_service_when_wait_raises(monkeypatch):
    services = []
    real_init = MonitorService.__init__

    def _init(self, *args, **kwargs):
        real_init(self, *args, **kwargs)
        services.append(self)

    def _wait(self, timeout=None):
        raise RuntimeError("wait blew up")

    monkeypatch.setattr(MonitorService, "__init__", _init)
    monkeypatch.setattr(MonitorService, "wait", _wait)
    source = FakeSource()
    previous = signal.getsignal(signal.SIGTERM)

    with pytest.raises(RuntimeError, match="wait blew up"):
        run_server(source, _settings(interval_seconds=0.05))

    service = services[0]
    assert service._stop_collection.stopped
    assert service._stop_collection.join(timeout=2.0)
    assert service.server.socket.fileno() == -1
    assert signal.getsignal(signal.SIGTERM) is previous

    fetches = source.fetch_count
    threading.Event().wait(0.2)
    assert source.fetch_count == fetches
