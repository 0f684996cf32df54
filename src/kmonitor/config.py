"""Defaults and runtime settings for kmonitor."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_INTERVAL_SECONDS = 30.0
DEFAULT_REQUEST_TIMEOUT = 10.0      # per metrics-server list call
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8081
DEFAULT_SHUTDOWN_TIMEOUT = 30.0     # grace period for in-flight requests
DEFAULT_READ_TIMEOUT = 10.0         # per-connection socket timeout
METRICS_PATH = "/api/metrics"

ENV_PREFIX = "KMONITOR"


@dataclass(frozen=True)
class Settings:
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT
    read_timeout: float = DEFAULT_READ_TIMEOUT
