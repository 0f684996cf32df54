"""
Client for a running kmonitor server. Reads /api/metrics and maps the
JSON back into a ClusterSnapshot. Used by `kmonitor top --url`.
"""

from __future__ import annotations

from typing import Optional

import httpx

from kmonitor.config import METRICS_PATH
from kmonitor.metrics import ClusterSnapshot


class SnapshotClient:

    def __init__(self, base_url: str, timeout_seconds: float = 5.0):
        self._metrics_url = base_url.rstrip("/")
        if not self._metrics_url.endswith(METRICS_PATH):
            self._metrics_url += METRICS_PATH

        self._client = httpx.Client(timeout=timeout_seconds)

    def fetch(self) -> Optional[ClusterSnapshot]:
        """Return the served snapshot, or None while the server isn't ready yet."""
        response = self._client.get(self._metrics_url)
        if response.status_code == 503:
            return None
        response.raise_for_status()
        return ClusterSnapshot.from_dict(response.json())

    def name(self) -> str:
        return f"kmonitor ({self._metrics_url})"

    def close(self):
        self._client.close()
