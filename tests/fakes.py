"""Shared test doubles."""

import threading
import time
from typing import List

from kmonitor.collector.base import MetricsSource, MetricsSourceError
from kmonitor.metrics import ContainerUsage, NodeUsage, PodUsage


class FakeSource(MetricsSource):
    """Scriptable source. Records every fetch and the timeout it was given."""

    def __init__(self, node_count=3, fail_nodes=False, fail_pods=False, delay=0.0):
        self.node_count = node_count
        self.fail_nodes = fail_nodes
        self.fail_pods = fail_pods
        self.delay = delay
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def list_node_usage(self, timeout: float) -> List[NodeUsage]:
        with self._lock:
            self.calls.append(("nodes", timeout, time.monotonic()))
        if self.delay:
            time.sleep(self.delay)
        if self.fail_nodes:
            raise MetricsSourceError("listing node metrics failed: connection refused")
        return [NodeUsage(name=f"node-{i}", cpu=f"{100 * (i + 1)}m", memory="1Gi") for i in range(self.node_count)]

    def list_pod_usage(self, namespace: str, timeout: float) -> List[PodUsage]:
        with self._lock:
            self.calls.append(("pods", namespace, timeout))
        if self.fail_pods:
            raise MetricsSourceError("listing pod metrics (all namespaces) failed: 503")
        return [
            PodUsage(namespace="default", name="web",
                     containers=(ContainerUsage(name="app", cpu="5m", memory="20Mi"),)),
        ]

    def name(self) -> str:
        return "fake"

    @property
    def fetch_count(self) -> int:
        with self._lock:
            return sum(1 for c in self.calls if c[0] == "nodes")


def wait_for(predicate, timeout=2.0) -> bool:
    """Poll `predicate` until it's true or `timeout` seconds pass."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
