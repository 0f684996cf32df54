"""
Source that reads from the mock cluster generator.
Used for local development on machines without a cluster.
"""

from typing import List

from kmonitor.collector.base import MetricsSource
from kmonitor.metrics import NodeUsage, PodUsage
from kmonitor.mock.generator import MockCluster


class MockMetricsSource(MetricsSource):
    """Wraps the mock generator as a standard source."""

    def __init__(self, seed: int = 42, node_count: int = 3):
        self._cluster = MockCluster(seed=seed, node_count=node_count)

    def list_node_usage(self, timeout: float) -> List[NodeUsage]:
        return self._cluster.nodes()

    def list_pod_usage(self, namespace: str, timeout: float) -> List[PodUsage]:
        return self._cluster.pods(namespace)

    def name(self) -> str:
        return f"Mock cluster ({self._cluster.node_count} nodes)"
