"""
Base metrics source interface.

A source is anything that can list node and pod usage. This keeps the
collector loop and the HTTP layer decoupled from where the numbers
actually come from (metrics-server, the mock cluster, etc).
"""

from abc import ABC, abstractmethod
from typing import List

from kmonitor.metrics import NodeUsage, PodUsage


class MetricsSourceError(Exception):
    """A list call against the metrics source failed or timed out."""


class MetricsSource(ABC):
    """Interface for all metrics sources."""

    @abstractmethod
    def list_node_usage(self, timeout: float) -> List[NodeUsage]:
        """Usage for every node. Must give up after `timeout` seconds."""
        ...

    @abstractmethod
    def list_pod_usage(self, namespace: str, timeout: float) -> List[PodUsage]:
        """Usage for every pod in `namespace`; "" means all namespaces."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...
