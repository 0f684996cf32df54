"""
Core metric definitions for kmonitor.

These mirror what metrics-server exposes under metrics.k8s.io/v1beta1.
Quantities stay as the raw Kubernetes strings ("250m", "512Mi") -- we
pass them through and leave unit math to whoever reads the snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple


@dataclass(frozen=True)
class NodeUsage:
    name: str
    cpu: str
    memory: str
    timestamp: Optional[str] = None
    window: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "cpu": self.cpu,
            "memory": self.memory,
            "timestamp": self.timestamp,
            "window": self.window,
        }

    @classmethod
    def from_dict(cls, data: dict) -> NodeUsage:
        return cls(
            name=data.get("name", ""),
            cpu=data.get("cpu", ""),
            memory=data.get("memory", ""),
            timestamp=data.get("timestamp"),
            window=data.get("window"),
        )


@dataclass(frozen=True)
class ContainerUsage:
    name: str
    cpu: str
    memory: str

    def to_dict(self) -> dict:
        return {"name": self.name, "cpu": self.cpu, "memory": self.memory}

    @classmethod
    def from_dict(cls, data: dict) -> ContainerUsage:
        return cls(
            name=data.get("name", ""),
            cpu=data.get("cpu", ""),
            memory=data.get("memory", ""),
        )


@dataclass(frozen=True)
class PodUsage:
    namespace: str
    name: str
    containers: Tuple[ContainerUsage, ...] = ()
    timestamp: Optional[str] = None
    window: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "namespace": self.namespace,
            "name": self.name,
            "containers": [c.to_dict() for c in self.containers],
            "timestamp": self.timestamp,
            "window": self.window,
        }

    @classmethod
    def from_dict(cls, data: dict) -> PodUsage:
        return cls(
            namespace=data.get("namespace", ""),
            name=data.get("name", ""),
            containers=tuple(ContainerUsage.from_dict(c) for c in data.get("containers") or []),
            timestamp=data.get("timestamp"),
            window=data.get("window"),
        )


@dataclass(frozen=True)
class ClusterSnapshot:
    """One complete reading of node and pod usage, taken in a single cycle.

    Frozen with tuple sequences, so a published snapshot can be handed to
    any number of readers without copying.
    """

    nodes: Tuple[NodeUsage, ...] = ()
    pods: Tuple[PodUsage, ...] = ()
    collected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Return the JSON-ready wire format served at /api/metrics."""
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "pods": [p.to_dict() for p in self.pods],
            "collectedAt": self.collected_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> ClusterSnapshot:
        collected_at = data.get("collectedAt")
        return cls(
            nodes=tuple(NodeUsage.from_dict(n) for n in data.get("nodes") or []),
            pods=tuple(PodUsage.from_dict(p) for p in data.get("pods") or []),
            collected_at=(
                datetime.fromisoformat(collected_at) if collected_at
                else datetime.now(timezone.utc)
            ),
        )
