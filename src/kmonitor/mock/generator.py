"""
Mock cluster usage generator.

Produces fake but plausible node and pod metrics so we can develop and
test without a cluster. Numbers are loosely based on a small 3-node
cluster with 4-core / 16Gi workers under moderate load.
"""

import math
import random
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from kmonitor.metrics import ContainerUsage, NodeUsage, PodUsage

# namespace -> (pod name prefix, container names)
DEFAULT_WORKLOADS: Dict[str, List[Tuple[str, Tuple[str, ...]]]] = {
    "kube-system": [
        ("coredns", ("coredns",)),
        ("metrics-server", ("metrics-server",)),
    ],
    "default": [
        ("web", ("nginx", "app")),
        ("worker", ("worker",)),
    ],
    "monitoring": [
        ("prometheus", ("prometheus", "config-reloader")),
    ],
}


class MockCluster:

    def __init__(
        self,
        seed: int = 42,
        node_count: int = 3,
        replicas: int = 2,
        workloads: Optional[Dict[str, List[Tuple[str, Tuple[str, ...]]]]] = None,
    ):
        self._rng = random.Random(seed)
        self._tick = 0
        self.node_count = node_count
        self.replicas = replicas
        self.workloads = workloads if workloads is not None else DEFAULT_WORKLOADS
        self.node_cores = 4
        self.node_memory_mi = 16 * 1024
        # Stable pod suffixes, like a ReplicaSet hash
        self._suffixes = {
            (ns, prefix, i): "%05x" % self._rng.randrange(16 ** 5)
            for ns, items in self.workloads.items()
            for prefix, _ in items
            for i in range(replicas)
        }

    def _load(self) -> float:
        # Sinusoidal base load with occasional random spikes
        base = 0.45 + 0.25 * math.sin(self._tick * 0.05)
        spike = self._rng.random() * 0.3 if self._rng.random() > 0.9 else 0.0
        return max(0.05, min(0.98, base + spike))

    def nodes(self) -> List[NodeUsage]:
        """Generate one reading for every node, advancing the clock."""
        self._tick += 1
        load = self._load()
        now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

        nodes = []
        for i in range(self.node_count):
            cpu_frac = max(0.01, min(1.0, load + self._rng.gauss(0, 0.05)))
            mem_frac = max(0.05, min(0.95, 0.3 + load * 0.4 + self._rng.gauss(0, 0.02)))
            nodes.append(NodeUsage(
                name=f"node-{i + 1}",
                cpu=f"{int(cpu_frac * self.node_cores * 1000)}m",
                memory=f"{int(mem_frac * self.node_memory_mi)}Mi",
                timestamp=now,
                window="10s",
            ))
        return nodes

    def pods(self, namespace: str = "") -> List[PodUsage]:
        """Generate one reading for every pod; "" means all namespaces."""
        load = self._load()
        now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

        pods = []
        for ns, items in self.workloads.items():
            if namespace and ns != namespace:
                continue
            for prefix, container_names in items:
                for i in range(self.replicas):
                    containers = tuple(
                        ContainerUsage(
                            name=c,
                            cpu=f"{max(1, int(load * 200 + self._rng.gauss(0, 20)))}m",
                            memory=f"{max(4, int(64 + load * 192 + self._rng.gauss(0, 16)))}Mi",
                        )
                        for c in container_names
                    )
                    pods.append(PodUsage(
                        namespace=ns,
                        name=f"{prefix}-{self._suffixes[(ns, prefix, i)]}",
                        containers=containers,
                        timestamp=now,
                        window="15s",
                    ))
        return pods
