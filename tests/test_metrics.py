"""Tests for the snapshot data model and its wire format."""

import dataclasses
from datetime import datetime, timezone

import pytest

from kmonitor.metrics import ClusterSnapshot, ContainerUsage, NodeUsage, PodUsage


def _make_snapshot() -> ClusterSnapshot:
    return ClusterSnapshot(
        nodes=(NodeUsage(name="node-1", cpu="250m", memory="1Gi", timestamp="2026-01-01T00:00:00Z", window="10s"),),
        pods=(PodUsage(
            namespace="default",
            name="web-1",
            containers=(ContainerUsage(name="app", cpu="5m", memory="20Mi"),),
            window="15s",
        ),),
        collected_at=datetime(2026, 1, 1, 12, 30, tzinfo=timezone.utc),
    )


def test_to_dict_has_nodes_and_pods():
    data = _make_snapshot().to_dict()

    assert set(data) == {"nodes", "pods", "collectedAt"}
    assert data["nodes"][0]["cpu"] == "250m"
    assert data["nodes"][0]["window"] == "10s"
    assert data["pods"][0]["containers"] == [{"name": "app", "cpu": "5m", "memory": "20Mi"}]
    assert data["collectedAt"] == "2026-01-01T12:30:00+00:00"


def test_quantities_pass_through_unchanged():
    node = NodeUsage(name="n", cpu="1500m", memory="3977652Ki")
    assert node.to_dict()["cpu"] == "1500m"
    assert node.to_dict()["memory"] == "3977652Ki"


def test_from_dict_reads_served_json():
    original = _make_snapshot()
    restored = ClusterSnapshot.from_dict(original.to_dict())
    assert restored == original


def test_from_dict_tolerates_missing_fields():
    snap = ClusterSnapshot.from_dict({"nodes": [{"name": "n1"}], "pods": [{"name": "p1"}]})

    assert snap.nodes[0].cpu == ""
    assert snap.pods[0].namespace == ""
    assert snap.pods[0].containers == ()
    assert snap.collected_at.tzinfo is not None


def test_snapshot_is_frozen():
    snap = _make_snapshot()
    with pytest.raises(dataclasses.FrozenInstanceError):
        snap.nodes = ()
    with pytest.raises(dataclasses.FrozenInstanceError):
        snap.nodes[0].cpu = "0"


def test_default_collected_at_is_utc_now():
    before = datetime.now(timezone.utc)
    snap = ClusterSnapshot()
    assert snap.collected_at >= before
    assert snap.nodes == () and snap.pods == ()
