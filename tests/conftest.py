"""Shared test fixtures for chainplace-core."""

import copy

import pytest
import yaml

from chainplace_core.cluster import CallContext, InMemoryCluster
from chainplace_core.config import get_config, reset_config
from chainplace_core.types import Node, OwnerReference, Workload

# Three nodes, one "shop" pipeline (frontend -> api -> db) on the "checkout"
# dimension and an unrelated "etl" workload.
SNAPSHOT = {
    "nodes": [
        {
            "name": "n1",
            "allocatable": {"cpu": 4000, "memory": 8000},
            "annotations": {
                "cpu-usage": "1000",
                "memory-usage": "2000",
                "network-latency.n2": "10",
                "network-latency.n3": "20",
            },
        },
        {
            "name": "n2",
            "allocatable": {"cpu": 4000, "memory": 8000},
            "annotations": {
                "cpu-usage": "1000",
                "memory-usage": "2000",
                "network-latency.n1": "10",
                "network-latency.n3": "5",
            },
        },
        {
            "name": "n3",
            "allocatable": {"cpu": 4000, "memory": 8000},
            "annotations": {
                "cpu-usage": "3000",
                "memory-usage": "2000",
                "network-latency.n1": "20",
                "network-latency.n2": "5",
            },
        },
    ],
    "workloads": [
        {
            "name": "frontend",
            "labels": {"app": "frontend", "app-group": "shop", "chain-checkout": 0},
            "nodeName": "n2",
        },
        {
            "name": "api",
            "labels": {"app": "api", "app-group": "shop", "chain-checkout": 1},
            "annotations": {"rps.frontend": 50, "rps.db": 30, "chain-checkout-slo": 20},
            "ownerReferences": [{"kind": "ReplicaSet", "name": "api-7d9f"}],
        },
        {
            "name": "db",
            "labels": {"app": "db", "app-group": "shop", "chain-checkout": 2},
            "annotations": {"chain-checkout-slo": 40},
        },
        {
            "name": "batch",
            "labels": {"app": "batch", "app-group": "etl"},
            "nodeName": "n1",
        },
    ],
    "owners": [
        {
            "kind": "ReplicaSet",
            "name": "api-7d9f",
            "ownerReferences": [{"kind": "Deployment", "name": "api"}],
        },
        {
            "kind": "Deployment",
            "name": "api",
            "annotations": {
                "cpu-usage": "1000",
                "memory-usage": "2000",
                "traffic.frontend": "5",
                "traffic.db": "3",
                "traffic.batch": "100",
            },
        },
    ],
}


@pytest.fixture(autouse=True)
def _reset_global_config(monkeypatch):
    """Reset global config and drop CHAINPLACE_* overrides for all tests."""
    for name in ("CHAINPLACE_MIN_NODE_SCORE", "CHAINPLACE_MAX_NODE_SCORE",
                 "CHAINPLACE_SLO_REQUEST_OFFSET", "MAX_PARALLELISM"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config():
    """Return the default ChainplaceConfig."""
    return get_config()


@pytest.fixture
def ctx():
    """A context without deadline."""
    return CallContext()


@pytest.fixture
def snapshot_data():
    return copy.deepcopy(SNAPSHOT)


@pytest.fixture
def pipeline_cluster(snapshot_data):
    return InMemoryCluster.from_dict(snapshot_data)


@pytest.fixture
def snapshot_file(tmp_path, snapshot_data):
    path = tmp_path / "cluster.yaml"
    path.write_text(yaml.safe_dump(snapshot_data))
    return path


@pytest.fixture
def make_workload():
    """Factory for pipeline workloads."""

    def _make(name, group=None, stages=None, node=None, app=None, annotations=None, owner=None):
        labels = {}
        if group is not None:
            labels["app-group"] = group
        if app is not None:
            labels["app"] = app
        for key, value in (stages or {}).items():
            labels[f"chain-{key}"] = str(value)
        return Workload(
            name=name,
            labels=labels,
            annotations={k: str(v) for k, v in (annotations or {}).items()},
            owner_references=[OwnerReference("ReplicaSet", owner)] if owner else [],
            node_name=node,
        )

    return _make


@pytest.fixture
def two_node_cluster():
    """N1 and N2, 10 latency units apart."""
    return InMemoryCluster(
        nodes=[
            Node("N1", 4000, 8000, annotations={"network-latency.N2": "10"}),
            Node("N2", 4000, 8000, annotations={"network-latency.N1": "10"}),
        ]
    )
