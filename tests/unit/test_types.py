"""Tests for core type definitions."""

import pytest

from chainplace_core.types import EntityKind, Node, NodeScore, OwnerObject, Workload


class TestWorkload:
    def test_defaults(self):
        w = Workload("api")
        assert w.namespace == "default"
        assert w.key == "default/api"
        assert not w.is_bound
        assert w.entity_kind is EntityKind.WORKLOAD

    def test_bound(self):
        assert Workload("api", node_name="n1").is_bound

    def test_empty_name(self):
        with pytest.raises(ValueError, match="workload name cannot be empty"):
            Workload("")


class TestNode:
    def test_defaults(self):
        node = Node("n1")
        assert node.allocatable_milli_cpu == 0
        assert node.entity_kind is EntityKind.NODE

    def test_empty_name(self):
        with pytest.raises(ValueError, match="node name cannot be empty"):
            Node("")

    def test_negative_capacity(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            Node("n1", allocatable_memory=-1)


class TestOwnerObject:
    def test_kind_mapping(self):
        assert OwnerObject("ReplicaSet", "rs").entity_kind is EntityKind.GROUPING
        assert OwnerObject("Deployment", "d").entity_kind is EntityKind.TEMPLATE


class TestNodeScore:
    def test_immutable(self):
        score = NodeScore("n1", 10)
        with pytest.raises(AttributeError):
            score.score = 20
