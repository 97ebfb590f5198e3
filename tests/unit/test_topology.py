"""Tests for pipeline topology resolution."""

import pytest

from chainplace_core.scheduler import PipelineTopology


@pytest.fixture
def topology():
    return PipelineTopology()


class TestStagePositions:
    def test_positions_skip_malformed_indices(self, topology, make_workload):
        w = make_workload("w", group="g", stages={"a": 1, "b": "x", "c": -2})
        assert topology.stage_keys(w) == ["chain-a", "chain-b", "chain-c"]
        assert topology.stage_positions(w) == {"chain-a": 1}

    def test_stage_index_missing(self, topology, make_workload):
        w = make_workload("w", group="g")
        assert topology.stage_index(w, "chain-a") is None

    def test_resolve_group(self, topology, make_workload):
        assert topology.resolve_group(make_workload("w", group="shop")) == "shop"
        assert topology.resolve_group(make_workload("w")) is None


class TestNeighbors:
    def test_adjacent_indices_are_neighbors(self, topology, make_workload):
        a = make_workload("a", group="g", stages={"pipe": 1})
        b = make_workload("b", group="g", stages={"pipe": 2})
        assert topology.are_neighbors(a, b)
        assert topology.are_neighbors(b, a)

    def test_distance_two_is_not_neighbor(self, topology, make_workload):
        a = make_workload("a", group="g", stages={"pipe": 0})
        b = make_workload("b", group="g", stages={"pipe": 2})
        assert not topology.are_neighbors(a, b)

    def test_same_index_is_not_neighbor(self, topology, make_workload):
        a = make_workload("a", group="g", stages={"pipe": 1})
        b = make_workload("b", group="g", stages={"pipe": 1})
        assert not topology.are_neighbors(a, b)

    def test_cross_group_never_neighbors(self, topology, make_workload):
        a = make_workload("a", group="g1", stages={"pipe": 1})
        b = make_workload("b", group="g2", stages={"pipe": 2})
        assert not topology.are_neighbors(a, b)
        assert topology.neighbor_keys(a, b) == []

    def test_missing_group_never_neighbors(self, topology, make_workload):
        a = make_workload("a", stages={"pipe": 1})
        b = make_workload("b", stages={"pipe": 2})
        assert not topology.same_group(a, b)
        assert not topology.are_neighbors(a, b)

    def test_any_shared_dimension_suffices(self, topology, make_workload):
        a = make_workload("a", group="g", stages={"x": 0, "y": 5})
        b = make_workload("b", group="g", stages={"x": 3, "y": 4})
        assert topology.are_neighbors(a, b)
        assert topology.neighbor_keys(a, b) == ["chain-y"]

    def test_dimension_only_on_one_side(self, topology, make_workload):
        a = make_workload("a", group="g", stages={"x": 1})
        b = make_workload("b", group="g", stages={"y": 2})
        assert not topology.are_neighbors(a, b)


class TestSharedSlos:
    def test_slo_for_each_neighbor_key(self, topology, make_workload):
        a = make_workload(
            "a", group="g", stages={"x": 1, "y": 1},
            annotations={"chain-x-slo": 20, "chain-y-slo": "7.5"},
        )
        b = make_workload("b", group="g", stages={"x": 0, "y": 2})
        assert topology.shared_slos(a, b) == [20.0, 7.5]

    def test_missing_slo_dropped_others_kept(self, topology, make_workload):
        a = make_workload(
            "a", group="g", stages={"x": 1, "y": 1}, annotations={"chain-y-slo": 10}
        )
        b = make_workload("b", group="g", stages={"x": 0, "y": 0})
        assert topology.shared_slos(a, b) == [10.0]

    @pytest.mark.parametrize("raw", ["0", "-5", "fast", "inf"])
    def test_unusable_slo_dropped(self, topology, make_workload, raw):
        a = make_workload("a", group="g", stages={"x": 1}, annotations={"chain-x-slo": raw})
        b = make_workload("b", group="g", stages={"x": 0})
        assert topology.shared_slos(a, b) == []

    def test_group_mismatch_yields_empty(self, topology, make_workload):
        a = make_workload("a", group="g", stages={"x": 1}, annotations={"chain-x-slo": 10})
        b = make_workload("b", group="h", stages={"x": 0})
        assert topology.shared_slos(a, b) == []

    def test_slo_is_read_from_first_workload(self, topology, make_workload):
        a = make_workload("a", group="g", stages={"x": 1})
        b = make_workload("b", group="g", stages={"x": 0}, annotations={"chain-x-slo": 10})
        assert topology.shared_slos(a, b) == []
        assert topology.shared_slos(b, a) == [10.0]
