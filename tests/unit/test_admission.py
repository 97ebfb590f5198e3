"""Tests for the admission gate of chained workloads."""

import pytest

from chainplace_core.cluster import CallContext, InMemoryCluster
from chainplace_core.errors import AdmissionError, ClusterReadError
from chainplace_core.scheduler import AdmissionGate, AdmissionPhase, QueueingHint
from chainplace_core.types import Node


class FailingListCluster(InMemoryCluster):
    def list_workloads(self, ctx, namespace, selector):
        raise ClusterReadError("list_workloads", "connection refused")


@pytest.fixture
def cluster():
    return InMemoryCluster(nodes=[Node("n1"), Node("n2")])


@pytest.fixture
def gate(cluster):
    return AdmissionGate(cluster)


class TestAdmissionCheck:
    def test_no_stage_keys_is_ready(self, gate, ctx, make_workload):
        result = gate.check(ctx, make_workload("w", group="g"))
        assert result.phase is AdmissionPhase.READY
        assert result.ready
        assert not result.requeue

    def test_first_stage_is_ready(self, gate, ctx, make_workload):
        assert gate.is_ready(ctx, make_workload("w", group="g", stages={"pipe": 0}))

    def test_missing_predecessor_is_pending(self, cluster, gate, ctx, make_workload):
        cluster.add_workload(make_workload("w0", group="g", stages={"pipe": 0}, node="n1"))
        w2 = make_workload("w2", group="g", stages={"pipe": 2})

        result = gate.check(ctx, w2)
        assert result.phase is AdmissionPhase.PENDING
        assert result.requeue
        assert result.blocking_keys == ["chain-pipe"]

    def test_bound_predecessor_is_ready(self, cluster, gate, ctx, make_workload):
        cluster.add_workload(make_workload("w0", group="g", stages={"pipe": 0}, node="n1"))
        w1 = make_workload("w1", group="g", stages={"pipe": 1})
        assert gate.check(ctx, w1).phase is AdmissionPhase.READY

    def test_unbound_predecessor_is_pending(self, cluster, gate, ctx, make_workload):
        cluster.add_workload(make_workload("w0", group="g", stages={"pipe": 0}))
        w1 = make_workload("w1", group="g", stages={"pipe": 1})
        assert gate.check(ctx, w1).phase is AdmissionPhase.PENDING

    def test_every_predecessor_replica_must_be_bound(self, cluster, gate, ctx, make_workload):
        cluster.add_workload(make_workload("w0a", group="g", stages={"pipe": 0}, node="n1"))
        cluster.add_workload(make_workload("w0b", group="g", stages={"pipe": 0}))
        w1 = make_workload("w1", group="g", stages={"pipe": 1})
        assert not gate.is_ready(ctx, w1)

    def test_predecessor_of_other_group_does_not_count(self, cluster, gate, ctx, make_workload):
        cluster.add_workload(make_workload("w0", group="other", stages={"pipe": 0}, node="n1"))
        w1 = make_workload("w1", group="g", stages={"pipe": 1})
        assert not gate.is_ready(ctx, w1)

    def test_every_dimension_checked(self, cluster, gate, ctx, make_workload):
        cluster.add_workload(make_workload("x0", group="g", stages={"x": 0}, node="n1"))
        w = make_workload("w", group="g", stages={"x": 1, "y": 3})

        result = gate.check(ctx, w)
        assert result.phase is AdmissionPhase.PENDING
        assert result.blocking_keys == ["chain-y"]

    def test_malformed_index_does_not_participate(self, gate, ctx, make_workload):
        w = make_workload("w", group="g", stages={"pipe": "second"})
        assert gate.check(ctx, w).phase is AdmissionPhase.READY

    def test_unknown_group_is_pending(self, gate, ctx, make_workload):
        result = gate.check(ctx, make_workload("w", stages={"pipe": 1}))
        assert result.phase is AdmissionPhase.PENDING
        assert result.reason == "pipeline group unknown"

    def test_bound_workload_is_placed(self, gate, ctx, make_workload):
        w = make_workload("w", group="g", stages={"pipe": 3}, node="n1")
        result = gate.check(ctx, w)
        assert result.phase is AdmissionPhase.PLACED
        assert result.ready

    def test_read_failure_raises(self, ctx, make_workload):
        gate = AdmissionGate(FailingListCluster())
        w = make_workload("w", group="g", stages={"pipe": 1})

        with pytest.raises(AdmissionError) as exc_info:
            gate.check(ctx, w)
        assert exc_info.value.workload == "default/w"
        assert exc_info.value.details["stage_key"] == "chain-pipe"

    def test_cancelled_context_raises(self, gate, make_workload):
        ctx = CallContext()
        ctx.cancel()
        with pytest.raises(AdmissionError, match="context cancelled"):
            gate.check(ctx, make_workload("w", group="g", stages={"pipe": 1}))

    def test_admission_follows_binding(self, cluster, gate, ctx, make_workload):
        w0 = make_workload("w0", group="g", stages={"pipe": 0})
        cluster.add_workload(w0)
        w1 = make_workload("w1", group="g", stages={"pipe": 1})
        assert not gate.is_ready(ctx, w1)

        cluster.bind(w0, "n2")
        assert gate.is_ready(ctx, w1)


class TestQueueingHint:
    def test_same_group_update_requeues(self, gate, make_workload):
        pending = make_workload("w1", group="g", stages={"pipe": 1})
        changed = make_workload("w0", group="g", stages={"pipe": 0}, node="n1")
        assert gate.queueing_hint(pending, None, changed) is QueueingHint.QUEUE

    def test_other_group_update_skips(self, gate, make_workload):
        pending = make_workload("w1", group="g", stages={"pipe": 1})
        changed = make_workload("x", group="h", node="n1")
        assert gate.queueing_hint(pending, changed, changed) is QueueingHint.SKIP

    def test_unknown_group_requeues(self, gate, make_workload):
        pending = make_workload("w1", group="g", stages={"pipe": 1})
        changed = make_workload("x", node="n1")
        assert gate.queueing_hint(pending, None, changed) is QueueingHint.QUEUE
