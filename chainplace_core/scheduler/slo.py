"""SLO-aware network cost scoring restricted to pipeline neighbors."""

from typing import Optional

from ..cluster import CallContext, ClusterState
from ..config import ScoringConfig
from ..types import Workload
from .admission import AdmissionGate, AdmissionResult, QueueingHint
from .base import ScorePlugin, saturating_int
from .topology import PipelineTopology


class SloCostScorer(ScorePlugin):
    """Penalizes latency to adjacent pipeline stages relative to their SLO budgets.

    For candidate node ``n``, every bound peer that neighbors the workload
    contributes, per shared SLO budget ``slo``::

        -int(latency(n, p) * (rps(w, peer) + request_offset) / slo)

    The plugin also owns the admission gate: a workload is only scored once
    its upstream stages are placed.
    """

    name = "NetworkSloAware"

    def __init__(
        self,
        cluster: ClusterState,
        topology: Optional[PipelineTopology] = None,
        config: Optional[ScoringConfig] = None,
        request_offset: Optional[float] = None,
    ):
        super().__init__(cluster, topology, config)
        self.request_offset = (
            self.config.slo_request_offset if request_offset is None else request_offset
        )
        self.gate = AdmissionGate(cluster, self.topology)

    def admission_check(self, ctx: CallContext, workload: Workload) -> AdmissionResult:
        return self.gate.check(ctx, workload)

    def queueing_hint(
        self, pending: Workload, old: Optional[Workload], new: Workload
    ) -> QueueingHint:
        return self.gate.queueing_hint(pending, old, new)

    def compute(self, ctx: CallContext, workload: Workload, node_name: str) -> int:
        node = self.cluster.get_node(ctx, node_name)

        score = 0
        for peer_node, peers in self.placed_peers(ctx, workload):
            latency = self.latency(node, peer_node)
            for peer in peers:
                if not self.topology.are_neighbors(workload, peer):
                    continue

                rps = self.profiles.requests_per_second(workload, peer)
                for slo in self.topology.shared_slos(workload, peer):
                    score -= saturating_int(latency * (rps + self.request_offset) / slo)

        self.logger.info("Raw node score", node=node_name, workload=workload.name, score=score)
        return score
