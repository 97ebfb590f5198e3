"""Network cost scoring: latency weighted by traffic to every placed peer."""

from ..cluster import CallContext
from ..types import Workload
from .base import ScorePlugin, saturating_int


class NetworkCostScorer(ScorePlugin):
    """Prefers nodes close to the peers a workload exchanges the most traffic with.

    For candidate node ``n`` the raw score is
    ``-sum(int(latency(n, p) * traffic(w, peer)))`` over every workload
    ``peer`` bound to any node ``p``. Unknown latency or traffic counts as 0
    and every term saturates at the int64 bounds.
    """

    name = "NetworkAware"

    def compute(self, ctx: CallContext, workload: Workload, node_name: str) -> int:
        node = self.cluster.get_node(ctx, node_name)
        profile = self.profiles.resolve(ctx, workload)

        score = 0
        for peer_node, peers in self.placed_peers(ctx, workload):
            latency = self.latency(node, peer_node)
            for peer in peers:
                score -= saturating_int(latency * self.profiles.traffic(profile, peer))

        self.logger.info("Raw node score", node=node_name, workload=workload.name, score=score)
        return score
