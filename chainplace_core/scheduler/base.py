"""
Score plugin base class.

A score plugin produces one raw integer per (workload, candidate node) and
rescales a cycle's raw scores into the configured node score range. Raw
scores of different plugins are never combined here.
"""

import math
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Tuple

from ..attributes import NETWORK_LATENCY
from ..cluster import CallContext, ClusterState
from ..config import ScoringConfig, get_config
from ..errors import ClusterReadError, ScoringError
from ..logging import get_logger
from ..types import Node, NodeScore, Workload
from .normalize import normalize_scores
from .topology import PipelineTopology
from .profile import ProfileResolver

# Raw score terms saturate at the bounds of a signed 64-bit integer
MAX_SCORE_TERM = 2 ** 63 - 1


def saturating_int(value: float) -> int:
    """Truncate ``value`` toward zero, clamped to ``[-MAX_SCORE_TERM, MAX_SCORE_TERM]``.

    Huge but finite annotations can overflow a float product to infinity.
    Such a term saturates instead of failing the node; NaN counts as the
    worst possible term.
    """
    if math.isnan(value):
        return -MAX_SCORE_TERM
    if value >= MAX_SCORE_TERM:
        return MAX_SCORE_TERM
    if value <= -MAX_SCORE_TERM:
        return -MAX_SCORE_TERM
    return int(value)


class ScorePlugin(ABC):
    """Abstract base class for node scoring plugins."""

    name: str = "ScorePlugin"

    def __init__(
        self,
        cluster: ClusterState,
        topology: Optional[PipelineTopology] = None,
        config: Optional[ScoringConfig] = None,
    ):
        self.cluster = cluster
        self.topology = topology or PipelineTopology()
        self.reader = self.topology.reader
        self.profiles = ProfileResolver(cluster, self.topology)
        self.config = config or get_config().scoring
        self.logger = get_logger(f"chainplace_core.scheduler.plugins.{self.name}")

    def score(self, ctx: CallContext, workload: Workload, node_name: str) -> int:
        """Raw score of ``node_name`` for ``workload``; higher is better.

        Raises:
            ScoringError: if a cluster read failed or the context was
                cancelled. A partial score is never returned.
        """
        self.logger.info("Scoring node", node=node_name, workload=workload.name)
        try:
            raw = self.compute(ctx, workload, node_name)
        except ClusterReadError as e:
            self.logger.warning(
                "Scoring failed", node=node_name, workload=workload.name, error=str(e)
            )
            raise ScoringError(
                self.name, workload.key, node_name, e.reason, operation=e.operation
            ) from e
        return raw

    @abstractmethod
    def compute(self, ctx: CallContext, workload: Workload, node_name: str) -> int:
        """Compute the raw score; cluster failures propagate as ``ClusterReadError``."""

    def normalize(self, workload: Workload, scores: List[NodeScore]) -> List[NodeScore]:
        """Rescale one cycle's raw scores into the configured range."""
        normalized = normalize_scores(
            scores, self.config.min_node_score, self.config.max_node_score
        )
        for original, rescaled in zip(scores, normalized):
            self.logger.info(
                "Normalized node score",
                node=original.name,
                workload=workload.name,
                raw=original.score,
                normalized=rescaled.score,
            )
        return normalized

    def latency(self, node: Node, peer_node: Node) -> float:
        return self.reader.read(node, NETWORK_LATENCY, peer_node=peer_node.name)

    def placed_peers(
        self, ctx: CallContext, workload: Workload
    ) -> Iterator[Tuple[Node, List[Workload]]]:
        """Yield every cluster node with the workloads of the same namespace bound to it."""
        for cluster_node in self.cluster.list_nodes(ctx):
            peers = self.cluster.list_workloads_on_node(ctx, cluster_node.name, workload.namespace)
            yield cluster_node, peers
