"""
Scheduling cycle driver.

Emulates the host scheduler's use of the plugins for one workload: admission
check first, then for each plugin a parallel fan-out of ``score`` over the
candidate nodes, and once every raw score is in, a single ``normalize`` pass.
A node whose score failed is left out of that plugin's list and reported.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..cluster import CallContext, ClusterState
from ..config import ChainplaceConfig, get_config
from ..errors import ScoringError
from ..logging import correlation_scope, get_logger
from ..types import NodeScore, Workload
from ..utils.timers import time_operation
from .admission import AdmissionGate, AdmissionPhase, AdmissionResult
from .balance import ResourceBalanceScorer
from .base import ScorePlugin
from .network import NetworkCostScorer
from .slo import SloCostScorer
from .topology import PipelineTopology

logger = get_logger(__name__)


@dataclass
class PluginResult:
    """Raw and normalized scores of one plugin for one cycle."""

    plugin: str
    raw: List[NodeScore] = field(default_factory=list)
    normalized: List[NodeScore] = field(default_factory=list)
    failures: Dict[str, ScoringError] = field(default_factory=dict)


@dataclass
class CycleResult:
    """Everything one scheduling cycle produced for a workload."""

    workload: str
    correlation_id: str
    admission: AdmissionResult
    plugins: Dict[str, PluginResult] = field(default_factory=dict)

    @property
    def scored(self) -> bool:
        return bool(self.plugins)

    @property
    def failed_nodes(self) -> List[str]:
        failed = set()
        for result in self.plugins.values():
            failed.update(result.failures)
        return sorted(failed)

    def weighted_totals(self, weights: Dict[str, float]) -> Dict[str, float]:
        """Combine normalized plugin outputs the way the host weighs plugins.

        Nodes that failed in any plugin are excluded from ranking.
        """
        failed = set(self.failed_nodes)
        totals: Dict[str, float] = {}
        for name, result in self.plugins.items():
            weight = weights.get(name, 1.0)
            for node_score in result.normalized:
                if node_score.name in failed:
                    continue
                totals[node_score.name] = totals.get(node_score.name, 0.0) + weight * node_score.score
        return totals

    def best_node(self, weights: Dict[str, float]) -> Optional[str]:
        totals = self.weighted_totals(weights)
        if not totals:
            return None
        return min(totals, key=lambda name: (-totals[name], name))


class SchedulingFramework:
    """Runs the admission gate and the score plugins for one workload at a time."""

    def __init__(
        self,
        cluster: ClusterState,
        plugins: Optional[List[ScorePlugin]] = None,
        config: Optional[ChainplaceConfig] = None,
    ):
        self.cluster = cluster
        self.config = config or get_config()

        if plugins is None:
            topology = PipelineTopology()
            scoring = self.config.scoring
            plugins = [
                NetworkCostScorer(cluster, topology, scoring),
                SloCostScorer(cluster, topology, scoring),
                ResourceBalanceScorer(cluster, topology, scoring),
            ]
        self.plugins = plugins

        gate_owner = next((p for p in plugins if isinstance(p, SloCostScorer)), None)
        self.gate = gate_owner.gate if gate_owner else AdmissionGate(cluster)

    @property
    def weights(self) -> Dict[str, float]:
        scoring = self.config.scoring
        return {
            NetworkCostScorer.name: scoring.network_weight,
            SloCostScorer.name: scoring.slo_weight,
            ResourceBalanceScorer.name: scoring.balance_weight,
        }

    def run_cycle(
        self,
        workload: Workload,
        candidate_nodes: Optional[List[str]] = None,
        ctx: Optional[CallContext] = None,
    ) -> CycleResult:
        """Run one scheduling cycle.

        Raises:
            AdmissionError: if the admission gate could not read the cluster.
            ClusterReadError: if candidate nodes had to be listed and could not be.
        """
        ctx = ctx or CallContext.with_timeout(self.config.execution.read_timeout_seconds)

        with correlation_scope() as correlation_id, time_operation(
            "scheduling_cycle", {"workload": workload.key}
        ):
            admission = self.gate.check(ctx, workload)
            result = CycleResult(workload.key, correlation_id, admission)
            if admission.phase is not AdmissionPhase.READY:
                return result

            if candidate_nodes is None:
                candidate_nodes = [node.name for node in self.cluster.list_nodes(ctx)]

            for plugin in self.plugins:
                result.plugins[plugin.name] = self._run_plugin(
                    ctx, plugin, workload, candidate_nodes, correlation_id
                )

            logger.info(
                "Scheduling cycle complete",
                workload=workload.name,
                candidates=len(candidate_nodes),
                failed_nodes=result.failed_nodes,
            )
            return result

    def _run_plugin(
        self,
        ctx: CallContext,
        plugin: ScorePlugin,
        workload: Workload,
        candidate_nodes: List[str],
        correlation_id: str,
    ) -> PluginResult:
        result = PluginResult(plugin.name)
        if not candidate_nodes:
            return result

        raw: Dict[str, int] = {}
        max_workers = min(self.config.execution.max_parallelism, len(candidate_nodes))
        with ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=f"chainplace-{plugin.name}"
        ) as pool:
            futures = {
                pool.submit(_score_in_scope, correlation_id, plugin, ctx, workload, name): name
                for name in candidate_nodes
            }
            for future in as_completed(futures):
                name = futures[future]
                try:
                    raw[name] = future.result()
                except ScoringError as e:
                    result.failures[name] = e

        # Every raw score is collected before any is rescaled
        result.raw = [NodeScore(name, raw[name]) for name in candidate_nodes if name in raw]
        result.normalized = plugin.normalize(workload, result.raw)
        return result


def _score_in_scope(
    correlation_id: str, plugin: ScorePlugin, ctx: CallContext, workload: Workload, node_name: str
) -> int:
    with correlation_scope(correlation_id):
        return plugin.score(ctx, workload, node_name)
