"""Resource balance scoring between CPU and memory pressure."""

from ..cluster import CallContext
from ..attributes import CPU_USAGE, MEMORY_USAGE
from ..types import Workload
from .base import ScorePlugin, saturating_int


class ResourceBalanceScorer(ScorePlugin):
    """Prefers nodes where placing the workload keeps CPU and memory pressure even.

    With ``cpu = -(predicted_cpu + node_cpu) * 100 / allocatable_cpu`` and the
    analogous ``mem``, the raw score is
    ``int((1 - |cpu - mem| / 2) * max_node_score)``. Predicted usage comes
    from the workload's owning template, node usage from node annotations.
    """

    name = "LoadAwareResourcesBalancedAllocation"

    def compute(self, ctx: CallContext, workload: Workload, node_name: str) -> int:
        node = self.cluster.get_node(ctx, node_name)
        profile = self.profiles.resolve(ctx, workload)

        cpu_ratio = _usage_ratio(
            self.profiles.predicted_cpu(profile) + self.reader.read(node, CPU_USAGE),
            node.allocatable_milli_cpu,
        )
        memory_ratio = _usage_ratio(
            self.profiles.predicted_memory(profile) + self.reader.read(node, MEMORY_USAGE),
            node.allocatable_memory,
        )
        if not node.allocatable_milli_cpu or not node.allocatable_memory:
            self.logger.warning(
                "Node reports no allocatable capacity, treating pressure as zero",
                node=node_name,
            )

        spread = abs(cpu_ratio - memory_ratio) / 2
        score = saturating_int((1 - spread) * self.config.max_node_score)

        self.logger.info(
            "Raw node score",
            node=node_name,
            workload=workload.name,
            cpu_ratio=cpu_ratio,
            memory_ratio=memory_ratio,
            score=score,
        )
        return score


def _usage_ratio(usage: float, allocatable: int) -> float:
    if allocatable <= 0:
        return 0.0
    return -usage * 100 / allocatable
