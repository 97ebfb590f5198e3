"""
Pipeline Topology Resolver

Derives pipeline membership from workload labels. A workload belongs to a
pipeline group through its ``app-group`` label and sits at a position on
every ``chain-<dimension>`` label it carries. Two workloads of the same
group are neighbors on a dimension when their indices differ by exactly one.
"""

from typing import Dict, List, Optional

from ..attributes import APP_GROUP, STAGE_INDEX, STAGE_PREFIX, STAGE_SLO, AttributeReader
from ..types import Workload


class PipelineTopology:
    """Resolves groups, stage positions, neighbors and shared SLO budgets."""

    def __init__(self, reader: Optional[AttributeReader] = None):
        self.reader = reader or AttributeReader()

    def resolve_group(self, workload: Workload) -> Optional[str]:
        return self.reader.read(workload, APP_GROUP)

    def stage_keys(self, workload: Workload) -> List[str]:
        """Stage keys the workload carries, whether or not their value parses."""
        return self.reader.stage_keys(workload)

    def stage_index(self, workload: Workload, stage_key: str) -> Optional[int]:
        """Index on ``stage_key``; ``None`` when the workload does not participate."""
        return self.reader.read(workload, STAGE_INDEX, dimension=stage_key[len(STAGE_PREFIX):])

    def stage_positions(self, workload: Workload) -> Dict[str, int]:
        """Every dimension the workload participates in, mapped to its index."""
        positions = {}
        for key in self.stage_keys(workload):
            index = self.stage_index(workload, key)
            if index is not None:
                positions[key] = index
        return positions

    def same_group(self, a: Workload, b: Workload) -> bool:
        group = self.resolve_group(a)
        peer_group = self.resolve_group(b)
        return group is not None and peer_group is not None and group == peer_group

    def neighbor_keys(self, a: Workload, b: Workload) -> List[str]:
        """Stage keys, in sorted order, on which ``a`` and ``b`` are adjacent."""
        if not self.same_group(a, b):
            return []

        peer_positions = self.stage_positions(b)
        return [
            key for key, index in self.stage_positions(a).items()
            if key in peer_positions and abs(index - peer_positions[key]) == 1
        ]

    def are_neighbors(self, a: Workload, b: Workload) -> bool:
        if not self.same_group(a, b):
            return False

        peer_positions = self.stage_positions(b)
        for key, index in self.stage_positions(a).items():
            if key in peer_positions and abs(index - peer_positions[key]) == 1:
                return True
        return False

    def shared_slos(self, a: Workload, b: Workload) -> List[float]:
        """SLO budgets of ``a`` for every stage key on which it neighbors ``b``.

        A group mismatch or missing group yields an empty list. A neighbor key
        whose budget is missing or malformed is skipped while the other keys
        still contribute.
        """
        slos = []
        for key in self.neighbor_keys(a, b):
            slo, found = self.reader.lookup(a, STAGE_SLO, stage_key=key)
            if found:
                slos.append(slo)
        return slos
