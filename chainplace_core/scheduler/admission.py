"""
Admission Gate for Chained Workloads

A workload whose pipeline has upstream stages may only be scored once every
upstream stage is placed. The gate runs before any node is scored. A blocked
workload is never rejected: it stays pending and is re-queued whenever a
related workload changes, since predecessors get placed asynchronously.

Phases:
    PENDING -> READY     all predecessors exist and are bound
    PENDING -> PENDING   a predecessor is missing or unbound (re-check later)
    READY   -> PLACED    the host bound the workload
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

from ..cluster import CallContext, ClusterState
from ..errors import AdmissionError, ClusterReadError
from ..logging import get_logger
from ..types import Workload
from .topology import PipelineTopology

logger = get_logger(__name__)


class AdmissionPhase(Enum):
    """Admission state of a workload."""

    PENDING = auto()
    READY = auto()
    PLACED = auto()


class QueueingHint(Enum):
    """Whether a cluster change warrants re-evaluating a pending workload."""

    QUEUE = auto()
    SKIP = auto()


@dataclass
class AdmissionResult:
    """Outcome of one admission check."""

    workload: str
    phase: AdmissionPhase
    reason: str
    blocking_keys: List[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.phase is not AdmissionPhase.PENDING

    @property
    def requeue(self) -> bool:
        return self.phase is AdmissionPhase.PENDING


class AdmissionGate:
    """Blocks workloads whose upstream pipeline stages are not placed yet."""

    def __init__(self, cluster: ClusterState, topology: Optional[PipelineTopology] = None):
        self.cluster = cluster
        self.topology = topology or PipelineTopology()

    def is_ready(self, ctx: CallContext, workload: Workload) -> bool:
        return self.check(ctx, workload).ready

    def check(self, ctx: CallContext, workload: Workload) -> AdmissionResult:
        """Evaluate the workload's predecessors.

        Raises:
            AdmissionError: if the cluster could not be read; an unreadable
                cluster is not the same as an unplaced predecessor.
        """
        if workload.is_bound:
            return AdmissionResult(workload.key, AdmissionPhase.PLACED, "already bound")

        upstream = {
            key: index
            for key, index in self.topology.stage_positions(workload).items()
            if index > 0
        }
        if not upstream:
            return self._ready(workload, "no upstream stages")

        group = self.topology.resolve_group(workload)
        if group is None:
            return self._pending(workload, "pipeline group unknown", sorted(upstream))

        blocking = []
        for key, index in upstream.items():
            try:
                predecessors = self.cluster.list_workloads(
                    ctx, workload.namespace, {"app-group": group, key: str(index - 1)}
                )
            except ClusterReadError as e:
                raise AdmissionError(workload.key, str(e), stage_key=key) from e

            if not predecessors or not all(p.is_bound for p in predecessors):
                blocking.append(key)

        if blocking:
            return self._pending(workload, "upstream stages not placed", blocking)
        return self._ready(workload, "upstream stages placed")

    def queueing_hint(
        self, pending: Workload, old: Optional[Workload], new: Workload
    ) -> QueueingHint:
        """Decide whether an update of ``new`` should re-queue ``pending``."""
        group = self.topology.resolve_group(pending)
        changed_group = self.topology.resolve_group(new)
        if group is None or changed_group is None or group == changed_group:
            logger.info("Re-queueing workload", workload=pending.name, changed=new.name)
            return QueueingHint.QUEUE
        return QueueingHint.SKIP

    def _ready(self, workload: Workload, reason: str) -> AdmissionResult:
        logger.info("Workload ready to be scheduled", workload=workload.name, reason=reason)
        return AdmissionResult(workload.key, AdmissionPhase.READY, reason)

    def _pending(self, workload: Workload, reason: str, blocking: List[str]) -> AdmissionResult:
        logger.info(
            "Workload not ready to be scheduled",
            workload=workload.name,
            reason=reason,
            blocking_keys=blocking,
        )
        return AdmissionResult(workload.key, AdmissionPhase.PENDING, reason, blocking)
