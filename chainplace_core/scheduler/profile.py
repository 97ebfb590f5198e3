"""
Workload profiles: where a workload's predicted usage and traffic figures live.

Predicted usage and per-peer traffic are annotated on the workload's owning
template (workload -> ReplicaSet -> Deployment). When that chain cannot be
resolved the workload's own annotations are used instead. Request rates are
always read from the workload itself.
"""

from dataclasses import dataclass
from typing import Optional, Union

from ..attributes import (
    APP,
    CPU_USAGE,
    MEMORY_USAGE,
    OWNER_CHAIN_KEY,
    REQUESTS_PER_SECOND,
    TRAFFIC,
    AttributeReader,
)
from ..cluster import CallContext, ClusterState
from ..errors import OwnerLookupError
from ..types import OwnerObject, Workload
from .topology import PipelineTopology


@dataclass
class WorkloadProfile:
    """A workload together with its resolved template, if any."""

    workload: Workload
    template: Optional[OwnerObject] = None

    @property
    def source(self) -> Union[OwnerObject, Workload]:
        return self.template if self.template is not None else self.workload


class ProfileResolver:
    """Resolves owner chains and reads usage and per-peer figures."""

    def __init__(
        self,
        cluster: ClusterState,
        topology: Optional[PipelineTopology] = None,
    ):
        self.cluster = cluster
        self.topology = topology or PipelineTopology()
        self.reader: AttributeReader = self.topology.reader

    def resolve(self, ctx: CallContext, workload: Workload) -> WorkloadProfile:
        """Resolve the template; a broken owner chain is not an error."""
        try:
            _, template = self.cluster.get_owner_chain(ctx, workload)
        except OwnerLookupError as e:
            self.reader.record_miss(workload, OWNER_CHAIN_KEY, f"{e.hop}: {e.reason}")
            return WorkloadProfile(workload)
        return WorkloadProfile(workload, template)

    def predicted_cpu(self, profile: WorkloadProfile) -> float:
        return self.reader.read(profile.source, CPU_USAGE)

    def predicted_memory(self, profile: WorkloadProfile) -> float:
        return self.reader.read(profile.source, MEMORY_USAGE)

    def traffic(self, profile: WorkloadProfile, peer: Workload) -> float:
        """Traffic volume from the profiled workload to ``peer``'s app."""
        peer_app = self._peer_app(profile.workload, peer)
        if peer_app is None:
            return 0.0
        return self.reader.read(profile.source, TRAFFIC, peer_app=peer_app)

    def requests_per_second(self, workload: Workload, peer: Workload) -> float:
        """Request rate from ``workload`` to ``peer``'s app, read from the workload itself."""
        peer_app = self._peer_app(workload, peer)
        if peer_app is None:
            return 0.0
        return self.reader.read(workload, REQUESTS_PER_SECOND, peer_app=peer_app)

    def _peer_app(self, workload: Workload, peer: Workload) -> Optional[str]:
        if not self.topology.same_group(workload, peer):
            return None
        return self.reader.read(peer, APP)
