"""
Cluster State Collaborators

The scoring engine never owns cluster state; it reads it through a
``ClusterState`` implementation injected by the host. Every read takes a
``CallContext`` carrying cancellation and a deadline, and every read checks
it before touching the backing store.

``InMemoryCluster`` is a point-in-time snapshot used for offline evaluation,
what-if runs and tests. ``chainplace_core.kube.KubernetesCluster`` provides
the same contract against a live API server.
"""

import json
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from .errors import ClusterReadError, OwnerLookupError, ReadCancelledError
from .logging import get_logger
from .types import Node, OwnerObject, OwnerReference, Workload

logger = get_logger(__name__)

GROUPING_KIND = "ReplicaSet"
TEMPLATE_KIND = "Deployment"


class CallContext:
    """Cancellation and deadline signal threaded through every cluster read."""

    def __init__(self, deadline: Optional[float] = None):
        self.deadline = deadline  # time.monotonic() based
        self._cancelled = threading.Event()

    @classmethod
    def with_timeout(cls, seconds: float) -> "CallContext":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self._expired()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, ``None`` without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self, operation: str):
        """Raise ``ReadCancelledError`` if the caller gave up on this call."""
        if self._cancelled.is_set():
            raise ReadCancelledError(operation)
        if self._expired():
            raise ReadCancelledError(operation, "deadline exceeded")

    def _expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline


class ClusterState(ABC):
    """Read-only view of nodes, workloads and workload owners."""

    @abstractmethod
    def list_nodes(self, ctx: CallContext) -> List[Node]:
        """List every node of the cluster."""

    @abstractmethod
    def get_node(self, ctx: CallContext, name: str) -> Node:
        """Get one node; raises ``ClusterReadError`` if it cannot be read."""

    @abstractmethod
    def list_workloads_on_node(
        self, ctx: CallContext, node_name: str, namespace: str
    ) -> List[Workload]:
        """List workloads of ``namespace`` bound to ``node_name``."""

    @abstractmethod
    def list_workloads(
        self, ctx: CallContext, namespace: str, selector: Dict[str, str]
    ) -> List[Workload]:
        """List workloads of ``namespace`` whose labels contain ``selector``."""

    @abstractmethod
    def get_owner_chain(
        self, ctx: CallContext, workload: Workload
    ) -> Tuple[OwnerObject, OwnerObject]:
        """Return ``(grouping, template)``; raises ``OwnerLookupError`` per failed hop."""


class InMemoryCluster(ClusterState):
    """Snapshot-backed cluster state."""

    def __init__(
        self,
        nodes: Iterable[Node] = (),
        workloads: Iterable[Workload] = (),
        owners: Iterable[OwnerObject] = (),
    ):
        self._lock = threading.RLock()
        self._nodes: Dict[str, Node] = {}
        self._workloads: Dict[str, Workload] = {}
        self._owners: Dict[Tuple[str, str, str], OwnerObject] = {}

        for node in nodes:
            self.add_node(node)
        for workload in workloads:
            self.add_workload(workload)
        for owner in owners:
            self.add_owner(owner)

    def add_node(self, node: Node):
        with self._lock:
            self._nodes[node.name] = node

    def add_workload(self, workload: Workload):
        with self._lock:
            self._workloads[workload.key] = workload

    def add_owner(self, owner: OwnerObject):
        with self._lock:
            self._owners[(owner.kind, owner.namespace, owner.name)] = owner

    def bind(self, workload: Workload, node_name: str):
        """Record ``workload`` as placed on ``node_name``."""
        with self._lock:
            if node_name not in self._nodes:
                raise ClusterReadError("bind", "unknown node", resource=node_name)
            workload.node_name = node_name
            self._workloads[workload.key] = workload

    def find_workload(self, name: str, namespace: str = "default") -> Optional[Workload]:
        with self._lock:
            return self._workloads.get(f"{namespace}/{name}")

    def list_nodes(self, ctx: CallContext) -> List[Node]:
        ctx.check("list_nodes")
        with self._lock:
            return [self._nodes[name] for name in sorted(self._nodes)]

    def get_node(self, ctx: CallContext, name: str) -> Node:
        ctx.check("get_node")
        with self._lock:
            node = self._nodes.get(name)
        if node is None:
            raise ClusterReadError("get_node", "node not found", resource=name)
        return node

    def list_workloads_on_node(
        self, ctx: CallContext, node_name: str, namespace: str
    ) -> List[Workload]:
        ctx.check("list_workloads_on_node")
        with self._lock:
            return [
                w for w in self._workloads.values()
                if w.namespace == namespace and w.node_name == node_name
            ]

    def list_workloads(
        self, ctx: CallContext, namespace: str, selector: Dict[str, str]
    ) -> List[Workload]:
        ctx.check("list_workloads")
        with self._lock:
            return [
                w for w in self._workloads.values()
                if w.namespace == namespace
                and all(w.labels.get(k) == v for k, v in selector.items())
            ]

    def get_owner_chain(
        self, ctx: CallContext, workload: Workload
    ) -> Tuple[OwnerObject, OwnerObject]:
        ctx.check("get_owner_chain")
        refs = workload.owner_references
        if not refs or refs[0].kind != GROUPING_KIND:
            raise OwnerLookupError(workload.key, "workload", f"no owner {GROUPING_KIND}")

        with self._lock:
            grouping = self._owners.get((GROUPING_KIND, workload.namespace, refs[0].name))
        if grouping is None:
            raise OwnerLookupError(workload.key, "grouping", f"{refs[0].name} not found")

        if not grouping.owner_references:
            raise OwnerLookupError(workload.key, "grouping", f"no owner for {grouping.name}")

        template_name = grouping.owner_references[0].name
        with self._lock:
            template = self._owners.get((TEMPLATE_KIND, grouping.namespace, template_name))
        if template is None:
            raise OwnerLookupError(workload.key, "template", f"{template_name} not found")

        return grouping, template

    # ── Snapshot loading ──────────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InMemoryCluster":
        """Build a snapshot from the document layout used by snapshot files."""
        nodes = [_node_from_dict(item) for item in data.get("nodes") or []]
        workloads = [_workload_from_dict(item) for item in data.get("workloads") or []]
        owners = [_owner_from_dict(item) for item in data.get("owners") or []]

        cluster = cls(nodes=nodes, workloads=workloads, owners=owners)
        logger.info(
            "Loaded cluster snapshot",
            nodes=len(nodes),
            workloads=len(workloads),
            owners=len(owners),
        )
        return cluster

    @classmethod
    def from_file(cls, path) -> "InMemoryCluster":
        """Load a YAML or JSON snapshot file."""
        path = Path(path)
        with open(path, "r") as f:
            try:
                if path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Snapshot {path} is not valid YAML: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Snapshot {path} must contain a mapping")
        return cls.from_dict(data)


def _string_map(values: Optional[Dict[str, Any]]) -> Dict[str, str]:
    return {str(k): str(v) for k, v in (values or {}).items()}


def _owner_refs(items: Optional[List[Dict[str, Any]]]) -> List[OwnerReference]:
    return [OwnerReference(kind=item["kind"], name=item["name"]) for item in items or []]


def _node_from_dict(item: Dict[str, Any]) -> Node:
    allocatable = item.get("allocatable") or {}
    return Node(
        name=item["name"],
        allocatable_milli_cpu=int(allocatable.get("cpu", 0)),
        allocatable_memory=int(allocatable.get("memory", 0)),
        labels=_string_map(item.get("labels")),
        annotations=_string_map(item.get("annotations")),
    )


def _workload_from_dict(item: Dict[str, Any]) -> Workload:
    return Workload(
        name=item["name"],
        namespace=item.get("namespace", "default"),
        labels=_string_map(item.get("labels")),
        annotations=_string_map(item.get("annotations")),
        owner_references=_owner_refs(item.get("ownerReferences")),
        node_name=item.get("nodeName") or None,
    )


def _owner_from_dict(item: Dict[str, Any]) -> OwnerObject:
    return OwnerObject(
        kind=item["kind"],
        name=item["name"],
        namespace=item.get("namespace", "default"),
        labels=_string_map(item.get("labels")),
        annotations=_string_map(item.get("annotations")),
        owner_references=_owner_refs(item.get("ownerReferences")),
    )
