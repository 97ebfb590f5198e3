"""
Core Type Definitions for Chainplace

This module defines the read-only cluster objects the scoring engine works
on. They mirror the parts of Kubernetes objects the engine reads: identity,
labels, annotations, owner references and, for nodes, allocatable capacity.
The engine never mutates any of them.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional

WorkloadKey = str


class EntityKind(Enum):
    """Kinds of cluster objects that carry metadata."""

    WORKLOAD = auto()
    NODE = auto()
    GROUPING = auto()  # ReplicaSet-like owner of a workload
    TEMPLATE = auto()  # Deployment-like owner of a grouping object


@dataclass(frozen=True)
class OwnerReference:
    """Reference from an object to the object that owns it."""

    kind: str
    name: str


@dataclass
class OwnerObject:
    """A grouping (replica-set-like) or template (deployment-like) object."""

    kind: str
    name: str
    namespace: str = "default"
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    owner_references: List[OwnerReference] = field(default_factory=list)

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind.GROUPING if self.kind == "ReplicaSet" else EntityKind.TEMPLATE


@dataclass
class Workload:
    """A unit of placement (a pod)."""

    name: str
    namespace: str = "default"
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    owner_references: List[OwnerReference] = field(default_factory=list)
    node_name: Optional[str] = None  # Set once the workload is bound

    def __post_init__(self):
        if not self.name:
            raise ValueError("workload name cannot be empty")

    @property
    def key(self) -> WorkloadKey:
        return f"{self.namespace}/{self.name}"

    @property
    def is_bound(self) -> bool:
        return bool(self.node_name)

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind.WORKLOAD


@dataclass
class Node:
    """A placement target.

    CPU capacity is expressed in millicores and memory in bytes, the units
    the ``cpu-usage`` and ``memory-usage`` annotations are expected to use.
    """

    name: str
    allocatable_milli_cpu: int = 0
    allocatable_memory: int = 0
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not self.name:
            raise ValueError("node name cannot be empty")
        if self.allocatable_milli_cpu < 0 or self.allocatable_memory < 0:
            raise ValueError("allocatable capacity cannot be negative")

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind.NODE


@dataclass(frozen=True)
class NodeScore:
    """Score of one candidate node within a scoring cycle."""

    name: str
    score: int
