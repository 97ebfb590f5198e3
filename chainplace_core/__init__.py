"""
Chainplace Core - topology- and SLO-aware placement scoring.

Scores candidate nodes for chained (pipeline) workloads by network cost,
SLO risk between adjacent pipeline stages and CPU/memory balance, and gates
workloads until their upstream stages are placed.
"""

from .attributes import AttributeReader, AttributeSpec, MetadataStore
from .cluster import CallContext, ClusterState, InMemoryCluster
from .config import ChainplaceConfig
from .errors import (
    AdmissionError,
    ChainplaceError,
    ClusterReadError,
    OwnerLookupError,
    ReadCancelledError,
    ScoringError,
)
from .types import Node, NodeScore, OwnerObject, OwnerReference, Workload

__all__ = [
    "ChainplaceConfig",
    "AttributeReader",
    "AttributeSpec",
    "MetadataStore",
    "CallContext",
    "ClusterState",
    "InMemoryCluster",
    "Workload",
    "Node",
    "NodeScore",
    "OwnerObject",
    "OwnerReference",
    "ChainplaceError",
    "ClusterReadError",
    "ReadCancelledError",
    "OwnerLookupError",
    "ScoringError",
    "AdmissionError",
]
