"""
Scheduler Components for Chainplace

This package contains the pipeline-aware admission gate, the three node
scoring plugins, score normalization and the cycle driver that ties them
together the way the host scheduler does.
"""

from .admission import AdmissionGate, AdmissionPhase, AdmissionResult, QueueingHint
from .balance import ResourceBalanceScorer
from .base import ScorePlugin
from .framework import CycleResult, PluginResult, SchedulingFramework
from .network import NetworkCostScorer
from .normalize import normalize_scores
from .profile import ProfileResolver, WorkloadProfile
from .slo import SloCostScorer
from .topology import PipelineTopology

__all__ = [
    "AdmissionGate",
    "AdmissionPhase",
    "AdmissionResult",
    "QueueingHint",
    "PipelineTopology",
    "ProfileResolver",
    "WorkloadProfile",
    "ScorePlugin",
    "NetworkCostScorer",
    "SloCostScorer",
    "ResourceBalanceScorer",
    "normalize_scores",
    "SchedulingFramework",
    "CycleResult",
    "PluginResult",
]
