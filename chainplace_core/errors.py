"""
Error Definitions for Chainplace

This module defines the exception classes used by the placement scoring
engine. Errors come in two tiers:

* metadata-level misses (``OwnerLookupError``) are caught inside the engine
  and degrade to documented defaults;
* infrastructure-level failures (``ClusterReadError``, ``ReadCancelledError``)
  are fatal to a single scoring call and surface to the caller, wrapped in
  ``ScoringError`` or ``AdmissionError`` with the failing identity attached.
"""

from typing import Any, Dict, Optional


class ChainplaceError(Exception):
    """Base exception class for all Chainplace errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ClusterReadError(ChainplaceError):
    """Raised when a read against the cluster state provider fails."""

    def __init__(self, operation: str, reason: str, resource: Optional[str] = None, **details):
        if resource:
            message = f"Cluster read failed during {operation} for {resource}: {reason}"
        else:
            message = f"Cluster read failed during {operation}: {reason}"

        super().__init__(
            message, {"operation": operation, "reason": reason, "resource": resource, **details}
        )
        self.operation = operation
        self.reason = reason
        self.resource = resource


class ReadCancelledError(ClusterReadError):
    """Raised when a read is attempted after its context was cancelled or timed out."""

    def __init__(self, operation: str, reason: str = "context cancelled", **details):
        super().__init__(operation, reason, **details)


class OwnerLookupError(ChainplaceError):
    """Raised when one hop of the workload -> grouping -> template traversal fails."""

    def __init__(self, workload: str, hop: str, reason: str, **details):
        message = f"Owner lookup failed for {workload} at {hop}: {reason}"

        super().__init__(message, {"workload": workload, "hop": hop, "reason": reason, **details})
        self.workload = workload
        self.hop = hop
        self.reason = reason


class ScoringError(ChainplaceError):
    """Raised when scoring a single (workload, node) pair fails."""

    def __init__(self, plugin: str, workload: str, node_name: str, reason: str, **details):
        message = f"{plugin} failed to score node {node_name!r} for {workload}: {reason}"

        super().__init__(
            message,
            {"plugin": plugin, "workload": workload, "node_name": node_name, **details},
        )
        self.plugin = plugin
        self.workload = workload
        self.node_name = node_name
        self.reason = reason


class AdmissionError(ChainplaceError):
    """Raised when the admission gate cannot read the state it needs."""

    def __init__(self, workload: str, reason: str, **details):
        message = f"Admission check failed for {workload}: {reason}"

        super().__init__(message, {"workload": workload, **details})
        self.workload = workload
        self.reason = reason
