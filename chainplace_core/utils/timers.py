"""
Timing utilities for scheduling cycles.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..logging import get_logger

logger = get_logger(__name__)


@dataclass
class TimingResult:
    """Result of a timed operation."""

    operation: str
    duration_seconds: float
    success: bool
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds."""
        return self.duration_seconds * 1000


class Timer:
    """Monotonic timer for one operation."""

    def __init__(self, operation: str, metadata: Optional[Dict[str, Any]] = None):
        self.operation = operation
        self.metadata = metadata or {}
        self.start_time: Optional[float] = None
        self.success = True

    def start(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def stop(self) -> TimingResult:
        if self.start_time is None:
            raise ValueError("Timer not started")

        return TimingResult(
            operation=self.operation,
            duration_seconds=time.perf_counter() - self.start_time,
            success=self.success,
            metadata=self.metadata,
        )

    def mark_failure(self):
        self.success = False

    def __enter__(self) -> "Timer":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.mark_failure()
        self.stop()


@contextmanager
def time_operation(operation: str, metadata: Optional[Dict[str, Any]] = None):
    """Context manager timing a block and logging its duration."""
    timer = Timer(operation, metadata)
    try:
        timer.start()
        yield timer
    except Exception:
        timer.mark_failure()
        raise
    finally:
        result = timer.stop()
        logger.info(
            "Operation timed",
            operation=operation,
            duration_ms=result.duration_ms,
            success=result.success,
            **(metadata or {}),
        )
