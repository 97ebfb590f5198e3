"""
Typed access to workload and node metadata.

All string parsing of labels and annotations happens here. Each piece of
metadata the engine understands is declared once as an ``AttributeSpec``
(key pattern, metadata store, parser, default). A missing or malformed value
never raises: the reader returns the declared default, reports ``found=False``
and records a single DEBUG diagnostic.
"""

import math
import threading
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .logging import get_logger

logger = get_logger(__name__)

STAGE_PREFIX = "chain-"
SLO_SUFFIX = "-slo"

# Pseudo key under which unresolvable owner chains are recorded
OWNER_CHAIN_KEY = "ownerReferences"


class MetadataStore(Enum):
    """Which key/value map of an object a value lives in."""

    LABELS = "labels"
    ANNOTATIONS = "annotations"


def parse_float(value: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"non-finite value {value!r}")
    return number


def parse_positive_float(value: str) -> float:
    number = parse_float(value)
    if number <= 0:
        raise ValueError(f"expected a positive number, got {value!r}")
    return number


def parse_stage_index(value: str) -> int:
    """Stage indices are non-negative integers; anything else is malformed."""
    index = int(value.strip())
    if index < 0:
        raise ValueError(f"negative stage index {value!r}")
    return index


def parse_text(value: str) -> str:
    if not value:
        raise ValueError("empty value")
    return value


@dataclass(frozen=True)
class AttributeSpec:
    """Declarative description of one metadata key."""

    field: str
    pattern: str
    store: MetadataStore
    parser: Callable[[str], Any]
    default: Any = None

    def key(self, **params: str) -> str:
        return self.pattern.format(**params)


CPU_USAGE = AttributeSpec("cpu_usage", "cpu-usage", MetadataStore.ANNOTATIONS, parse_float, 0.0)
MEMORY_USAGE = AttributeSpec(
    "memory_usage", "memory-usage", MetadataStore.ANNOTATIONS, parse_float, 0.0
)
APP_GROUP = AttributeSpec("app_group", "app-group", MetadataStore.LABELS, parse_text)
APP = AttributeSpec("app", "app", MetadataStore.LABELS, parse_text)
STAGE_INDEX = AttributeSpec(
    "stage_index", STAGE_PREFIX + "{dimension}", MetadataStore.LABELS, parse_stage_index
)
STAGE_SLO = AttributeSpec(
    "stage_slo", "{stage_key}" + SLO_SUFFIX, MetadataStore.ANNOTATIONS, parse_positive_float
)
REQUESTS_PER_SECOND = AttributeSpec(
    "requests_per_second", "rps.{peer_app}", MetadataStore.ANNOTATIONS, parse_float, 0.0
)
TRAFFIC = AttributeSpec("traffic", "traffic.{peer_app}", MetadataStore.ANNOTATIONS, parse_float, 0.0)
NETWORK_LATENCY = AttributeSpec(
    "network_latency", "network-latency.{peer_node}", MetadataStore.ANNOTATIONS, parse_float, 0.0
)

SCHEMA: Tuple[AttributeSpec, ...] = (
    CPU_USAGE,
    MEMORY_USAGE,
    APP_GROUP,
    APP,
    STAGE_INDEX,
    STAGE_SLO,
    REQUESTS_PER_SECOND,
    TRAFFIC,
    NETWORK_LATENCY,
)


class AttributeReader:
    """Reads typed values from object metadata, degrading to defaults on a miss."""

    def __init__(self):
        self._lock = threading.Lock()
        self._misses: Counter = Counter()

    def lookup(self, entity, spec: AttributeSpec, **params: str) -> Tuple[Any, bool]:
        """Return ``(value, found)`` for ``spec`` on ``entity``."""
        key = spec.key(**params)
        raw = _store_of(entity, spec.store).get(key)
        if raw is None:
            self.record_miss(entity, key, "missing")
            return spec.default, False

        try:
            return spec.parser(raw), True
        except (TypeError, ValueError) as e:
            self.record_miss(entity, key, f"malformed: {e}")
            return spec.default, False

    def read(self, entity, spec: AttributeSpec, **params: str) -> Any:
        return self.lookup(entity, spec, **params)[0]

    def read_numeric(
        self, entity, key: str, store: MetadataStore = MetadataStore.ANNOTATIONS
    ) -> Tuple[float, bool]:
        """Read an arbitrary key as a float; ``(0.0, False)`` when unusable."""
        spec = AttributeSpec(key, key.replace("{", "{{").replace("}", "}}"), store, parse_float, 0.0)
        return self.lookup(entity, spec)

    def stage_keys(self, entity) -> List[str]:
        """Every label key following the stage naming convention, sorted."""
        return sorted(k for k in entity.labels if k.startswith(STAGE_PREFIX) and k != STAGE_PREFIX)

    def miss_counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._misses)

    def record_miss(self, entity, key: str, reason: str):
        """Count a miss for ``key`` and emit the single diagnostic for it."""
        with self._lock:
            self._misses[key] += 1
        logger.debug(
            "Metadata unavailable, using default",
            entity=getattr(entity, "name", "?"),
            kind=_kind_name(entity),
            key=key,
            reason=reason,
        )


def _store_of(entity, store: MetadataStore) -> Dict[str, str]:
    values: Optional[Dict[str, str]] = getattr(entity, store.value, None)
    return values or {}


def _kind_name(entity) -> str:
    kind = getattr(entity, "entity_kind", None)
    return kind.name.lower() if kind is not None else type(entity).__name__.lower()
