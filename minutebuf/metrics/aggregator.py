"""Minute-bucket metric aggregation and statistical reduction."""
from __future__ import annotations

import math
import numbers
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from minutebuf.errors import InvalidArgumentError
from minutebuf.metrics.canonical import Timestamp, canonicalize, quantize

DEFAULT_UNIT = "None"

NamespaceBucket = Dict[str, List["Observation"]]
StoreSnapshot = Dict[str, NamespaceBucket]


@dataclass(frozen=True, slots=True)
class Dimension:
    """A ``name``/``value`` tag qualifying a metric."""

    name: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {"Name": self.name, "Value": self.value}


@dataclass(frozen=True, slots=True)
class Observation:
    """A single raw data point, already quantised to its minute."""

    timestamp: str
    name: str
    value: float
    unit: str = DEFAULT_UNIT
    dimensions: Tuple[Dimension, ...] = ()


@dataclass(frozen=True, slots=True)
class StatisticalRecord:
    """Reduced statistics for every observation sharing one grouping key."""

    namespace: str
    key: str
    name: str
    unit: str
    dimensions: Tuple[Dimension, ...]
    timestamp: str
    maximum: float
    minimum: float
    sum: float
    sample_count: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "MetricName": self.name,
            "Dimensions": [dimension.to_dict() for dimension in self.dimensions],
            "Timestamp": self.timestamp,
            "Unit": self.unit,
            "StatisticValues": {
                "Maximum": self.maximum,
                "Minimum": self.minimum,
                "Sum": self.sum,
                "SampleCount": self.sample_count,
            },
        }


@dataclass(frozen=True, slots=True)
class Batch:
    """All statistical records of one namespace for a single commit."""

    namespace: str
    records: Tuple[StatisticalRecord, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, object]:
        return {
            "Namespace": self.namespace,
            "MetricData": [record.to_dict() for record in self.records],
        }


class MetricAggregator:
    """Accumulate observations per namespace and grouping key.

    The store is a two level mapping ``namespace -> key -> observations``.  A
    single lock guards both the append performed by :meth:`record` and the
    swap performed by :meth:`detach`, so a commit never sees a half written
    bucket and an append never lands in a snapshot that was already handed out.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or utcnow
        self._store: StoreSnapshot = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    def record(
        self,
        namespace: str,
        name: str,
        value: float,
        unit: Optional[str] = None,
        dimensions: Optional[Sequence[Any]] = None,
        timestamp: Optional[Timestamp] = None,
    ) -> Observation:
        """Validate and buffer one observation, returning the stored value."""

        namespace = validate_namespace(namespace)
        observation = build_observation(
            name,
            value,
            unit,
            dimensions,
            timestamp if timestamp is not None else self._clock(),
        )
        self.add(namespace, observation)
        return observation

    def add(self, namespace: str, observation: Observation) -> None:
        key = grouping_key(observation)
        with self._lock:
            bucket = self._store.setdefault(namespace, {})
            bucket.setdefault(key, []).append(observation)

    def detach(self) -> StoreSnapshot:
        """Hand out the current store and start over with an empty one."""

        with self._lock:
            snapshot, self._store = self._store, {}
        return snapshot

    def pending(self) -> int:
        """Number of observations buffered since the last :meth:`detach`."""

        with self._lock:
            return sum(len(items) for bucket in self._store.values() for items in bucket.values())

    def namespaces(self) -> List[str]:
        with self._lock:
            return sorted(self._store)


# ----------------------------------------------------------------------
def grouping_key(observation: Observation) -> str:
    dimensions = [dimension.to_dict() for dimension in observation.dimensions]
    return canonicalize([observation.name, observation.unit, dimensions, observation.timestamp])


def reduce_bucket(namespace: str, bucket: Mapping[str, Sequence[Observation]]) -> List[StatisticalRecord]:
    """Collapse every key of ``bucket`` into one :class:`StatisticalRecord`."""

    records: List[StatisticalRecord] = []
    for key, observations in bucket.items():
        if not observations:
            continue
        maximum = -math.inf
        minimum = math.inf
        total = 0.0
        for observation in observations:
            maximum = max(maximum, observation.value)
            minimum = min(minimum, observation.value)
            total += observation.value
        sample = observations[0]
        records.append(
            StatisticalRecord(
                namespace=namespace,
                key=key,
                name=sample.name,
                unit=sample.unit,
                dimensions=sample.dimensions,
                timestamp=sample.timestamp,
                maximum=maximum,
                minimum=minimum,
                sum=total,
                sample_count=len(observations),
            )
        )
    return records


def build_batches(snapshot: Mapping[str, Mapping[str, Sequence[Observation]]]) -> List[Batch]:
    batches: List[Batch] = []
    for namespace, bucket in snapshot.items():
        records = reduce_bucket(namespace, bucket)
        if records:
            batches.append(Batch(namespace=namespace, records=tuple(records)))
    return batches


# ----------------------------------------------------------------------
def validate_namespace(namespace: Any) -> str:
    if not (isinstance(namespace, str) and namespace.strip()):
        raise InvalidArgumentError(f"bad namespace: {namespace!r}")
    return namespace


def build_observation(
    name: Any,
    value: Any,
    unit: Any,
    dimensions: Any,
    timestamp: Timestamp,
) -> Observation:
    if not (isinstance(name, str) and name.strip()):
        raise InvalidArgumentError(f"bad name: {name!r}")
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgumentError(f"bad value: {value!r}")
    try:
        value = float(value)
    except OverflowError as exc:
        raise InvalidArgumentError("bad value: out of float range") from exc
    if not math.isfinite(value):
        raise InvalidArgumentError(f"bad value: {value!r}")
    if unit is None or unit == "":
        unit = DEFAULT_UNIT
    elif not isinstance(unit, str):
        raise InvalidArgumentError(f"bad unit: {unit!r}")
    return Observation(
        timestamp=quantize(timestamp),
        name=name,
        value=value,
        unit=unit,
        dimensions=_normalise_dimensions(dimensions),
    )


def _normalise_dimensions(dimensions: Any) -> Tuple[Dimension, ...]:
    if dimensions is None:
        return ()
    if not isinstance(dimensions, (list, tuple)):
        raise InvalidArgumentError(f"bad dimensions: {dimensions!r}")
    return tuple(_coerce_dimension(item) for item in dimensions)


def _coerce_dimension(item: Any) -> Dimension:
    if isinstance(item, Dimension):
        name, value = item.name, item.value
    elif isinstance(item, Mapping):
        name = item.get("name", item.get("Name"))
        value = item.get("value", item.get("Value"))
    else:
        raise InvalidArgumentError(f"bad dimension: {item!r}")
    if not (isinstance(name, str) and isinstance(value, str)):
        raise InvalidArgumentError(f"bad dimension: {item!r}")
    return Dimension(name=name, value=value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = [
    "Batch",
    "DEFAULT_UNIT",
    "Dimension",
    "MetricAggregator",
    "NamespaceBucket",
    "Observation",
    "StatisticalRecord",
    "StoreSnapshot",
    "build_batches",
    "build_observation",
    "grouping_key",
    "reduce_bucket",
    "utcnow",
    "validate_namespace",
]
