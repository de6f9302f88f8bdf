"""Metrics aggregation package."""

from .aggregator import (
    Batch,
    Dimension,
    MetricAggregator,
    Observation,
    StatisticalRecord,
    build_batches,
    reduce_bucket,
)
from .canonical import canonicalize, quantize

__all__ = [
    "Batch",
    "Dimension",
    "MetricAggregator",
    "Observation",
    "StatisticalRecord",
    "build_batches",
    "canonicalize",
    "quantize",
    "reduce_bucket",
]
