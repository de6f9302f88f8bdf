"""Deterministic serialisation and minute quantisation helpers.

Both functions feed the grouping key used by
:class:`~minutebuf.metrics.aggregator.MetricAggregator`: two observations are
merged only when their canonical dimensions and quantised timestamps agree.
"""
from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence, Union

Timestamp = Union[datetime, int, float]


def canonicalize(value: Any) -> str:
    """Serialise ``value`` so that equal structures always give the same text.

    Sequences keep their element order.  Mapping entries are sorted by key, so
    the insertion order of a mapping never changes the result.  Strings are
    always quoted, which keeps ``["a,b"]`` distinct from ``["a", "b"]``.
    """

    if value is None or isinstance(value, (bool, str)):
        return json.dumps(value)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            # JSON has no literal for these; keep them distinct from strings.
            return repr(value)
        return json.dumps(value)
    if isinstance(value, Mapping):
        pairs = []
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"mapping keys must be strings, got {key!r}")
            pairs.append((key, json.dumps(key) + ":" + canonicalize(item)))
        pairs.sort(key=lambda pair: pair[0])
        return "{" + ",".join(text for _, text in pairs) + "}"
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return "[" + ",".join(canonicalize(item) for item in value) + "]"
    raise TypeError(f"cannot canonicalize value of type {type(value).__name__}")


def quantize(timestamp: Timestamp) -> str:
    """Truncate ``timestamp`` to its UTC minute and render it as ISO-8601.

    Naive datetimes are read as UTC.  The output keeps a millisecond field so
    it matches what JavaScript's ``Date.toISOString`` produces, e.g.
    ``2024-05-01T13:37:00.000Z``.
    """

    if isinstance(timestamp, datetime):
        ts = timestamp
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        ts = ts.astimezone(timezone.utc)
    elif isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool):
        ts = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    else:
        raise TypeError(f"unsupported timestamp: {timestamp!r}")
    ts = ts.replace(second=0, microsecond=0)
    return ts.strftime("%Y-%m-%dT%H:%M:00.000Z")


__all__ = ["Timestamp", "canonicalize", "quantize"]
