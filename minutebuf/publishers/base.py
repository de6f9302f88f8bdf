"""Publisher capability consumed by the commit cycle."""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from minutebuf.metrics.aggregator import Batch


@runtime_checkable
class Publisher(Protocol):
    """Deliver reduced batches to a remote ingestion endpoint.

    Implementations raise :class:`~minutebuf.errors.PublishError` (or any other
    exception) when a batch is rejected.  They are called once per namespace
    per commit and are never retried by the buffer.
    """

    def publish(self, batch: Batch) -> None:
        ...

    def close(self) -> None:
        ...
