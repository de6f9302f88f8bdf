"""In-memory publisher used for dry runs and tests."""
from __future__ import annotations

import threading
from typing import Iterable, List, Optional

from minutebuf.errors import PublishError
from minutebuf.metrics.aggregator import Batch


class MemoryPublisher:
    """Keep published batches in a list.

    Namespaces listed in ``failing_namespaces`` are rejected with
    :class:`PublishError`.  ``published`` is set after every successful call so
    callers can wait for a background commit.
    """

    def __init__(self, failing_namespaces: Optional[Iterable[str]] = None) -> None:
        self._failing = set(failing_namespaces or ())
        self._lock = threading.Lock()
        self.batches: List[Batch] = []
        self.attempts: List[str] = []
        self.published = threading.Event()
        self.closed = False

    def publish(self, batch: Batch) -> None:
        with self._lock:
            self.attempts.append(batch.namespace)
            if batch.namespace in self._failing:
                raise PublishError(batch.namespace, "rejected by memory publisher")
            self.batches.append(batch)
        self.published.set()

    def close(self) -> None:
        self.closed = True
