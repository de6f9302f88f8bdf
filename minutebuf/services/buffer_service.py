"""Lifecycle and commit cycle of the pre-aggregation buffer."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional, Sequence, Tuple

from minutebuf.config import BufferConfig, MinuteBufConfig, PublisherConfig
from minutebuf.errors import MinuteBufError, PublishError
from minutebuf.metrics.aggregator import (
    MetricAggregator,
    build_batches,
    build_observation,
    utcnow,
    validate_namespace,
)
from minutebuf.metrics.canonical import Timestamp
from minutebuf.publishers.base import Publisher
from minutebuf.publishers.http_publisher import HttpPublisher
from minutebuf.services.scheduler import ScheduledTask, Scheduler

PublisherFactory = Callable[[], Publisher]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BatchOutcome:
    """Result of publishing one namespace batch."""

    namespace: str
    record_count: int
    error: Optional[PublishError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class CommitReport:
    """Summary of one commit.  ``skipped`` is set when another commit was running."""

    outcomes: Tuple[BatchOutcome, ...] = field(default_factory=tuple)
    skipped: bool = False

    @property
    def failures(self) -> Tuple[BatchOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if not outcome.ok)

    @property
    def record_count(self) -> int:
        return sum(outcome.record_count for outcome in self.outcomes)

    def to_dict(self) -> dict:
        return {
            "skipped": self.skipped,
            "batches": [
                {
                    "namespace": outcome.namespace,
                    "records": outcome.record_count,
                    "error": str(outcome.error) if outcome.error else None,
                }
                for outcome in self.outcomes
            ],
        }


class MetricBuffer:
    """Collect observations and flush their per-minute statistics periodically.

    ``record`` only touches the aggregator's store lock.  Commits run on a
    single worker thread; a timer tick that arrives while a commit is still in
    flight is dropped, so two reduce/publish pipelines never overlap.  Stopping
    the buffer keeps whatever was recorded so far; it is flushed by the next
    commit after a restart.
    """

    def __init__(
        self,
        config: Optional[BufferConfig] = None,
        publisher: Optional[Publisher] = None,
        publisher_factory: Optional[PublisherFactory] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config or BufferConfig()
        self._publisher = publisher
        self._publisher_factory = publisher_factory
        self._owns_publisher = False
        self._clock = clock or utcnow
        self._aggregator = MetricAggregator(clock=self._clock)
        self._state_lock = threading.RLock()
        self._commit_lock = threading.Lock()
        self._scheduler: Optional[Scheduler] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._started = False
        self._last_report: Optional[CommitReport] = None
        if self._config.autostart:
            self.start()

    @classmethod
    def from_config(cls, config: MinuteBufConfig, **kwargs: Any) -> "MetricBuffer":
        """Build a buffer that lazily opens an :class:`HttpPublisher`."""

        kwargs.setdefault("publisher_factory", _http_publisher_factory(config.publisher))
        return cls(config.buffer, **kwargs)

    # ------------------------------------------------------------------
    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def aggregator(self) -> MetricAggregator:
        return self._aggregator

    @property
    def last_report(self) -> Optional[CommitReport]:
        return self._last_report

    def record(
        self,
        namespace: str,
        name: str,
        value: float,
        unit: Optional[str] = None,
        dimensions: Optional[Sequence[Any]] = None,
        timestamp: Optional[Timestamp] = None,
    ) -> None:
        """Aggregate ``value`` into the statistics of its metric and minute.

        Arguments are validated even while the buffer is stopped; a stopped
        buffer then ignores the observation.
        """

        namespace = validate_namespace(namespace)
        observation = build_observation(
            name,
            value,
            unit,
            dimensions,
            timestamp if timestamp is not None else self._clock(),
        )
        if not self._started:
            return
        self._aggregator.add(namespace, observation)

    def start(self) -> None:
        """Open the publisher if needed and begin the periodic commit."""

        with self._state_lock:
            if self._started:
                return
            self._ensure_publisher()
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="minutebuf-worker")
            scheduler = Scheduler()
            scheduler.add_task(
                ScheduledTask(
                    name="commit",
                    interval_seconds=self._config.commit_interval.total_seconds(),
                    task=self._tick,
                )
            )
            self._scheduler = scheduler
            self._started = True
            scheduler.start()

    def stop(self) -> None:
        """Cancel the periodic commit.  Buffered data is kept."""

        with self._state_lock:
            if not self._started:
                return
            self._started = False
            scheduler, self._scheduler = self._scheduler, None
        if scheduler is not None:
            scheduler.stop()

    def close(self) -> None:
        """Stop, wait for an in-flight commit and release the publisher."""

        self.stop()
        with self._state_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
        if self._owns_publisher and self._publisher is not None:
            self._publisher.close()
            self._publisher = None
            self._owns_publisher = False

    def __enter__(self) -> "MetricBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    def flush(self) -> CommitReport:
        """Run one commit on the calling thread."""

        if not self._commit_lock.acquire(blocking=False):
            logger.debug("commit already in progress, skipping flush")
            return CommitReport(skipped=True)
        try:
            return self._commit()
        finally:
            self._commit_lock.release()

    # ------------------------------------------------------------------
    def _tick(self) -> None:
        if not self._commit_lock.acquire(blocking=False):
            logger.debug("commit still running, skipping tick")
            return
        executor = self._executor
        if executor is None:
            self._commit_lock.release()
            return
        try:
            executor.submit(self._commit_and_release)
        except RuntimeError:
            self._commit_lock.release()
            raise

    def _commit_and_release(self) -> None:
        try:
            self._commit()
        except Exception:  # noqa: BLE001 - the timer must survive a broken commit
            logger.exception("commit failed")
        finally:
            self._commit_lock.release()

    def _commit(self) -> CommitReport:
        publisher = self._ensure_publisher()
        snapshot = self._aggregator.detach()
        batches = build_batches(snapshot)
        outcomes = []
        for batch in batches:
            try:
                publisher.publish(batch)
            except Exception as exc:  # noqa: BLE001 - failures stay with their batch
                error = exc if isinstance(exc, PublishError) else PublishError(batch.namespace, str(exc), exc)
                self._log_failure(error)
                outcomes.append(BatchOutcome(batch.namespace, len(batch.records), error))
            else:
                outcomes.append(BatchOutcome(batch.namespace, len(batch.records)))
        report = CommitReport(outcomes=tuple(outcomes))
        self._last_report = report
        if outcomes and not report.failures:
            level = logging.INFO if self._config.debug else logging.DEBUG
            logger.log(level, "aggregates sent: %d records in %d batches", report.record_count, len(outcomes))
        return report

    def _log_failure(self, error: PublishError) -> None:
        level = logging.ERROR if self._config.debug else logging.DEBUG
        logger.log(level, "publishing namespace %s failed: %s", error.namespace, error, exc_info=error)

    def _ensure_publisher(self) -> Publisher:
        with self._state_lock:
            if self._publisher is None:
                if self._publisher_factory is None:
                    raise MinuteBufError("no publisher configured")
                self._publisher = self._publisher_factory()
                self._owns_publisher = True
            return self._publisher


def _http_publisher_factory(config: PublisherConfig) -> PublisherFactory:
    def factory() -> Publisher:
        return HttpPublisher(config)

    return factory


__all__ = ["BatchOutcome", "CommitReport", "MetricBuffer", "PublisherFactory"]
