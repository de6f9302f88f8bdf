"""Service orchestration helpers."""

from .buffer_service import BatchOutcome, CommitReport, MetricBuffer
from .scheduler import ScheduledTask, Scheduler

__all__ = ["BatchOutcome", "CommitReport", "MetricBuffer", "ScheduledTask", "Scheduler"]
