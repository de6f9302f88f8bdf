"""Background scheduling primitives."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List

Task = Callable[[], None]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScheduledTask:
    """Represents a background task with its cadence."""

    name: str
    interval_seconds: float
    task: Task


class Scheduler:
    """Run every registered task on its own daemon thread.

    Each thread waits ``interval_seconds`` between calls.  An exception raised
    by a task is logged and the loop carries on with the next tick.
    """

    def __init__(self) -> None:
        self._tasks: List[ScheduledTask] = []
        self._threads: List[threading.Thread] = []
        self._stop_event = threading.Event()

    def add_task(self, scheduled_task: ScheduledTask) -> None:
        """Register a new periodic task."""

        if scheduled_task.interval_seconds <= 0:
            raise ValueError("task interval must be positive")
        self._tasks.append(scheduled_task)

    @property
    def running(self) -> bool:
        return any(thread.is_alive() for thread in self._threads)

    def start(self) -> None:
        """Spawn one thread per task.  Calling it twice is a no-op."""

        if self._threads:
            return
        self._stop_event = threading.Event()
        for scheduled_task in self._tasks:
            thread = threading.Thread(
                target=self._run,
                args=(scheduled_task, self._stop_event),
                name=f"minutebuf-{scheduled_task.name}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal every task loop to exit and wait for the threads."""

        self._stop_event.set()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join(timeout=timeout)
        self._threads = []

    @staticmethod
    def _run(scheduled_task: ScheduledTask, stop_event: threading.Event) -> None:
        while not stop_event.wait(scheduled_task.interval_seconds):
            try:
                scheduled_task.task()
            except Exception:  # noqa: BLE001 - keep the loop alive
                logger.exception("scheduled task %s failed", scheduled_task.name)
