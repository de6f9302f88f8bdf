"""Exception hierarchy shared by the buffer and its publishers."""
from __future__ import annotations

from typing import Optional


class MinuteBufError(Exception):
    """Base class for every error raised by :mod:`minutebuf`."""


class InvalidArgumentError(MinuteBufError, ValueError):
    """Raised when :meth:`record` receives a malformed observation."""


class PublishError(MinuteBufError):
    """Raised when a batch could not be delivered to the ingestion endpoint."""

    def __init__(self, namespace: str, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"{namespace}: {message}")
        self.namespace = namespace
        self.cause = cause


__all__ = ["InvalidArgumentError", "MinuteBufError", "PublishError"]
