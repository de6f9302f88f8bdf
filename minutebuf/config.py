"""Configuration schema for the metric pre-aggregation buffer.

The dataclasses below describe how a :class:`~minutebuf.services.MetricBuffer`
is wired to its ingestion endpoint and how often it flushes.  Values omitted
by the loader fall back to the defaults declared here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

DEFAULT_COMMIT_INTERVAL = timedelta(milliseconds=5000)


@dataclass(slots=True)
class PublisherCredentials:
    """Credentials forwarded untouched to the publisher."""

    access_key_id: str
    secret_access_key: str
    session_token: Optional[str] = None


@dataclass(slots=True)
class PublisherConfig:
    """Connection parameters for the remote ingestion endpoint.

    ``endpoint_url`` may contain a ``{region}`` placeholder which is filled in
    from ``region``.
    """

    endpoint_url: str
    region: Optional[str] = None
    credentials: Optional[PublisherCredentials] = None
    request_timeout: float = 5.0

    def resolved_endpoint(self) -> str:
        if "{region}" in self.endpoint_url:
            if not self.region:
                raise ValueError("endpoint_url references {region} but no region is configured")
            return self.endpoint_url.format(region=self.region)
        return self.endpoint_url


@dataclass(slots=True)
class BufferConfig:
    """Timing knobs for the commit cycle."""

    commit_interval: timedelta = DEFAULT_COMMIT_INTERVAL
    debug: bool = False
    autostart: bool = False

    def __post_init__(self) -> None:
        if self.commit_interval.total_seconds() <= 0:
            raise ValueError("commit interval must be positive")


@dataclass(slots=True)
class MinuteBufConfig:
    """Top-level configuration bundle."""

    publisher: PublisherConfig
    buffer: BufferConfig = field(default_factory=BufferConfig)
