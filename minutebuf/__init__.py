"""Client-side pre-aggregation buffer for per-minute metric statistics."""

from .config import BufferConfig, MinuteBufConfig, PublisherConfig, PublisherCredentials
from .config_loader import load_config
from .errors import InvalidArgumentError, MinuteBufError, PublishError
from .services import MetricBuffer

__all__ = [
    "BufferConfig",
    "InvalidArgumentError",
    "MetricBuffer",
    "MinuteBufConfig",
    "MinuteBufError",
    "PublishError",
    "PublisherConfig",
    "PublisherCredentials",
    "load_config",
    "config",
    "metrics",
    "publishers",
    "services",
]
