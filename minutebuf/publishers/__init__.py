"""Publisher backends."""

from .base import Publisher
from .http_publisher import HttpPublisher
from .memory import MemoryPublisher

__all__ = ["HttpPublisher", "MemoryPublisher", "Publisher"]
