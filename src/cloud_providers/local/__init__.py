"""Local backend: filesystem storage and in-memory queue, no network required."""

from .queue import LocalQueueProvider
from .storage import LocalStorageProvider

__all__ = ["LocalQueueProvider", "LocalStorageProvider"]
