"""GCP backend: Cloud Storage and Pub/Sub (requires the google-cloud SDKs)."""

from .queue import GCPQueueProvider, PubSubQueueProvider
from .storage import GCPStorageProvider, GcsStorageProvider

__all__ = [
    "GCPQueueProvider",
    "PubSubQueueProvider",
    "GCPStorageProvider",
    "GcsStorageProvider",
]
