"""
Cloud provider layer.

Uniform queue (enqueue/receive/ack/nack/dead-letter) and object storage
(upload/download/sign/delete/exists) contracts, implemented for a local
in-process backend, AWS (S3 + SQS) and GCP (Cloud Storage + Pub/Sub).
Backend SDKs are only imported when their backend is selected.
"""

from .exceptions import (
    CloudProviderError,
    ConfigurationError,
    MessageStateError,
    NotFoundError,
    PathTraversalError,
    ReservedKeyError,
)
from .factory import (
    ProviderRegistry,
    create_cloud_provider,
    get_cloud_provider,
    reset_cloud_provider,
    set_cloud_provider,
)
from .interfaces import (
    CloudProvider,
    CloudProviderType,
    EnqueueOptions,
    Priority,
    QueueMessage,
    QueueProvider,
    ReceiveOptions,
    SignedUrlAction,
    SignedUrlOptions,
    StorageDownloadResult,
    StorageProvider,
    StorageUploadOptions,
)
from .local import LocalQueueProvider, LocalStorageProvider
from .settings import Settings, get_bucket_name, get_queue_name, get_settings

__all__ = [
    "CloudProviderError",
    "ConfigurationError",
    "MessageStateError",
    "NotFoundError",
    "PathTraversalError",
    "ReservedKeyError",
    "ProviderRegistry",
    "create_cloud_provider",
    "get_cloud_provider",
    "reset_cloud_provider",
    "set_cloud_provider",
    "CloudProvider",
    "CloudProviderType",
    "EnqueueOptions",
    "Priority",
    "QueueMessage",
    "QueueProvider",
    "ReceiveOptions",
    "SignedUrlAction",
    "SignedUrlOptions",
    "StorageDownloadResult",
    "StorageProvider",
    "StorageUploadOptions",
    "LocalQueueProvider",
    "LocalStorageProvider",
    "Settings",
    "get_bucket_name",
    "get_queue_name",
    "get_settings",
]
