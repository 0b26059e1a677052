"""Exception hierarchy for the cloud provider layer.

SDK errors (botocore, google-api-core) are deliberately not wrapped here:
they reach the caller as raised by the SDK.
"""
from typing import List, Optional


class CloudProviderError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(CloudProviderError):
    """Raised before any SDK client is built when the environment is unusable."""

    def __init__(self, message: str, errors: Optional[List[str]] = None,
                 warnings: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])
        self.warnings = list(warnings or [])


class NotFoundError(CloudProviderError):
    """The requested object does not exist in storage."""

    def __init__(self, bucket: str, key: str):
        super().__init__(f"Object not found: {bucket}/{key}")
        self.bucket = bucket
        self.key = key


class PathTraversalError(CloudProviderError):
    """A storage key resolved outside of the local base directory."""


class MessageStateError(CloudProviderError):
    """A terminal queue operation referenced a receipt handle that is not in flight."""

    def __init__(self, queue_name: str, receipt_handle: str):
        super().__init__(
            f"Message with receipt handle {receipt_handle} is not in flight on queue {queue_name}"
        )
        self.queue_name = queue_name
        self.receipt_handle = receipt_handle


class ReservedKeyError(CloudProviderError):
    """A storage key collides with the local backend's metadata sidecar naming."""
