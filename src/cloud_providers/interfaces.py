"""
Provider contracts shared by every backend.

A backend supplies one StorageProvider and one QueueProvider. Callers only
ever see these contracts, obtained from the factory as a CloudProvider.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import IO, Any, Dict, Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


class CloudProviderType(str, Enum):
    LOCAL = "local"
    AWS = "aws"
    GCP = "gcp"


class Priority(str, Enum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class SignedUrlAction(str, Enum):
    READ = "read"
    WRITE = "write"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Storage types

@dataclass
class StorageUploadOptions:
    content_type: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None
    cache_control: Optional[str] = None
    is_public: bool = False


@dataclass
class StorageDownloadResult:
    data: bytes
    content_type: str
    metadata: Optional[Dict[str, str]] = None


@dataclass
class SignedUrlOptions:
    expires_in_seconds: int
    action: Union[SignedUrlAction, str] = SignedUrlAction.READ
    content_type: Optional[str] = None

    def __post_init__(self):
        self.action = SignedUrlAction(self.action)


StorageData = Union[bytes, bytearray, IO[bytes]]


def read_storage_data(data: StorageData) -> bytes:
    """Normalise upload input (bytes or a binary file object) to bytes."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if hasattr(data, "read"):
        return data.read()
    raise TypeError(f"Unsupported upload data type: {type(data).__name__}")


# Queue types

@dataclass
class QueueMessage(Generic[T]):
    """A single delivery of a queued message.

    ``receipt_handle`` is only valid while the message is in flight and is
    consumed by exactly one of ack, nack or move_to_dlq.
    """
    id: str
    body: T
    receipt_handle: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)
    enqueued_at: datetime = field(default_factory=utcnow)
    retry_count: int = 0


@dataclass
class EnqueueOptions:
    delay_seconds: Optional[int] = None
    priority: Optional[Union[Priority, str]] = None
    deduplication_id: Optional[str] = None
    # FIFO ordering key, honoured only by FIFO-capable backends
    group_id: Optional[str] = None

    def __post_init__(self):
        if self.priority is not None:
            self.priority = Priority(self.priority)


@dataclass
class ReceiveOptions:
    max_messages: int = 10
    visibility_timeout_seconds: Optional[int] = None
    wait_time_seconds: Optional[int] = None


class StorageProvider(ABC):
    """Object storage contract keyed by (bucket, key)."""

    @abstractmethod
    async def upload(self, bucket: str, key: str, data: StorageData,
                     options: Optional[StorageUploadOptions] = None) -> str:
        """Store ``data`` and return a backend URI for the object."""

    @abstractmethod
    async def download(self, bucket: str, key: str) -> StorageDownloadResult:
        """Return the object bytes, content type and metadata.

        Raises:
            NotFoundError: if the object does not exist
        """

    @abstractmethod
    async def get_signed_url(self, bucket: str, key: str, options: SignedUrlOptions) -> str:
        """Return a time-limited URL for reading or writing the object."""

    @abstractmethod
    async def delete(self, bucket: str, key: str) -> None:
        """Delete the object. Succeeds silently when it is already absent."""

    @abstractmethod
    async def exists(self, bucket: str, key: str) -> bool:
        ...


class QueueProvider(ABC):
    """At-least-once message queue contract."""

    @abstractmethod
    async def enqueue(self, queue_name: str, message: Any,
                      options: Optional[EnqueueOptions] = None) -> str:
        """Store a message and return its backend-assigned id."""

    @abstractmethod
    async def receive(self, queue_name: str,
                      options: Optional[ReceiveOptions] = None) -> List[QueueMessage]:
        """Return up to ``max_messages`` messages, long-polling if asked to."""

    @abstractmethod
    async def ack(self, queue_name: str, receipt_handle: str) -> None:
        """Permanently remove a delivered message."""

    @abstractmethod
    async def nack(self, queue_name: str, receipt_handle: str,
                   delay_seconds: Optional[int] = None) -> None:
        """Make a delivered message visible again after ``delay_seconds``."""

    @abstractmethod
    async def move_to_dlq(self, queue_name: str, message: QueueMessage) -> None:
        """Publish the message to the dead-letter queue and drop the original."""


@dataclass(frozen=True)
class CloudProvider:
    type: CloudProviderType
    storage: StorageProvider
    queue: QueueProvider
