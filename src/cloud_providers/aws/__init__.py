"""AWS backend: S3 storage and SQS queues (requires boto3)."""

from .clients import AWSCredentials, create_aws_client
from .queue import AWSQueueProvider, SqsQueueProvider
from .storage import AWSStorageProvider, S3StorageProvider

__all__ = [
    "AWSCredentials",
    "create_aws_client",
    "AWSQueueProvider",
    "SqsQueueProvider",
    "AWSStorageProvider",
    "S3StorageProvider",
]
