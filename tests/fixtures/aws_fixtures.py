"""AWS fixtures backed by moto."""
import boto3
import pytest
from moto import mock_aws

from cloud_providers.aws import S3StorageProvider, SqsQueueProvider
from cloud_providers.settings import get_settings
from tests.consts import (
    TEST_BUCKET_NAME,
    TEST_DLQ_NAME,
    TEST_FIFO_QUEUE_NAME,
    TEST_QUEUE_NAME,
    TEST_REGION,
)


@pytest.fixture
def aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_REGION", TEST_REGION)
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)
    get_settings.cache_clear()


@pytest.fixture
def mocked_aws(aws_credentials):
    """Mocked S3 bucket plus a standard queue, its DLQ and a FIFO queue."""
    with mock_aws():
        s3_client = boto3.client("s3")
        s3_client.create_bucket(Bucket=TEST_BUCKET_NAME)

        sqs_client = boto3.client("sqs")
        sqs_client.create_queue(QueueName=TEST_QUEUE_NAME)
        sqs_client.create_queue(QueueName=TEST_DLQ_NAME)
        sqs_client.create_queue(
            QueueName=TEST_FIFO_QUEUE_NAME,
            Attributes={"FifoQueue": "true"},
        )

        yield


@pytest.fixture
def sqs_provider(mocked_aws):
    return SqsQueueProvider()


@pytest.fixture
def s3_provider(mocked_aws):
    return S3StorageProvider()
