import pytest

from cloud_providers.factory import reset_cloud_provider
from cloud_providers.settings import get_settings

pytest_plugins = [
    "tests.fixtures.aws_fixtures",
    "tests.fixtures.gcp_fixtures",
]

CLOUD_ENV_VARS = [
    "CLOUD_PROVIDER",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AWS_PROFILE",
    "AWS_ENDPOINT_URL",
    "AWS_S3_ENDPOINT",
    "AWS_SQS_ENDPOINT",
    "SQS_QUEUE_PREFIX",
    "SQS_CACHE_QUEUE_URLS",
    "GOOGLE_APPLICATION_CREDENTIALS",
    "GOOGLE_CLOUD_PROJECT",
    "GCLOUD_PROJECT",
    "BUCKET_PREFIX",
    "BUCKET_SUFFIX",
    "QUEUE_NAME",
    "DLQ_SUFFIX",
    "LOCAL_STORAGE_DIR",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Start every test from an empty cloud configuration."""
    for var in CLOUD_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    reset_cloud_provider()
    yield
    get_settings.cache_clear()
    reset_cloud_provider()
