# src/cloud_providers/settings.py
from functools import lru_cache
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_QUEUE_NAME = "yt2pdf-jobs"
DEFAULT_BUCKET_PREFIX = "yt2pdf"
DEFAULT_BUCKET_SUFFIX = "output"
DEFAULT_DLQ_SUFFIX = "-dlq"
VALID_PROVIDERS = ("local", "aws", "gcp")


class Settings(BaseSettings):
    """
    Single source of truth for provider settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from cloud_providers.settings import get_settings
        settings = get_settings()
        region = settings.aws_region
    """

    # Provider selection
    cloud_provider: str = Field(
        default="local",
        validation_alias=AliasChoices("CLOUD_PROVIDER", "cloud_provider"),
        description="Backend to use: local, aws or gcp"
    )

    # AWS
    aws_region: str = Field(
        default="us-east-1",
        validation_alias=AliasChoices("AWS_REGION", "AWS_DEFAULT_REGION", "aws_region")
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_ACCESS_KEY_ID", "aws_access_key_id")
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_SECRET_ACCESS_KEY", "aws_secret_access_key")
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_ENDPOINT_URL", "aws_endpoint_url"),
        description="Shared endpoint override (LocalStack, moto server)"
    )

    aws_s3_endpoint: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_S3_ENDPOINT", "aws_s3_endpoint")
    )

    aws_sqs_endpoint: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("AWS_SQS_ENDPOINT", "aws_sqs_endpoint")
    )

    sqs_queue_prefix: str = Field(
        default="",
        validation_alias=AliasChoices("SQS_QUEUE_PREFIX", "sqs_queue_prefix"),
        description="Namespace prepended to every SQS queue name, e.g. 'prod-'"
    )

    sqs_cache_queue_urls: bool = Field(
        default=True,
        validation_alias=AliasChoices("SQS_CACHE_QUEUE_URLS", "sqs_cache_queue_urls")
    )

    # GCP
    google_application_credentials: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_APPLICATION_CREDENTIALS", "google_application_credentials")
    )

    google_cloud_project: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT", "google_cloud_project"),
        description="GCP project id (GCLOUD_PROJECT is the legacy name)"
    )

    # Naming
    bucket_prefix: str = Field(
        default=DEFAULT_BUCKET_PREFIX,
        validation_alias=AliasChoices("BUCKET_PREFIX", "bucket_prefix")
    )

    bucket_suffix: str = Field(
        default=DEFAULT_BUCKET_SUFFIX,
        validation_alias=AliasChoices("BUCKET_SUFFIX", "bucket_suffix")
    )

    queue_name: str = Field(
        default=DEFAULT_QUEUE_NAME,
        validation_alias=AliasChoices("QUEUE_NAME", "queue_name")
    )

    dlq_suffix: str = Field(
        default=DEFAULT_DLQ_SUFFIX,
        validation_alias=AliasChoices("DLQ_SUFFIX", "dlq_suffix")
    )

    # Local backend
    local_storage_dir: str = Field(
        default=".local-storage",
        validation_alias=AliasChoices("LOCAL_STORAGE_DIR", "local_storage_dir"),
        description="Base directory for the filesystem storage provider"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level")
    )

    @field_validator("cloud_provider", mode="before")
    @classmethod
    def normalize_cloud_provider(cls, v):
        """Normalise provider names and reject unknown ones."""
        v = (v or "local").strip().lower()
        if v not in VALID_PROVIDERS:
            raise ValueError(f"Invalid cloud_provider: {v}. Must be one of {list(VALID_PROVIDERS)}")
        return v

    @property
    def s3_endpoint(self) -> Optional[str]:
        return self.aws_s3_endpoint or self.aws_endpoint_url

    @property
    def sqs_endpoint(self) -> Optional[str]:
        return self.aws_sqs_endpoint or self.aws_endpoint_url

    def as_environ(self) -> Dict[str, str]:
        """Explicitly configured values keyed by their variable name.

        Covers the process environment, the .env file and constructor
        arguments alike; fields left at their default are omitted, so
        validation sees exactly what the backends will be built from.
        """
        return {
            name.upper(): str(getattr(self, name))
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }

    def get_environment_dict(self) -> Dict[str, Any]:
        """Get the resolved configuration with credentials masked, for display."""
        def mask(value: Optional[str]) -> Optional[str]:
            return "****" if value else None

        return {
            "CLOUD_PROVIDER": self.cloud_provider,
            "AWS_REGION": self.aws_region,
            "AWS_ACCESS_KEY_ID": mask(self.aws_access_key_id),
            "AWS_SECRET_ACCESS_KEY": mask(self.aws_secret_access_key),
            "AWS_ENDPOINT_URL": self.aws_endpoint_url,
            "AWS_S3_ENDPOINT": self.aws_s3_endpoint,
            "AWS_SQS_ENDPOINT": self.aws_sqs_endpoint,
            "SQS_QUEUE_PREFIX": self.sqs_queue_prefix,
            "GOOGLE_APPLICATION_CREDENTIALS": self.google_application_credentials,
            "GOOGLE_CLOUD_PROJECT": self.google_cloud_project,
            "BUCKET_PREFIX": self.bucket_prefix,
            "BUCKET_SUFFIX": self.bucket_suffix,
            "QUEUE_NAME": self.queue_name,
            "DLQ_SUFFIX": self.dlq_suffix,
            "LOCAL_STORAGE_DIR": self.local_storage_dir,
            "LOG_LEVEL": self.log_level,
        }

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()


def get_bucket_name(project_id: Optional[str] = None, settings: Optional[Settings] = None) -> str:
    """Build the output bucket name, e.g. ``yt2pdf-output`` or ``yt2pdf-output-myproject``."""
    settings = settings or get_settings()
    suffix = f"-{project_id}" if project_id else ""
    return f"{settings.bucket_prefix}-{settings.bucket_suffix}{suffix}"


def get_queue_name(settings: Optional[Settings] = None) -> str:
    """Get the default job queue name."""
    settings = settings or get_settings()
    return settings.queue_name


def describe_validation_error(error: ValidationError) -> List[str]:
    """Flatten a settings ValidationError into one line per field."""
    return [
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]
