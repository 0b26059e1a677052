"""
Environment validation for cloud providers.

Runs before any SDK client is constructed so that a misconfigured process
fails fast instead of half-initialising a backend. Each provider has a
static table of required/optional variables; AWS and GCP add backend
specific rules on top:

- AWS: access key id and secret must be supplied together. Neither is a
  warning (IAM role / instance profile is assumed). Missing region is a
  warning and falls back to ``us-east-1``.
- GCP: missing credentials file or project id are warnings only, since
  Application Default Credentials and project auto-detection may apply.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from cloud_providers.exceptions import ConfigurationError
from cloud_providers.settings import VALID_PROVIDERS

logger = logging.getLogger(__name__)


@dataclass
class EnvValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProviderRequirements:
    required: List[str]
    optional: List[str]
    defaults: Dict[str, str]


PROVIDER_REQUIREMENTS: Dict[str, ProviderRequirements] = {
    "local": ProviderRequirements(
        required=[],
        optional=["LOCAL_STORAGE_DIR"],
        defaults={"LOCAL_STORAGE_DIR": ".local-storage"},
    ),
    "aws": ProviderRequirements(
        required=[],
        optional=[
            "AWS_REGION",
            "AWS_ACCESS_KEY_ID",
            "AWS_SECRET_ACCESS_KEY",
            "AWS_ENDPOINT_URL",
            "AWS_S3_ENDPOINT",
            "AWS_SQS_ENDPOINT",
            "SQS_QUEUE_PREFIX",
        ],
        defaults={"AWS_REGION": "us-east-1"},
    ),
    "gcp": ProviderRequirements(
        required=[],
        optional=["GOOGLE_APPLICATION_CREDENTIALS", "GOOGLE_CLOUD_PROJECT", "GCLOUD_PROJECT"],
        defaults={},
    ),
}


def _is_set(environ: Mapping[str, str], name: str) -> bool:
    return (environ.get(name) or "").strip() != ""


def resolve_provider_name(provider: Optional[str] = None,
                          environ: Optional[Mapping[str, str]] = None) -> str:
    environ = os.environ if environ is None else environ
    name = provider or environ.get("CLOUD_PROVIDER") or "local"
    return str(getattr(name, "value", name)).strip().lower()


def _validate_aws(environ: Mapping[str, str], errors: List[str], warnings: List[str]) -> None:
    has_access_key_id = _is_set(environ, "AWS_ACCESS_KEY_ID")
    has_secret_access_key = _is_set(environ, "AWS_SECRET_ACCESS_KEY")

    if not has_access_key_id and not has_secret_access_key:
        warnings.append(
            "No AWS credentials found (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY). "
            "Assuming IAM role or instance profile authentication."
        )
    elif has_access_key_id and not has_secret_access_key:
        errors.append(
            "AWS_ACCESS_KEY_ID is set but AWS_SECRET_ACCESS_KEY is missing. "
            "Both credentials must be provided together."
        )
    elif has_secret_access_key and not has_access_key_id:
        errors.append(
            "AWS_SECRET_ACCESS_KEY is set but AWS_ACCESS_KEY_ID is missing. "
            "Both credentials must be provided together."
        )

    if not _is_set(environ, "AWS_REGION") and not _is_set(environ, "AWS_DEFAULT_REGION"):
        default_region = PROVIDER_REQUIREMENTS["aws"].defaults["AWS_REGION"]
        warnings.append(
            f"AWS_REGION not set, defaulting to {default_region}. "
            "Set AWS_REGION to specify a different region."
        )


def _validate_gcp(environ: Mapping[str, str], errors: List[str], warnings: List[str]) -> None:
    if not _is_set(environ, "GOOGLE_APPLICATION_CREDENTIALS"):
        warnings.append(
            "GOOGLE_APPLICATION_CREDENTIALS not set. "
            "Attempting to use Application Default Credentials (ADC). "
            'Ensure you have run "gcloud auth application-default login" or are running on GCP.'
        )

    if not _is_set(environ, "GOOGLE_CLOUD_PROJECT") and not _is_set(environ, "GCLOUD_PROJECT"):
        warnings.append(
            "GOOGLE_CLOUD_PROJECT or GCLOUD_PROJECT not set. "
            "The GCP client will attempt to auto-detect the project. "
            "Set GOOGLE_CLOUD_PROJECT to explicitly specify the project."
        )


def validate_environment(provider: Optional[str] = None,
                         environ: Optional[Mapping[str, str]] = None) -> EnvValidationResult:
    """Check the environment for a provider without raising.

    Args:
        provider: Provider name; falls back to CLOUD_PROVIDER, then ``local``
        environ: Mapping to validate instead of ``os.environ``

    Returns:
        EnvValidationResult with collected errors and warnings
    """
    environ = os.environ if environ is None else environ
    name = resolve_provider_name(provider, environ)

    errors: List[str] = []
    warnings: List[str] = []

    requirements = PROVIDER_REQUIREMENTS.get(name)
    if requirements is None:
        errors.append(f"Unknown cloud provider '{name}'. Choose from {list(VALID_PROVIDERS)}")
        return EnvValidationResult(valid=False, errors=errors, warnings=warnings)

    for var in requirements.required:
        if not _is_set(environ, var):
            errors.append(f"Missing required environment variable: {var}")

    if name == "aws":
        _validate_aws(environ, errors, warnings)
    elif name == "gcp":
        _validate_gcp(environ, errors, warnings)

    return EnvValidationResult(valid=not errors, errors=errors, warnings=warnings)


def validate_and_log_environment(provider: Optional[str] = None,
                                 environ: Optional[Mapping[str, str]] = None) -> EnvValidationResult:
    """Validate, log every warning, and raise on errors.

    Raises:
        ConfigurationError: if any error was found
    """
    name = resolve_provider_name(provider, environ)
    result = validate_environment(name, environ)

    for warning in result.warnings:
        logger.warning("Environment validation warning for '%s' provider: %s", name, warning)

    if not result.valid:
        message = "\n".join(
            [f"Environment validation failed for '{name}' provider:"]
            + [f"  - {error}" for error in result.errors]
        )
        logger.error(message)
        raise ConfigurationError(message, errors=result.errors, warnings=result.warnings)

    return result

