import logging

import pytest

from cloud_providers.env_validator import (
    PROVIDER_REQUIREMENTS,
    validate_and_log_environment,
    validate_environment,
)
from cloud_providers.exceptions import ConfigurationError


def test_local_needs_nothing():
    result = validate_environment("local", environ={})

    assert result.valid is True
    assert result.errors == []
    assert result.warnings == []


def test_provider_defaults_to_cloud_provider_variable():
    result = validate_environment(environ={"CLOUD_PROVIDER": "gcp"})

    # gcp without credentials or project only warns
    assert result.valid is True
    assert len(result.warnings) == 2


def test_unknown_provider_is_an_error():
    result = validate_environment("azure", environ={})

    assert result.valid is False
    assert "azure" in result.errors[0]


def test_aws_full_credentials_are_valid():
    result = validate_environment("aws", environ={
        "AWS_ACCESS_KEY_ID": "AKIA",
        "AWS_SECRET_ACCESS_KEY": "secret",
        "AWS_REGION": "eu-west-1",
    })

    assert result.valid is True
    assert result.warnings == []


def test_aws_without_credentials_warns_about_iam_role():
    result = validate_environment("aws", environ={"AWS_REGION": "eu-west-1"})

    assert result.valid is True
    assert len(result.warnings) == 1
    assert "IAM role" in result.warnings[0]


@pytest.mark.parametrize("environ, missing", [
    ({"AWS_ACCESS_KEY_ID": "AKIA"}, "AWS_SECRET_ACCESS_KEY is missing"),
    ({"AWS_SECRET_ACCESS_KEY": "secret"}, "AWS_ACCESS_KEY_ID is missing"),
    ({"AWS_ACCESS_KEY_ID": "AKIA", "AWS_SECRET_ACCESS_KEY": "   "}, "AWS_SECRET_ACCESS_KEY is missing"),
])
def test_aws_partial_credentials_are_an_error(environ, missing):
    result = validate_environment("aws", environ=environ)

    assert result.valid is False
    assert len(result.errors) == 1
    assert missing in result.errors[0]


def test_aws_missing_region_warns_with_default():
    result = validate_environment("aws", environ={
        "AWS_ACCESS_KEY_ID": "AKIA",
        "AWS_SECRET_ACCESS_KEY": "secret",
    })

    assert result.valid is True
    assert result.warnings == [
        "AWS_REGION not set, defaulting to us-east-1. Set AWS_REGION to specify a different region."
    ]


def test_aws_default_region_satisfies_region_check():
    result = validate_environment("aws", environ={
        "AWS_ACCESS_KEY_ID": "AKIA",
        "AWS_SECRET_ACCESS_KEY": "secret",
        "AWS_DEFAULT_REGION": "ap-southeast-1",
    })

    assert result.warnings == []


def test_gcp_with_credentials_and_legacy_project_is_clean():
    result = validate_environment("gcp", environ={
        "GOOGLE_APPLICATION_CREDENTIALS": "/secrets/sa.json",
        "GCLOUD_PROJECT": "my-project",
    })

    assert result.valid is True
    assert result.warnings == []


def test_gcp_missing_settings_only_warn():
    result = validate_environment("gcp", environ={})

    assert result.valid is True
    assert any("Application Default Credentials" in warning for warning in result.warnings)
    assert any("auto-detect" in warning for warning in result.warnings)


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "AKIA")

    assert validate_environment("aws").valid is False


def test_requirements_table_covers_every_provider():
    assert set(PROVIDER_REQUIREMENTS) == {"local", "aws", "gcp"}
    assert PROVIDER_REQUIREMENTS["aws"].defaults["AWS_REGION"] == "us-east-1"


def test_validate_and_log_raises_with_errors_and_warnings():
    with pytest.raises(ConfigurationError) as exc_info:
        validate_and_log_environment("aws", environ={"AWS_ACCESS_KEY_ID": "AKIA"})

    error = exc_info.value
    assert "Environment validation failed for 'aws' provider" in str(error)
    assert len(error.errors) == 1
    # missing region is still reported as a warning
    assert len(error.warnings) == 1


def test_validate_and_log_logs_warnings(caplog):
    with caplog.at_level(logging.WARNING, logger="cloud_providers.env_validator"):
        result = validate_and_log_environment("gcp", environ={})

    assert result.valid is True
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 2
