# cli.py
import logging
import sys

import click
from pydantic import ValidationError

from cloud_providers.env_validator import validate_environment
from cloud_providers.settings import (
    VALID_PROVIDERS,
    describe_validation_error,
    get_bucket_name,
    get_settings,
)

logger = logging.getLogger(__name__)


def _load_settings():
    """Load settings, reporting invalid configuration and exiting with status 1."""
    try:
        return get_settings()
    except ValidationError as e:
        print("❌ Invalid configuration:")
        for error in describe_validation_error(e):
            print(f"❌ {error}")
        sys.exit(1)


@click.group()
def cli():
    """CLI commands for inspecting cloud provider configuration"""
    try:
        log_level = get_settings().log_level
    except ValidationError:
        # Reported by the subcommand itself
        log_level = "INFO"
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command()
def show_config():
    """Show current configuration"""
    settings = _load_settings()

    print("Current Configuration:")
    for key, value in settings.get_environment_dict().items():
        print(f"  {key}: {value if value not in (None, '') else '-'}")
    print(f"  Bucket Name: {get_bucket_name(settings=settings)}")


@cli.command()
@click.option("--provider",
              type=click.Choice(list(VALID_PROVIDERS)),
              default=None,
              help="Provider to validate (defaults to CLOUD_PROVIDER)")
def check_env(provider):
    """Validate provider configuration from the environment and .env"""
    settings = _load_settings()
    provider = provider or settings.cloud_provider
    result = validate_environment(provider, environ=settings.as_environ())

    for warning in result.warnings:
        print(f"⚠️  {warning}")

    if not result.valid:
        for error in result.errors:
            print(f"❌ {error}")
        sys.exit(1)

    print(f"✅ Environment is valid for '{provider}' provider")


if __name__ == "__main__":
    cli()
