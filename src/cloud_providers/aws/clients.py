"""AWS client construction shared by the S3 and SQS adapters."""
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import boto3

from cloud_providers.exceptions import ConfigurationError
from cloud_providers.settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AWSCredentials:
    access_key_id: str
    secret_access_key: str


def create_aws_client(service_name: str,
                      region: Optional[str] = None,
                      endpoint_url: Optional[str] = None,
                      credentials: Optional[AWSCredentials] = None,
                      settings: Optional[Settings] = None) -> Any:
    """Create a boto3 client, falling back to settings for anything not given.

    Credentials are only passed explicitly when both halves are known;
    otherwise boto3 resolves them itself (profile, IAM role, instance profile).

    Raises:
        ConfigurationError: if settings carry only one half of a key pair
    """
    settings = settings or get_settings()

    client_kwargs = {
        'region_name': region or settings.aws_region
    }

    if endpoint_url:
        client_kwargs['endpoint_url'] = endpoint_url

    if credentials is None:
        key_id, secret = settings.aws_access_key_id, settings.aws_secret_access_key
        if key_id and secret:
            credentials = AWSCredentials(key_id, secret)
        elif key_id or secret:
            missing = "AWS_SECRET_ACCESS_KEY" if key_id else "AWS_ACCESS_KEY_ID"
            raise ConfigurationError(
                f"Incomplete AWS credentials for {service_name} client: {missing} is missing",
                errors=[f"{missing} is missing"],
            )

    if credentials is not None:
        client_kwargs['aws_access_key_id'] = credentials.access_key_id
        client_kwargs['aws_secret_access_key'] = credentials.secret_access_key
    else:
        # Check for AWS profile in environment (for SSO)
        aws_profile = os.environ.get('AWS_PROFILE')
        if aws_profile:
            session = boto3.Session(profile_name=aws_profile)
            client = session.client(service_name, **client_kwargs)
            logger.debug(f"Created {service_name} client using profile: {aws_profile}")
            return client

    try:
        client = boto3.client(service_name, **client_kwargs)
        logger.debug(f"Created {service_name} client")
        return client
    except Exception as e:
        logger.error(f"Error creating {service_name} client: {str(e)}")
        raise
