"""S3 storage adapter."""

import logging
from typing import TYPE_CHECKING, Optional
from urllib.parse import quote

from botocore.exceptions import ClientError

from cloud_providers.aws.clients import AWSCredentials, create_aws_client
from cloud_providers.exceptions import NotFoundError
from cloud_providers.interfaces import (
    SignedUrlAction,
    SignedUrlOptions,
    StorageData,
    StorageDownloadResult,
    StorageProvider,
    StorageUploadOptions,
    read_storage_data,
)
from cloud_providers.settings import Settings, get_settings

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def _is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in NOT_FOUND_CODES


class S3StorageProvider(StorageProvider):
    """Handles object storage on AWS S3 (or an S3-compatible endpoint)."""

    def __init__(self,
                 region: Optional[str] = None,
                 endpoint_url: Optional[str] = None,
                 credentials: Optional[AWSCredentials] = None,
                 s3_client: Optional["S3Client"] = None,
                 settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.s3 = s3_client or create_aws_client(
            "s3",
            region=region,
            endpoint_url=endpoint_url or settings.s3_endpoint,
            credentials=credentials,
            settings=settings,
        )
        self.region = self.s3.meta.region_name

        logger.info("S3StorageProvider initialized")
        logger.info(f"  Endpoint: {endpoint_url or settings.s3_endpoint}")
        logger.info(f"  Region: {self.region}")

    async def upload(self, bucket: str, key: str, data: StorageData,
                     options: Optional[StorageUploadOptions] = None) -> str:
        options = options or StorageUploadOptions()
        params = {
            "Bucket": bucket,
            "Key": key,
            "Body": read_storage_data(data),
            "ContentType": options.content_type or DEFAULT_CONTENT_TYPE,
        }
        if options.cache_control:
            params["CacheControl"] = options.cache_control
        if options.metadata:
            params["Metadata"] = options.metadata
        if options.is_public:
            params["ACL"] = "public-read"

        try:
            self.s3.put_object(**params)
        except Exception as e:
            logger.error(f"Error uploading {bucket}/{key} to S3: {str(e)}")
            raise

        logger.info(f"Uploaded {key} to S3 bucket {bucket}")
        return f"https://{bucket}.s3.{self.region}.amazonaws.com/{quote(key, safe='')}"

    async def download(self, bucket: str, key: str) -> StorageDownloadResult:
        try:
            response = self.s3.get_object(Bucket=bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(bucket, key) from e
            logger.error(f"Error downloading {bucket}/{key} from S3: {str(e)}")
            raise

        return StorageDownloadResult(
            data=response["Body"].read(),
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            metadata=response.get("Metadata"),
        )

    async def get_signed_url(self, bucket: str, key: str, options: SignedUrlOptions) -> str:
        params = {"Bucket": bucket, "Key": key}
        if options.action == SignedUrlAction.WRITE:
            client_method = "put_object"
            if options.content_type:
                params["ContentType"] = options.content_type
        else:
            client_method = "get_object"

        return self.s3.generate_presigned_url(
            ClientMethod=client_method,
            Params=params,
            ExpiresIn=options.expires_in_seconds,
        )

    async def delete(self, bucket: str, key: str) -> None:
        # S3 deletes are already idempotent
        self.s3.delete_object(Bucket=bucket, Key=key)
        logger.debug(f"Deleted {key} from S3 bucket {bucket}")

    async def exists(self, bucket: str, key: str) -> bool:
        try:
            self.s3.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise


# Alias matching the factory naming
AWSStorageProvider = S3StorageProvider
