"""Google Cloud Storage adapter."""

import logging
from datetime import timedelta
from typing import Optional

from google.api_core.exceptions import NotFound
from google.cloud import storage

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

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class GcsStorageProvider(StorageProvider):
    """Handles object storage on GCS. The SDK client is built on first use."""

    def __init__(self, client: Optional[storage.Client] = None,
                 project_id: Optional[str] = None,
                 settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self._client = client
        self._project_id = project_id or settings.google_cloud_project
        logger.info("GcsStorageProvider initialized (project=%s)", self._project_id or "<auto-detect>")

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client(project=self._project_id)
        return self._client

    def _blob(self, bucket: str, key: str):
        return self.client.bucket(bucket).blob(key)

    async def upload(self, bucket: str, key: str, data: StorageData,
                     options: Optional[StorageUploadOptions] = None) -> str:
        options = options or StorageUploadOptions()
        blob = self._blob(bucket, key)

        if options.metadata:
            blob.metadata = options.metadata
        if options.cache_control:
            blob.cache_control = options.cache_control

        try:
            blob.upload_from_string(
                read_storage_data(data),
                content_type=options.content_type or DEFAULT_CONTENT_TYPE,
            )
            if options.is_public:
                blob.make_public()
        except Exception as e:
            logger.error("Error uploading %s/%s to GCS: %s", bucket, key, str(e))
            raise

        logger.info("Uploaded %s to GCS bucket %s", key, bucket)
        return f"gs://{bucket}/{key}"

    async def download(self, bucket: str, key: str) -> StorageDownloadResult:
        try:
            blob = self.client.bucket(bucket).get_blob(key)
            if blob is None:
                raise NotFoundError(bucket, key)
            data = blob.download_as_bytes()
        except NotFound as e:
            raise NotFoundError(bucket, key) from e

        return StorageDownloadResult(
            data=data,
            content_type=blob.content_type or DEFAULT_CONTENT_TYPE,
            metadata=blob.metadata,
        )

    async def get_signed_url(self, bucket: str, key: str, options: SignedUrlOptions) -> str:
        method = "PUT" if options.action == SignedUrlAction.WRITE else "GET"
        return self._blob(bucket, key).generate_signed_url(
            version="v4",
            expiration=timedelta(seconds=options.expires_in_seconds),
            method=method,
            content_type=options.content_type,
        )

    async def delete(self, bucket: str, key: str) -> None:
        try:
            self._blob(bucket, key).delete()
        except NotFound:
            logger.debug("Delete of missing object %s/%s ignored", bucket, key)

    async def exists(self, bucket: str, key: str) -> bool:
        return self._blob(bucket, key).exists()


# Alias matching the factory naming
GCPStorageProvider = GcsStorageProvider
