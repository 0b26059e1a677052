"""Filesystem-backed storage provider for local development and tests."""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from cloud_providers.exceptions import NotFoundError, PathTraversalError, ReservedKeyError
from cloud_providers.interfaces import (
    SignedUrlOptions,
    StorageData,
    StorageDownloadResult,
    StorageProvider,
    StorageUploadOptions,
    read_storage_data,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
META_SUFFIX = ".meta.json"


class LocalStorageProvider(StorageProvider):
    """Stores objects as files under ``<base_dir>/<bucket>/<key>``.

    Content type, metadata and cache control are kept in a
    ``<file>.meta.json`` sidecar next to the content, so keys ending in
    that suffix are reserved and rejected with ReservedKeyError.
    """

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        self.base_dir = Path(base_dir or Path.cwd() / ".local-storage").resolve()
        logger.info("LocalStorageProvider initialized at: %s", self.base_dir)

    def _get_file_path(self, bucket: str, key: str) -> Path:
        resolved = (self.base_dir / bucket / key).resolve()
        if resolved != self.base_dir and self.base_dir not in resolved.parents:
            logger.error("Rejected storage key outside base directory: %s/%s", bucket, key)
            raise PathTraversalError(f"Path traversal detected for key: {bucket}/{key}")
        if resolved.name.endswith(META_SUFFIX):
            raise ReservedKeyError(f"Storage keys ending in {META_SUFFIX!r} are reserved: {bucket}/{key}")
        return resolved

    @staticmethod
    def _meta_path(file_path: Path) -> Path:
        return file_path.with_name(file_path.name + META_SUFFIX)

    async def upload(self, bucket: str, key: str, data: StorageData,
                     options: Optional[StorageUploadOptions] = None) -> str:
        file_path = self._get_file_path(bucket, key)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(read_storage_data(data))

        meta_path = self._meta_path(file_path)
        if options and (options.content_type or options.metadata or options.cache_control):
            with open(meta_path, "w") as f:
                json.dump({
                    "contentType": options.content_type,
                    "metadata": options.metadata,
                    "cacheControl": options.cache_control,
                }, f)
        elif meta_path.exists():
            # stale sidecar from a previous upload of the same key
            meta_path.unlink()

        logger.info("Uploaded %s/%s to %s", bucket, key, file_path)
        return file_path.as_uri()

    async def download(self, bucket: str, key: str) -> StorageDownloadResult:
        file_path = self._get_file_path(bucket, key)
        if not file_path.is_file():
            raise NotFoundError(bucket, key)

        data = file_path.read_bytes()
        content_type = DEFAULT_CONTENT_TYPE
        metadata = None

        meta_path = self._meta_path(file_path)
        if meta_path.exists():
            with open(meta_path, "r") as f:
                meta = json.load(f)
            content_type = meta.get("contentType") or content_type
            metadata = meta.get("metadata")

        return StorageDownloadResult(data=data, content_type=content_type, metadata=metadata)

    async def get_signed_url(self, bucket: str, key: str, options: SignedUrlOptions) -> str:
        # Nothing to sign locally, the file URI is the URL
        return self._get_file_path(bucket, key).as_uri()

    async def delete(self, bucket: str, key: str) -> None:
        file_path = self._get_file_path(bucket, key)
        file_path.unlink(missing_ok=True)
        self._meta_path(file_path).unlink(missing_ok=True)
        logger.debug("Deleted %s/%s", bucket, key)

    async def exists(self, bucket: str, key: str) -> bool:
        return self._get_file_path(bucket, key).is_file()
