from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote, unquote, urlparse

from discharger.config.settings import get_settings
from discharger.db.models.document import Document
from discharger.utils.minio_client import get_minio_client
from discharger.utils.logger import get_logger

logger = get_logger(__name__)


class StorageService:
    def __init__(self) -> None:
        self.client = get_minio_client()
        self.signed_url_expiry = get_settings().signed_url_expiry_seconds

    async def store_file(self, path: str, data: bytes, content_type: str) -> str:
        logger.info("storage.upload.start", path=path)
        await self.client.upload(path, data, content_type)
        logger.info("storage.upload.completed", path=path)
        return path

    async def delete_file(self, path: str) -> None:
        logger.info("storage.delete_file.start", path=path)
        await self.client.delete_file(path)
        logger.info("storage.delete_file.completed", path=path)

    async def signed_url(self, path: str, expires_seconds: Optional[int] = None) -> str:
        return await self.client.presigned_get_url(path, expires_seconds or self.signed_url_expiry)

    def public_url(self, path: str) -> str:
        scheme = "https" if self.client.secure else "http"
        return f"{scheme}://{self.client.endpoint}/{self.client.bucket}/{quote(path)}"

    def derive_storage_path(self, document: Document) -> Optional[str]:
        """Object key of a document's blob, or None when it cannot be worked out.

        Checked in order: the storage_key column, ``metadata.storageKey``,
        then the path of ``s3_url`` after the bucket name.
        """
        if document.storage_key:
            return document.storage_key
        metadata = document.document_metadata or {}
        if metadata.get("storageKey"):
            return metadata["storageKey"]
        if document.s3_url:
            path = unquote(urlparse(document.s3_url).path)
            match = re.search(rf"/{re.escape(self.client.bucket)}/(.+)$", path)
            if match:
                return match.group(1)
        return None


_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
