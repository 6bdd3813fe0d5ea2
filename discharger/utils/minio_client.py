from __future__ import annotations

import asyncio
from datetime import timedelta
from functools import lru_cache
from io import BytesIO

from minio import Minio

from discharger.config.settings import get_settings


class AsyncMinioClient:
    """Thin async wrapper around the MinIO SDK using thread executors."""

    def __init__(self) -> None:
        settings = get_settings()
        self.bucket = settings.minio_bucket
        self.endpoint = settings.minio_endpoint
        self.secure = settings.minio_secure
        self._client = Minio(
            endpoint=settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
        )

    async def ensure_bucket(self) -> None:
        try:
            exists = await asyncio.to_thread(
                self._client.bucket_exists,
                bucket_name=self.bucket,
            )
            if not exists:
                await asyncio.to_thread(self._client.make_bucket, bucket_name=self.bucket)
        except Exception as e:
            raise ConnectionError(f"MinIO connection failed: {e}. Please ensure MinIO is running on {self.endpoint}") from e

    async def upload(self, object_name: str, data: bytes, content_type: str) -> None:
        try:
            await self.ensure_bucket()
            await asyncio.to_thread(
                self._client.put_object,
                bucket_name=self.bucket,
                object_name=object_name,
                data=BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise ConnectionError(f"Failed to upload to MinIO: {e}") from e

    async def delete_file(self, object_name: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.remove_object,
                bucket_name=self.bucket,
                object_name=object_name,
            )
        except Exception as e:
            raise ConnectionError(f"Failed to delete file from MinIO: {e}") from e

    async def presigned_get_url(self, object_name: str, expires_seconds: int) -> str:
        try:
            return await asyncio.to_thread(
                self._client.presigned_get_object,
                bucket_name=self.bucket,
                object_name=object_name,
                expires=timedelta(seconds=expires_seconds),
            )
        except Exception as e:
            raise ConnectionError(f"Failed to sign MinIO URL: {e}") from e


@lru_cache
def get_minio_client() -> AsyncMinioClient:
    return AsyncMinioClient()
