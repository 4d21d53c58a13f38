"""
Storage Service: S3-compatible object storage (boto3)
HealthMate API

store / delete / signed_url over a single bucket. boto3 is blocking, so every
call runs in a worker thread.
"""

import os
import time
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.exceptions import ConfigurationError, StorageError
from app.core.logging_config import RequestLogger

logger = logging.getLogger(__name__)
request_logger = RequestLogger(logger)


@dataclass
class StoredObject:
    id: str
    url: str
    format: str
    size: int


class S3StorageService:
    """No deduplication and no retry: a failed call raises StorageError."""

    def __init__(self):
        self._client = None
        self._bucket: str = settings.s3_bucket_name

    def _ensure_client(self):
        if self._client is not None:
            return self._client
        if not settings.storage_configured():
            raise ConfigurationError("S3_BUCKET_NAME is not configured")
        self._bucket = settings.s3_bucket_name
        self._client = boto3.client(
            "s3",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
            endpoint_url=settings.s3_endpoint_url or None,
        )
        logger.info("S3 client initialized, bucket: %s", self._bucket)
        return self._client

    def _public_url(self, key: str) -> str:
        if settings.s3_endpoint_url:
            return f"{settings.s3_endpoint_url.rstrip('/')}/{self._bucket}/{key}"
        return f"https://{self._bucket}.s3.{settings.aws_region}.amazonaws.com/{key}"

    # ── Public: store ────────────────────────────────────────────
    async def store(
        self,
        path: str,
        folder: str,
        desired_id: str,
        content_type: str,
        file_format: str,
    ) -> StoredObject:
        """Upload a local file under ``<folder>/<desired_id>.<format>``."""
        client = self._ensure_client()
        key = f"{folder.strip('/')}/{desired_id}.{file_format}"
        size = os.path.getsize(path)
        start = time.monotonic()
        try:
            await asyncio.to_thread(
                client.upload_file,
                path,
                self._bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 upload failed for %s: %s", key, e)
            raise StorageError(f"Failed to store file: {e}") from e

        request_logger.log_storage_call("store", key, (time.monotonic() - start) * 1000)
        return StoredObject(id=key, url=self._public_url(key), format=file_format, size=size)

    # ── Public: delete ───────────────────────────────────────────
    async def delete(self, storage_id: str) -> None:
        client = self._ensure_client()
        start = time.monotonic()
        try:
            await asyncio.to_thread(client.delete_object, Bucket=self._bucket, Key=storage_id)
        except (BotoCoreError, ClientError) as e:
            logger.error("S3 delete failed for %s: %s", storage_id, e)
            raise StorageError(f"Failed to delete file: {e}") from e
        request_logger.log_storage_call("delete", storage_id, (time.monotonic() - start) * 1000)

    # ── Public: signed URL ───────────────────────────────────────
    async def signed_url(self, storage_id: str, expires_in: Optional[int] = None) -> str:
        client = self._ensure_client()
        try:
            return await asyncio.to_thread(
                client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self._bucket, "Key": storage_id},
                ExpiresIn=expires_in or settings.signed_url_expiry_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to generate download URL for %s: %s", storage_id, e)
            raise StorageError(f"Failed to sign URL: {e}") from e


# Singleton
storage_service = S3StorageService()
