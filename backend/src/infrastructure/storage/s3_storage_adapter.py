"""S3 Storage Adapter - Implementation of ObjectStoragePort using boto3.

Stores applicant PDFs in AWS S3, MinIO, or any other S3-compatible service
and issues presigned download URLs.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import asyncio
import hashlib
import logging
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from domain.documents.ports.object_storage_port import (
    ObjectStoragePort,
    StorageError,
    StoredFile,
)
from .storage_config import StorageConfig

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "Unknown")


class S3StorageAdapter(ObjectStoragePort):
    """S3-compatible storage adapter using boto3.

    Objects are written under the key chosen by the caller
    ({user_id}/{unix_millis}_{slot}.pdf). Every call is bounded by the
    configured connect/read timeout; the workflow adds its own wall-clock
    bound on top.

    Example:
        storage = S3StorageAdapter.from_config(load_storage_config())
        stored = await storage.put_object(
            storage_key=f"{user_id}/1718000000000_policy_rules.pdf",
            data=pdf_bytes,
            mime_type="application/pdf",
        )
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        timeout_seconds: float = 30.0,
    ):
        """Initialize S3 storage adapter.

        Raises:
            StorageError: If S3 client initialization fails
        """
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
                config=BotoConfig(
                    connect_timeout=timeout_seconds,
                    read_timeout=timeout_seconds,
                    retries={"max_attempts": 2, "mode": "standard"},
                ),
            )
            self.bucket_name = bucket_name
            self.region = region

            logger.info(
                f"Initialized S3 storage adapter: bucket={bucket_name}, "
                f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except (BotoCoreError, ValueError) as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

    @classmethod
    def from_config(cls, config: StorageConfig) -> "S3StorageAdapter":
        return cls(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
            timeout_seconds=config.timeout_seconds,
        )

    async def _call(self, action: str, operation: str, **params):
        """Run a blocking client call on a worker thread.

        Keeps the event loop free so the workflow's wall-clock timeout can
        cancel the await. ClientError and BotoCoreError become StorageError.
        """
        method = getattr(self.s3_client, operation)
        try:
            return await asyncio.to_thread(method, **params)
        except ClientError as e:
            code = _error_code(e)
            if code in _NOT_FOUND_CODES:
                raise
            logger.error(f"S3 {operation} failed: key={params.get('Key')}, error={code}")
            raise StorageError(f"Failed to {action}: {code}") from e
        except BotoCoreError as e:
            logger.error(f"S3 {operation} failed: key={params.get('Key')}, error={e}")
            raise StorageError(f"Failed to {action}: {e}") from e

    async def put_object(self, storage_key: str, data: bytes, mime_type: str) -> StoredFile:
        """Upload bytes under storage_key, replacing any existing object.

        Raises:
            ValueError: If data is empty
            StorageError: If the upload fails
        """
        if not data:
            raise ValueError("Cannot store empty file")

        digest = hashlib.sha256(data).hexdigest()
        try:
            await self._call(
                "upload file",
                "put_object",
                Bucket=self.bucket_name,
                Key=storage_key,
                Body=data,
                ContentType=mime_type,
                Metadata={"sha256": digest},
            )
        except ClientError as e:
            # 404 on put means the bucket is gone
            raise StorageError(f"Failed to upload file: {_error_code(e)}") from e

        logger.info(f"Uploaded {storage_key} ({len(data)} bytes)", extra={"storage_path": storage_key})
        return StoredFile(storage_key=storage_key, sha256=digest, size_bytes=len(data), mime_type=mime_type)

    async def delete_file(self, storage_key: str) -> bool:
        """Delete an object; False if it was already gone.

        Raises:
            StorageError: If deletion fails
        """
        if not await self.file_exists(storage_key):
            return False
        await self._call("delete file", "delete_object", Bucket=self.bucket_name, Key=storage_key)
        logger.info(f"Deleted {storage_key}", extra={"storage_path": storage_key})
        return True

    async def file_exists(self, storage_key: str) -> bool:
        try:
            await self._call("check file", "head_object", Bucket=self.bucket_name, Key=storage_key)
        except ClientError:
            return False
        return True

    async def generate_presigned_url(self, storage_key: str, expires_in_seconds: int = 3600) -> str:
        """Presigned GET URL valid for expires_in_seconds.

        Raises:
            FileNotFoundError: If the object doesn't exist
            StorageError: If URL generation fails
        """
        if not await self.file_exists(storage_key):
            raise FileNotFoundError(f"File not found: {storage_key}")
        return await self._call(
            "generate presigned URL",
            "generate_presigned_url",
            ClientMethod="get_object",
            Params={"Bucket": self.bucket_name, "Key": storage_key},
            ExpiresIn=expires_in_seconds,
        )

    async def verify_bucket_exists(self) -> bool:
        """Check the configured bucket at startup.

        Raises:
            StorageError: If the bucket is missing or unreachable
        """
        try:
            await self._call("verify bucket", "head_bucket", Bucket=self.bucket_name)
        except ClientError as e:
            raise StorageError(
                f"Bucket '{self.bucket_name}' does not exist. "
                f"Create it first or update S3_BUCKET_NAME."
            ) from e
        return True
