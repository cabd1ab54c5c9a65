"""Object Storage Port - Domain interface for S3-compatible storage.

This port defines the contract for storing, addressing and removing applicant
documents in object storage. Adapters implement it for S3, MinIO, or an
in-memory store in tests.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class StorageError(Exception):
    """Raised by adapters when the object store cannot complete a call."""
    pass


@dataclass
class StoredFile:
    """Metadata for a file stored in object storage.

    Attributes:
        storage_key: Object path (format: {user_id}/{unix_millis}_{slot}.pdf)
        sha256: SHA256 hash of file content (hex format)
        size_bytes: File size in bytes
        mime_type: MIME type of the file (e.g., 'application/pdf')
    """
    storage_key: str
    sha256: str
    size_bytes: int
    mime_type: str


class ObjectStoragePort(ABC):
    """Port interface for S3-compatible object storage operations.

    Key Design Principles:
    - Callers choose the storage key; the adapter never rewrites it
    - Records reference objects by key; URLs are issued on demand and expire
    - delete_file is idempotent (missing objects are not an error)

    Example Usage:
        storage = S3StorageAdapter(...)

        stored = await storage.put_object(
            storage_key=f"{user_id}/1718000000000_pre_employment.pdf",
            data=pdf_bytes,
            mime_type="application/pdf",
        )
        url = await storage.generate_presigned_url(stored.storage_key, 600)
    """

    @abstractmethod
    async def put_object(self, storage_key: str, data: bytes, mime_type: str) -> StoredFile:
        """Store bytes under the given key, replacing any existing object.

        Raises:
            StorageError: If upload fails or storage is unavailable
            ValueError: If data is empty
        """

    @abstractmethod
    async def delete_file(self, storage_key: str) -> bool:
        """Delete a file from object storage.

        Returns:
            bool: True if file was deleted, False if it didn't exist

        Raises:
            StorageError: If deletion fails
        """

    @abstractmethod
    async def file_exists(self, storage_key: str) -> bool:
        """Check if a file exists in object storage (HEAD request)."""

    @abstractmethod
    async def generate_presigned_url(
        self,
        storage_key: str,
        expires_in_seconds: int = 3600,
    ) -> str:
        """Generate a time-limited URL for direct download.

        Raises:
            FileNotFoundError: If file doesn't exist
            StorageError: If URL generation fails
        """
