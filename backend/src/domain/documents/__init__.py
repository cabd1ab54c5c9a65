"""Documents domain module - upload validation and object storage port"""

from .validation import (
    DocumentUpload,
    is_supported_mime_type,
    validate_file_size,
    validate_filename,
    validate_upload,
    sanitize_filename,
    SUPPORTED_MIME_TYPES,
    MAX_FILE_SIZE,
)
from .ports.object_storage_port import ObjectStoragePort, StorageError, StoredFile

__all__ = [
    "DocumentUpload",
    "is_supported_mime_type",
    "validate_file_size",
    "validate_filename",
    "validate_upload",
    "sanitize_filename",
    "SUPPORTED_MIME_TYPES",
    "MAX_FILE_SIZE",
    "ObjectStoragePort",
    "StorageError",
    "StoredFile",
]
