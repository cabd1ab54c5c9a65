"""File validation utilities for applicant document uploads

Applicants upload signed PDFs only. Content is not inspected beyond the
declared MIME type and the PDF magic bytes.
"""

import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple


# Supported MIME types (signed forms are always PDF)
SUPPORTED_MIME_TYPES = {
    'application/pdf',
}

PDF_MAGIC = b'%PDF-'

# File size limit (default 10MB, configurable via env)
MAX_FILE_SIZE = int(os.getenv('MAX_UPLOAD_SIZE_BYTES', 10 * 1024 * 1024))


@dataclass
class DocumentUpload:
    """One uploaded file destined for a document slot.

    Attributes:
        filename: Original client filename
        content_type: Declared MIME type
        data: Raw file bytes
    """
    filename: str
    content_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def is_supported_mime_type(mime_type: Optional[str]) -> bool:
    """Check if MIME type is supported for upload

    Example:
        >>> is_supported_mime_type('application/pdf')
        True
        >>> is_supported_mime_type('image/png')
        False
    """
    return mime_type in SUPPORTED_MIME_TYPES


def validate_file_size(size_bytes: int, max_size: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Args:
        size_bytes: File size in bytes
        max_size: Maximum allowed size (defaults to MAX_FILE_SIZE)

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> validate_file_size(1024)
        (True, None)
        >>> validate_file_size(0)
        (False, 'File is empty (0 bytes)')
    """
    if max_size is None:
        max_size = MAX_FILE_SIZE

    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate a client-supplied filename

    Validation rules:
    - Not empty
    - Max 255 characters
    - No path traversal (../, ..\\)
    - No null bytes or control characters

    Example:
        >>> validate_filename('pre-employment.pdf')
        (True, None)
        >>> validate_filename('')
        (False, 'Filename cannot be empty')
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if '..' in filename or '/' in filename or '\\' in filename:
        return False, "Filename contains path traversal or directory separators"

    if '\x00' in filename:
        return False, "Filename contains null bytes"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe use in logs and object metadata

    Example:
        >>> sanitize_filename('../../form.pdf')
        'form.pdf'
        >>> sanitize_filename('policy (signed).pdf')
        'policy_signed_.pdf'
    """
    filename = os.path.basename(filename)
    filename = re.sub(r'[^\w\s.-]', '_', filename)
    filename = re.sub(r'[\s_]+', '_', filename)

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[:255 - len(ext)] + ext

    return filename


def validate_upload(upload: DocumentUpload, max_size: Optional[int] = None) -> Optional[str]:
    """Run every upload check and return the first problem found.

    Returns:
        Error message, or None when the upload is acceptable
    """
    is_valid, error = validate_filename(upload.filename)
    if not is_valid:
        return error

    if not is_supported_mime_type(upload.content_type):
        return f"Unsupported file type '{upload.content_type}'. Please upload a PDF file"

    is_valid, error = validate_file_size(upload.size_bytes, max_size)
    if not is_valid:
        return error

    if not upload.data.startswith(PDF_MAGIC):
        return "File content is not a PDF document"

    return None
