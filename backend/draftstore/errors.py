"""Error taxonomy for the file lifecycle.

Every error carries a human-readable ``message`` and a ``retryable`` flag so
that upload adapters can render it in their own protocol's error shape
without knowing which layer raised it.
"""
from typing import Optional


class FileBundleError(Exception):
    """Base class for all file lifecycle errors."""

    retryable: bool = False

    def __init__(self, message: str, retryable: Optional[bool] = None) -> None:
        super().__init__(message)
        self.message = message
        if retryable is not None:
            self.retryable = retryable


class FileValidationError(FileBundleError):
    """Upload rejected by a pre-upload policy (size, MIME type, ...)."""


class FileRecordNotFoundError(FileBundleError):
    """A file record that had to exist could not be found."""

    def __init__(self, file_id) -> None:
        super().__init__(f"File not found: {file_id}")
        self.file_id = file_id


class StorageIOError(FileBundleError):
    """Physical storage failed (mkdir, write, read)."""

    retryable = True


class BindingError(FileBundleError):
    """A form value could not be moved from the draft area."""
