"""Tests for the file lifecycle error classes."""
from draftstore.errors import (
    BindingError,
    FileBundleError,
    FileRecordNotFoundError,
    FileValidationError,
    StorageIOError,
)


class TestErrors:
    """Tests for message and retryable flags."""

    def test_default_flags(self):
        assert FileValidationError("too big").retryable is False
        assert BindingError("no draft").retryable is False
        assert StorageIOError("disk full").retryable is True

    def test_retryable_override(self):
        assert FileBundleError("busy", retryable=True).retryable is True
        assert StorageIOError("read-only", retryable=False).retryable is False

    def test_message_and_file_id(self):
        error = FileRecordNotFoundError(42)

        assert error.message == "File not found: 42"
        assert error.file_id == 42
        assert str(error) == "File not found: 42"
        assert isinstance(error, FileBundleError)
