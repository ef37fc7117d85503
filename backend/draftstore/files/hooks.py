"""Upload hooks: extension points around ingestion.

Three hook points run for every upload:

- pre_upload(candidate): before hashing or any storage I/O. Raise
  FileValidationError to reject the upload.
- post_upload(candidate, record, full_path): after the blob is written, before
  the record is saved. May mutate the record.
- post_persist(record): after the record is saved. Failures are logged and
  never undo the save.

FileValidator is the built-in pre-upload hook enforcing the configured size
and MIME-type policy.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from ..errors import FileValidationError
from .schemas import FileRecord

logger = logging.getLogger(__name__)


@dataclass
class UploadCandidate:
    """An incoming upload as seen by pre-upload hooks.

    Attributes:
        filename: Client-supplied filename.
        mimetype: Client-declared MIME type (None if the transport had none).
        size: Actual byte length of the content.
        declared_size: Size reported by the transport, if any.
        component, filearea, item_id, context_id: Target coordinates.
        user_id: Uploading user, if known.
    """
    filename: str
    mimetype: Optional[str]
    size: int
    declared_size: Optional[int]
    component: str
    filearea: str
    item_id: int
    context_id: int
    user_id: Optional[int] = None


PreUploadHook = Callable[[UploadCandidate], None]
PostUploadHook = Callable[[UploadCandidate, FileRecord, Path], None]
PostPersistHook = Callable[[FileRecord], None]


@dataclass
class UploadHooks:
    """Registered callbacks, run in registration order."""
    pre_upload: List[PreUploadHook] = field(default_factory=list)
    post_upload: List[PostUploadHook] = field(default_factory=list)
    post_persist: List[PostPersistHook] = field(default_factory=list)

    def run_pre_upload(self, candidate: UploadCandidate) -> None:
        for hook in self.pre_upload:
            hook(candidate)

    def run_post_upload(self, candidate: UploadCandidate, record: FileRecord, full_path: Path) -> None:
        for hook in self.post_upload:
            hook(candidate, record, full_path)

    def run_post_persist(self, record: FileRecord) -> None:
        for hook in self.post_persist:
            try:
                hook(record)
            except Exception:
                logger.exception(
                    "post_persist hook %r failed for file %s", hook, record.id
                )


def format_bytes(size: int) -> str:
    """Human-readable byte count ("1.5 MB")."""
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(max(size, 0))
    unit = 0
    while value >= 1024 and unit < len(units) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {units[unit]}"


class FileValidator:
    """Pre-upload hook rejecting files by size and MIME type.

    Args:
        allowed_mime_types: Accepted MIME types; empty means all are allowed.
        max_size: Maximum size in bytes; None means unlimited.
    """

    def __init__(self, allowed_mime_types: Optional[List[str]] = None, max_size: Optional[int] = None) -> None:
        self.allowed_mime_types = list(allowed_mime_types or [])
        self.max_size = max_size

    def __call__(self, candidate: UploadCandidate) -> None:
        if self.max_size is not None and candidate.size > self.max_size:
            raise FileValidationError(
                f'File "{candidate.filename}" ({format_bytes(candidate.size)}) exceeds '
                f"the maximum allowed size ({format_bytes(self.max_size)})"
            )

        if self.allowed_mime_types and candidate.mimetype not in self.allowed_mime_types:
            raise FileValidationError(
                f'MIME type of file "{candidate.filename}" '
                f"({candidate.mimetype or 'unknown'}) is not allowed. "
                f"Allowed types: {', '.join(self.allowed_mime_types)}"
            )
