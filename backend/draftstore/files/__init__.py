"""File lifecycle module for Draftstore.

Uploads are stored once per distinct content (SHA-1, hash-sharded directory
tree) and tracked as file records in DuckDB. New uploads always land in the
draft area (component "user", filearea "draft"); forms later promote them into
a permanent area, and the retention sweeper reclaims drafts that were never
promoted.
"""

from .schemas import (
    DRAFT_COMPONENT,
    DRAFT_FILEAREA,
    FileRecord,
    FileUILibrary,
)
from .hooks import FileValidator, UploadCandidate, UploadHooks
from .repository import FileRecordRepository
from .ingest import UploadIngestService
from .lifecycle import DraftLifecycleManager
from .retention import RetentionSweeper
from .binding import DraftFieldBinder
from .service import FileService

__all__ = [
    "DRAFT_COMPONENT",
    "DRAFT_FILEAREA",
    "DraftFieldBinder",
    "DraftLifecycleManager",
    "FileRecord",
    "FileRecordRepository",
    "FileService",
    "FileUILibrary",
    "FileValidator",
    "RetentionSweeper",
    "UploadCandidate",
    "UploadHooks",
    "UploadIngestService",
]
