"""File service for Draftstore.

Wires the content-addressed store, the DuckDB record repository, the upload
hooks and the lifecycle services into one process-wide object that the HTTP
router, the form binder and the CLI share.

Blobs are stored in: <storage_path>/<h[0:2]>/<h[2:4]>/<h[4:6]>/<h>
"""
import logging
from typing import Optional

from ..config import AppConfig, get_config
from ..storage import ContentAddressedStore
from .hooks import FileValidator, UploadHooks
from .ingest import UploadIngestService
from .lifecycle import DraftLifecycleManager
from .repository import FileRecordRepository
from .retention import RetentionSweeper

logger = logging.getLogger(__name__)


class FileService:
    """Composition root for the file lifecycle components."""

    _instance: Optional["FileService"] = None

    def __init__(
        self,
        storage_path: str,
        db_path: str,
        hooks: Optional[UploadHooks] = None,
    ) -> None:
        """Initialize the file service."""
        self.store = ContentAddressedStore(storage_path)
        self.repository = FileRecordRepository(db_path)
        self.hooks = hooks or UploadHooks()
        self.ingest = UploadIngestService(self.store, self.repository, self.hooks)
        self.lifecycle = DraftLifecycleManager(self.store, self.repository)
        self.sweeper = RetentionSweeper(self.store, self.repository)
        logger.info("FileService ready (storage=%s, db=%s)", storage_path, db_path)

    @classmethod
    def from_config(cls, config: AppConfig) -> "FileService":
        """Build a service whose validator follows *config.validation*."""
        hooks = UploadHooks()
        hooks.pre_upload.append(
            FileValidator(
                allowed_mime_types=config.validation.mime_types,
                max_size=config.validation.max_size,
            )
        )
        return cls(config.storage.path, config.storage.db_path, hooks)

    @classmethod
    def get_instance(cls) -> "FileService":
        """Get or create the singleton instance from the loaded config."""
        if cls._instance is None:
            cls._instance = cls.from_config(get_config())
        return cls._instance

    @classmethod
    def set_instance(cls, service: "FileService") -> None:
        cls._instance = service

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None

    def close(self) -> None:
        self.repository.close()
