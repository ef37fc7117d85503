"""Upload ingestion: the single path every widget adapter funnels through."""
import logging
import time
from typing import BinaryIO, Optional, Union

from ..storage import ContentAddressedStore, compute_hash
from .hooks import UploadCandidate, UploadHooks
from .repository import FileRecordRepository
from .schemas import DEFAULT_CONTEXT_ID, ROOT_FILEPATH, FileRecord

logger = logging.getLogger(__name__)


class UploadIngestService:
    """Validates, stores and records uploaded files."""

    def __init__(
        self,
        store: ContentAddressedStore,
        repository: FileRecordRepository,
        hooks: Optional[UploadHooks] = None,
        clock=time.time,
    ) -> None:
        self.store = store
        self.repository = repository
        self.hooks = hooks or UploadHooks()
        self._clock = clock

    def ingest(
        self,
        content: Union[bytes, BinaryIO],
        filename: str,
        mimetype: Optional[str],
        declared_size: Optional[int],
        component: str,
        filearea: str,
        item_id: int = 0,
        context_id: int = DEFAULT_CONTEXT_ID,
        user_id: Optional[int] = None,
        author: Optional[str] = None,
    ) -> FileRecord:
        """Store an uploaded file and create its record.

        Args:
            content: File bytes or a binary file object to read them from.
            filename: Original client filename.
            mimetype: Client-declared MIME type, may be None.
            declared_size: Size reported by the transport, may be None.
            component, filearea, item_id, context_id: Target coordinates.
            user_id: Uploading user.
            author: Display name stored on the record.

        Returns:
            The saved FileRecord.

        Raises:
            FileValidationError: A pre-upload hook rejected the file.
            StorageIOError: The blob could not be written; nothing was saved.
        """
        if not isinstance(content, (bytes, bytearray)):
            content = content.read()
        content = bytes(content)

        candidate = UploadCandidate(
            filename=filename,
            mimetype=mimetype,
            size=len(content),
            declared_size=declared_size,
            component=component,
            filearea=filearea,
            item_id=item_id,
            context_id=context_id,
            user_id=user_id,
        )
        self.hooks.run_pre_upload(candidate)

        pathname_hash = compute_hash(filename.encode("utf-8"))
        content_hash = self.store.write(content)
        full_path = self.store.full_path(content_hash)

        now = int(self._clock())
        record = FileRecord(
            content_hash=content_hash,
            pathname_hash=pathname_hash,
            context_id=context_id,
            component=component,
            filearea=filearea,
            item_id=item_id,
            filepath=ROOT_FILEPATH,
            filename=filename,
            user_id=user_id,
            filesize=len(content),
            mimetype=mimetype,
            status=0,
            author=author,
            time_created=now,
            time_modified=now,
            sort_order=0,
        )

        self.hooks.run_post_upload(candidate, record, full_path)

        self.repository.save(record)
        logger.info(
            "Ingested %s (%d bytes, hash=%s) as file %s in %s/%s/%s",
            filename, record.filesize, content_hash, record.id,
            component, filearea, item_id,
        )

        self.hooks.run_post_persist(record)
        return record
