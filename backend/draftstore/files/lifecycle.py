"""Draft/permanent lifecycle of file records.

State transitions handled here:

    upload ──> Draft ──promote──> Permanent
                 ^                    │
                 └──copy_to_draft─────┘

New uploads always enter the draft area (component "user", filearea "draft",
item_id = draft item id). Promotion rewrites the coordinates of the same
record; it never copies bytes or changes the content hash. Editing an
existing attachment goes the other way by cloning the permanent record into a
fresh draft that remembers its origin in ``reference_file_id``.

Draft item ids are ``int(f"{epoch_seconds}{random 1000-9999}")``. They are a
correlation token for the browser widget, not a guaranteed-unique key, so
every draft lookup is scoped by component + filearea + item_id and takes the
first match.
"""
import logging
import random
import time
from typing import Callable, Optional

from ..storage import ContentAddressedStore
from .repository import FileRecordRepository
from .schemas import (
    DEFAULT_CONTEXT_ID,
    DRAFT_COMPONENT,
    DRAFT_FILEAREA,
    ROOT_FILEPATH,
    FileRecord,
)

logger = logging.getLogger(__name__)

# Fields copied verbatim when a permanent record is cloned into a draft.
_CLONED_FIELDS = (
    "content_hash", "pathname_hash", "context_id", "filepath", "filename",
    "user_id", "filesize", "mimetype", "status", "source", "author",
    "license", "sort_order",
)

_MAX_DRAFT_ID_ATTEMPTS = 5

_UNSET = object()


class DraftLifecycleManager:
    """Issues draft ids and moves records between draft and permanent areas."""

    def __init__(
        self,
        store: ContentAddressedStore,
        repository: FileRecordRepository,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.repository = repository
        self._clock = clock
        self._rng = rng or random.SystemRandom()

    def _now(self) -> int:
        return int(self._clock())

    # -----------------------------------------------------------------------
    # Draft ids
    # -----------------------------------------------------------------------

    def generate_draft_item_id(self) -> int:
        """Timestamp followed by a 4-digit random suffix."""
        return int(f"{self._now()}{self._rng.randint(1000, 9999)}")

    def new_draft_item_id(self) -> int:
        """A draft item id not currently used by any draft.

        Re-draws a few times on collision; after that the last id is returned
        anyway, since lookups tolerate duplicates.
        """
        draft_item_id = self.generate_draft_item_id()
        for _ in range(_MAX_DRAFT_ID_ATTEMPTS - 1):
            if self.find_draft(draft_item_id) is None:
                break
            logger.debug("Draft item id %s already in use, drawing again", draft_item_id)
            draft_item_id = self.generate_draft_item_id()
        return draft_item_id

    # -----------------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------------

    def find_draft(self, draft_item_id: int, user_id=_UNSET) -> Optional[FileRecord]:
        """First draft with *draft_item_id*, optionally restricted to *user_id*."""
        criteria = {
            "component": DRAFT_COMPONENT,
            "filearea": DRAFT_FILEAREA,
            "item_id": draft_item_id,
        }
        if user_id is not _UNSET:
            criteria["user_id"] = user_id
        return self.repository.find_one_by(**criteria)

    def find_draft_copy(self, source_file_id: int, user_id=_UNSET) -> Optional[FileRecord]:
        """The live draft cloned from *source_file_id*, if any."""
        criteria = {
            "component": DRAFT_COMPONENT,
            "filearea": DRAFT_FILEAREA,
            "reference_file_id": source_file_id,
        }
        if user_id is not _UNSET:
            criteria["user_id"] = user_id
        return self.repository.find_one_by(**criteria)

    # -----------------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------------

    def promote(
        self,
        draft_item_id: int,
        component: str,
        filearea: str,
        item_id: int,
        context_id: int,
    ) -> Optional[FileRecord]:
        """Move the draft *draft_item_id* into a permanent area.

        The destination component always replaces the "user" draft
        component. Returns None when no such draft exists, which is also what
        a repeated call for an already promoted draft returns.
        """
        record = self.find_draft(draft_item_id)
        if record is None:
            logger.info("No draft with item id %s to promote", draft_item_id)
            return None

        record.component = component
        record.filearea = filearea
        record.item_id = item_id
        record.context_id = context_id
        record.time_modified = self._now()
        self.repository.save(record)

        logger.info(
            "Promoted draft %s (file %s) to %s/%s/%s in context %s",
            draft_item_id, record.id, component, filearea, item_id, context_id,
        )
        return record

    def copy_to_draft(self, source_file_id: int, draft_item_id: int) -> Optional[FileRecord]:
        """Clone a permanent record into the draft area for editing.

        Earlier draft copies of the same source are deleted first, so at most
        one draft per original exists at a time. Returns None when the source
        record does not exist.
        """
        source = self.repository.find(source_file_id)
        if source is None:
            logger.info("Cannot copy file %s to draft: not found", source_file_id)
            return None

        previous = self.repository.find_by(
            component=DRAFT_COMPONENT,
            filearea=DRAFT_FILEAREA,
            reference_file_id=source_file_id,
        )
        for stale in previous:
            self.delete_file(stale.id)

        now = self._now()
        draft = FileRecord(
            component=DRAFT_COMPONENT,
            filearea=DRAFT_FILEAREA,
            item_id=draft_item_id,
            time_created=now,
            time_modified=now,
            reference_file_id=source.id,
            **{name: getattr(source, name) for name in _CLONED_FIELDS},
        )
        self.repository.save(draft)

        logger.info(
            "Copied file %s to draft %s (file %s), replaced %d earlier draft(s)",
            source_file_id, draft_item_id, draft.id, len(previous),
        )
        return draft

    def create_empty_draft_file(self, draft_item_id: int, user_id: Optional[int] = None) -> FileRecord:
        """Draft placeholder for a form field that has no file yet."""
        now = self._now()
        draft = FileRecord(
            content_hash="",
            pathname_hash="",
            context_id=DEFAULT_CONTEXT_ID,
            component=DRAFT_COMPONENT,
            filearea=DRAFT_FILEAREA,
            item_id=draft_item_id,
            filepath=ROOT_FILEPATH,
            filename="",
            user_id=user_id,
            filesize=0,
            mimetype="",
            status=0,
            author=None,
            time_created=now,
            time_modified=now,
            sort_order=0,
        )
        return self.repository.save(draft)

    def delete_file(self, file_id: int) -> bool:
        """Delete a record, and its blob if no other record shares the content.

        Returns:
            False if the record does not exist.
        """
        record = self.repository.find(file_id)
        if record is None:
            return False

        if not record.is_placeholder:
            others = self.repository.count_same_content(record.content_hash, exclude_ids=[record.id])
            self.store.delete_if_unreferenced(record.content_hash, others)

        self.repository.delete(record.id)
        logger.info("Deleted file %s (%s)", record.id, record.filename or "placeholder")
        return True
