"""Reclamation of stale drafts.

Drafts that were never promoted pile up whenever a user abandons a form. The
sweeper deletes drafts older than a threshold together with any blob that no
surviving record references.

The reference check and the blob delete are not atomic: a record created for
the same content between the two steps ends up pointing at a missing blob.
That window is accepted; there is no cross-process lock.
"""
import logging
import time
from typing import Callable, Optional

from ..errors import StorageIOError
from ..storage import ContentAddressedStore
from .repository import FileRecordRepository
from .schemas import DRAFT_COMPONENT, DRAFT_FILEAREA

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class RetentionSweeper:
    """Deletes old draft records and their unreferenced blobs."""

    def __init__(
        self,
        store: ContentAddressedStore,
        repository: FileRecordRepository,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.repository = repository
        self._clock = clock

    def sweep(
        self,
        max_age_seconds: int,
        component: str = DRAFT_COMPONENT,
        now: Optional[int] = None,
    ) -> int:
        """Delete drafts of *component* created more than *max_age_seconds* ago.

        Args:
            max_age_seconds: Age threshold; drafts created strictly before
                ``now - max_age_seconds`` are removed.
            component: Component whose drafts are swept.
            now: Reference time (epoch seconds), defaults to the clock.

        Returns:
            Number of records deleted.
        """
        now = int(self._clock()) if now is None else now
        threshold = now - max_age_seconds
        candidates = self.repository.find_older_than(threshold, component, DRAFT_FILEAREA)
        if not candidates:
            logger.info("No %s drafts older than %s", component, threshold)
            return 0

        candidate_ids = [c.id for c in candidates]
        deleted_hashes = set()
        failed_hashes = set()
        to_delete = []

        for record in candidates:
            content_hash = record.content_hash
            if content_hash in failed_hashes:
                # The blob stays for a kept draft, so every draft sharing it stays too
                logger.info("Keeping draft %s with its blob %s", record.id, content_hash)
                continue
            if content_hash and content_hash not in deleted_hashes:
                # Every candidate goes in this sweep, so only records outside
                # the batch keep a blob alive.
                others = self.repository.count_same_content(content_hash, exclude_ids=candidate_ids)
                try:
                    self.store.delete_if_unreferenced(content_hash, others)
                except StorageIOError as e:
                    logger.error("Keeping draft %s for the next sweep: %s", record.id, e.message)
                    failed_hashes.add(content_hash)
                    continue
                if others == 0:
                    deleted_hashes.add(content_hash)
            to_delete.append(record.id)

        deleted = self.repository.delete_many(to_delete)
        logger.info(
            "Swept %d of %d %s drafts older than %s (%d blobs released)",
            deleted, len(candidates), component, threshold, len(deleted_hashes),
        )
        return deleted

    def sweep_days(self, days: int, component: str = DRAFT_COMPONENT) -> int:
        """Convenience wrapper taking the threshold in days."""
        return self.sweep(days * SECONDS_PER_DAY, component)
