"""Tests for draft promotion, copy-to-draft and reference-counted deletion."""
import random

import pytest

from draftstore.files.ingest import UploadIngestService
from draftstore.files.lifecycle import DraftLifecycleManager

HELLO = b"hello1234\n"


@pytest.fixture
def manager(store, repository, clock):
    return DraftLifecycleManager(store, repository, clock=clock, rng=random.Random(4))


@pytest.fixture
def ingest(store, repository, clock):
    return UploadIngestService(store, repository, clock=clock)


class SequenceRandom:
    """Stand-in for random.Random returning preset values."""

    def __init__(self, values):
        self._values = iter(values)

    def randint(self, a, b):
        return next(self._values)


def upload(ingest, item_id, content=HELLO, filename="hello.txt", user_id=None):
    return ingest.ingest(content, filename, "text/plain", len(content), "user", "draft", item_id, user_id=user_id)


class TestDraftItemIds:
    """Tests for draft item id generation."""

    def test_id_is_timestamp_followed_by_four_digits(self, manager, clock):
        draft_item_id = manager.generate_draft_item_id()

        text = str(draft_item_id)
        assert text.startswith(str(clock.now))
        assert len(text) == len(str(clock.now)) + 4
        assert 1000 <= int(text[-4:]) <= 9999

    def test_new_id_redraws_on_collision(self, store, repository, clock, ingest):
        upload(ingest, int(f"{clock.now}1234"))
        manager = DraftLifecycleManager(store, repository, clock=clock, rng=SequenceRandom([1234, 5678]))

        assert manager.new_draft_item_id() == int(f"{clock.now}5678")


class TestPromote:
    """Tests for DraftLifecycleManager.promote."""

    def test_promote_rewrites_coordinates_in_place(self, manager, ingest, repository, clock):
        draft = upload(ingest, 111)
        clock.advance(60)

        promoted = manager.promote(111, "profile", "avatar", 42, 7)

        assert promoted.id == draft.id
        assert promoted.content_hash == draft.content_hash
        assert (promoted.component, promoted.filearea, promoted.item_id, promoted.context_id) == (
            "profile", "avatar", 42, 7,
        )
        assert promoted.time_modified == draft.time_created + 60
        assert manager.find_draft(111) is None
        assert repository.find(draft.id).component == "profile"

    def test_promote_twice_returns_none(self, manager, ingest):
        upload(ingest, 111)
        manager.promote(111, "profile", "avatar", 42, 7)

        assert manager.promote(111, "profile", "avatar", 42, 7) is None

    def test_promote_unknown_draft_returns_none(self, manager):
        assert manager.promote(999, "profile", "avatar", 42, 7) is None

    def test_find_draft_filters_by_user(self, manager, ingest):
        upload(ingest, 111, user_id=5)

        assert manager.find_draft(111, user_id=5) is not None
        assert manager.find_draft(111, user_id=6) is None
        assert manager.find_draft(111) is not None


class TestCopyToDraft:
    """Tests for DraftLifecycleManager.copy_to_draft."""

    def test_copy_clones_metadata(self, manager, ingest):
        upload(ingest, 111, user_id=5)
        original = manager.promote(111, "profile", "avatar", 42, 7)

        draft = manager.copy_to_draft(original.id, 222)

        assert draft.id != original.id
        assert draft.is_draft
        assert draft.item_id == 222
        assert draft.reference_file_id == original.id
        assert draft.content_hash == original.content_hash
        assert draft.filename == original.filename
        assert draft.context_id == 7
        assert draft.user_id == 5

    def test_copy_replaces_earlier_draft_copy(self, manager, ingest, repository, store):
        upload(ingest, 111)
        original = manager.promote(111, "profile", "avatar", 42, 7)

        first = manager.copy_to_draft(original.id, 222)
        second = manager.copy_to_draft(original.id, 333)

        assert repository.find(first.id) is None
        copies = repository.find_by(component="user", filearea="draft", reference_file_id=original.id)
        assert [c.id for c in copies] == [second.id]
        # The original still holds the blob
        assert store.exists(original.content_hash)

    def test_copy_of_missing_file_returns_none(self, manager):
        assert manager.copy_to_draft(424242, 222) is None

    def test_find_draft_copy(self, manager, ingest):
        upload(ingest, 111)
        original = manager.promote(111, "profile", "avatar", 42, 7)
        draft = manager.copy_to_draft(original.id, 222)

        assert manager.find_draft_copy(original.id).id == draft.id


class TestDeleteFile:
    """Tests for reference-counted deletion."""

    def test_shared_blob_survives_until_last_record(self, manager, ingest, store):
        r1 = upload(ingest, 1)
        r2 = upload(ingest, 2)

        assert manager.delete_file(r1.id) is True
        assert store.exists(r2.content_hash)

        assert manager.delete_file(r2.id) is True
        assert not store.exists(r2.content_hash)

    def test_delete_missing_record(self, manager):
        assert manager.delete_file(424242) is False

    def test_empty_draft_placeholder(self, manager, repository, store):
        placeholder = manager.create_empty_draft_file(555, user_id=9)

        assert placeholder.id is not None
        assert placeholder.is_placeholder
        assert placeholder.filesize == 0
        assert manager.find_draft(555, user_id=9).id == placeholder.id

        assert manager.delete_file(placeholder.id) is True
        assert repository.find(placeholder.id) is None
