"""Tests for binding form fields to draft item ids."""
import pytest

from draftstore.errors import BindingError
from draftstore.files.binding import DraftFieldBinder, normalize_ids
from draftstore.files.ingest import UploadIngestService
from draftstore.files.lifecycle import DraftLifecycleManager


@pytest.fixture
def manager(store, repository, clock):
    return DraftLifecycleManager(store, repository, clock=clock)


@pytest.fixture
def ingest(store, repository, clock):
    return UploadIngestService(store, repository, clock=clock)


@pytest.fixture
def binder(manager):
    return DraftFieldBinder(manager, "profile", "avatar", item_id=42, context_id=7)


def upload(ingest, item_id, content=b"hello1234\n"):
    return ingest.ingest(content, "avatar.png", "image/png", len(content), "user", "draft", item_id)


class TestNormalizeIds:
    """Tests for normalize_ids."""

    def test_separated_strings(self):
        assert normalize_ids("1, 2;3 4") == [1, 2, 3, 4]

    def test_json_array(self):
        assert normalize_ids("[5, \"6\"]") == [5, 6]

    def test_lists_and_numbers(self):
        assert normalize_ids(["7", 8, "x"]) == [7, 8]
        assert normalize_ids(9) == [9]

    def test_empty_values(self):
        assert normalize_ids(None) == []
        assert normalize_ids("") == []
        assert normalize_ids(0) == []


class TestFromDraft:
    """Tests for DraftFieldBinder.from_draft (form submission)."""

    def test_promotes_draft_and_returns_file_id(self, binder, ingest, repository):
        draft = upload(ingest, 111)

        value = binder.from_draft("111")

        assert value == str(draft.id)
        record = repository.find(draft.id)
        assert (record.component, record.filearea, record.item_id, record.context_id) == (
            "profile", "avatar", 42, 7,
        )

    def test_non_draft_values_pass_through(self, binder):
        assert binder.from_draft("31337") == "31337"

    def test_empty_submission(self, binder):
        assert binder.from_draft("") is None

    def test_multiple_files(self, manager, ingest):
        first = upload(ingest, 111, b"one")
        second = upload(ingest, 222, b"two")
        binder = DraftFieldBinder(manager, "course", "attachments", item_id=3, max_files=5)

        assert binder.from_draft("111,222") == [str(first.id), str(second.id)]

    def test_item_id_resolved_at_submit(self, manager, ingest, repository):
        draft = upload(ingest, 111)
        binder = DraftFieldBinder(manager, "profile", "avatar", item_id_resolver=lambda: 99)

        binder.from_draft("111")

        assert repository.find(draft.id).item_id == 99

    def test_promotion_failure_raises_binding_error(self, binder, manager, ingest, monkeypatch):
        upload(ingest, 111)

        def fail(*args, **kwargs):
            raise RuntimeError("database gone")

        monkeypatch.setattr(manager, "promote", fail)

        with pytest.raises(BindingError) as exc_info:
            binder.from_draft("111")
        assert "database gone" in exc_info.value.message


class TestToDraft:
    """Tests for DraftFieldBinder.to_draft (form rendering)."""

    def test_empty_value(self, binder):
        assert binder.to_draft(None) is None
        assert binder.to_draft("") is None

    def test_permanent_file_copied_to_draft(self, binder, manager, ingest):
        upload(ingest, 111)
        file_id = binder.from_draft("111")

        draft_item_id = binder.to_draft(file_id)

        draft = manager.find_draft(int(draft_item_id))
        assert draft.reference_file_id == int(file_id)

    def test_rendering_twice_reuses_draft(self, binder, ingest, repository):
        upload(ingest, 111)
        file_id = binder.from_draft("111")

        first = binder.to_draft(file_id)
        second = binder.to_draft(file_id)

        assert first == second
        assert len(repository.find_by(component="user", filearea="draft")) == 1

    def test_draft_ids_recognised(self, binder, ingest):
        upload(ingest, 111)

        assert binder.to_draft("111") == "111"

    def test_unparseable_value_gets_placeholder(self, binder, manager):
        draft_item_id = binder.to_draft("not-an-id")

        draft = manager.find_draft(int(draft_item_id))
        assert draft.is_placeholder

    def test_missing_file_gets_placeholder(self, binder, manager):
        draft_item_id = binder.to_draft("424242")

        assert manager.find_draft(int(draft_item_id)).is_placeholder


class TestEditCycle:
    """Tests for replacing and clearing a field's files."""

    def test_replacing_file_deletes_original(self, binder, ingest, repository, store):
        upload(ingest, 111, b"old avatar")
        old_id = binder.from_draft("111")
        binder.to_draft(old_id)

        new = upload(ingest, 222, b"new avatar")
        new_id = binder.from_draft("222")

        assert new_id == str(new.id)
        assert repository.find(int(old_id)) is None
        assert repository.find(new.id).filearea == "avatar"

    def test_clearing_field_deletes_original(self, binder, ingest, repository):
        upload(ingest, 111)
        file_id = binder.from_draft("111")
        binder.to_draft(file_id)

        assert binder.from_draft(None) is None
        assert repository.find(int(file_id)) is None
