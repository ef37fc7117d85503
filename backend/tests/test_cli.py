"""Tests for the draftstore maintenance CLI."""
import pytest
from typer.testing import CliRunner

from draftstore.cli import app
from draftstore.config import load_config, reset_config
from draftstore.files.ingest import UploadIngestService
from draftstore.files.service import FileService

runner = CliRunner()

LONG_AGO = 1_000_000_000


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "draftstore.settings.yaml"
    path.write_text(
        "storage:\n"
        "  path: files\n"
        "  db_path: file_records.duckdb\n",
        encoding="utf-8",
    )
    yield path
    reset_config()


def seed_draft(settings_file, created_at=None, component="user"):
    """Upload one draft straight through the services and close them again."""
    service = FileService.from_config(load_config(settings_file))
    try:
        ingest = service.ingest
        if created_at is not None:
            ingest = UploadIngestService(service.store, service.repository, clock=lambda: created_at)
        return ingest.ingest(b"hello1234\n", "hello.txt", "text/plain", 10, component, "draft", 1)
    finally:
        service.close()


def count_records(settings_file):
    service = FileService.from_config(load_config(settings_file))
    try:
        return len(service.repository.find_by())
    finally:
        service.close()


class TestCleanupDrafts:
    """Tests for `draftstore cleanup-drafts`."""

    def test_days_below_one_is_rejected(self, settings_file):
        seed_draft(settings_file, created_at=LONG_AGO)

        result = runner.invoke(app, ["cleanup-drafts", "--days", "0", "--config", str(settings_file)])

        assert result.exit_code == 1
        assert "--days must be at least 1" in result.output
        assert count_records(settings_file) == 1

    def test_nothing_to_delete(self, settings_file):
        seed_draft(settings_file)

        result = runner.invoke(app, ["cleanup-drafts", "-d", "7", "--config", str(settings_file)])

        assert result.exit_code == 0
        assert "nothing to delete" in result.output
        assert count_records(settings_file) == 1

    def test_old_drafts_deleted(self, settings_file, tmp_path):
        draft = seed_draft(settings_file, created_at=LONG_AGO)

        result = runner.invoke(app, ["cleanup-drafts", "--config", str(settings_file)])

        assert result.exit_code == 0
        assert "Deleted 1 old draft file(s)." in result.output
        assert count_records(settings_file) == 0
        assert not (tmp_path / "files" / "0f" / "2c" / "12" / draft.content_hash).exists()

    def test_component_option(self, settings_file):
        seed_draft(settings_file, created_at=LONG_AGO, component="course")

        result = runner.invoke(app, ["cleanup-drafts", "-c", "user", "--config", str(settings_file)])
        assert "nothing to delete" in result.output

        result = runner.invoke(app, ["cleanup-drafts", "-c", "course", "--config", str(settings_file)])
        assert "Deleted 1 old draft file(s)." in result.output

    def test_failure_reports_and_exits_nonzero(self, settings_file, monkeypatch):
        def broken(self, days, component="user"):
            raise RuntimeError("database is locked")

        monkeypatch.setattr("draftstore.files.retention.RetentionSweeper.sweep_days", broken)

        result = runner.invoke(app, ["cleanup-drafts", "--config", str(settings_file)])

        assert result.exit_code == 1
        assert "database is locked" in result.output
