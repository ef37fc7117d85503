"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from draftstore.config import AppConfig, reset_config, set_config
from draftstore.files.repository import FileRecordRepository
from draftstore.files.service import FileService
from draftstore.main import app
from draftstore.storage import ContentAddressedStore


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: int = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    """Content-addressed store rooted in a temp directory."""
    return ContentAddressedStore(tmp_path / "files")


@pytest.fixture
def repository(tmp_path):
    """File record repository backed by a temp DuckDB file."""
    repo = FileRecordRepository(db_path=str(tmp_path / "file_records.duckdb"))
    yield repo
    repo.close()


@pytest.fixture
def app_config(tmp_path):
    """Config pointing storage at temp paths."""
    config = AppConfig(
        storage={
            "path": str(tmp_path / "files"),
            "db_path": str(tmp_path / "file_records.duckdb"),
        },
        validation={"mime_types": ["text/plain", "image/png"], "max_size": "1K"},
    )
    set_config(config)
    yield config
    reset_config()


@pytest.fixture
def file_service(app_config):
    """FileService singleton built from app_config."""
    FileService.reset_instance()
    service = FileService.from_config(app_config)
    FileService.set_instance(service)
    yield service
    FileService.reset_instance()


@pytest.fixture
def api_client(file_service):
    """Provide a TestClient for the main FastAPI app backed by file_service."""
    return TestClient(app)
