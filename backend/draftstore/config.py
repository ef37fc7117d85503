"""Draftstore application configuration.

Loads settings from a single YAML file:
  * draftstore.settings.yaml: storage, validation, upload and retention settings

Relative storage paths are resolved against the settings file location so
the service behaves the same whether it is started from the project root or
from a deployment directory.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("draftstore.settings.yaml")

_SIZE_RE = re.compile(r"^\s*(\d+)\s*([KMG]?)B?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3}


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def parse_size(value: Union[int, str, None]) -> Optional[int]:
    """Parse a byte size that may carry a K/M/G suffix ("2M" -> 2097152)."""
    if value is None or isinstance(value, int):
        return value
    match = _SIZE_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid size value: {value!r}")
    number, unit = match.groups()
    return int(number) * _SIZE_UNITS[unit.upper()]


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000


class LoggingSettings(BaseModel):
    level: str = "info"


class StorageSettings(BaseModel):
    """Where blobs and file records live."""
    path:    str = "./var/files"
    db_path: str = "./var/file_records.duckdb"


class ValidationSettings(BaseModel):
    """Pre-upload policy. An empty mime_types list allows every type."""
    mime_types: List[str]    = Field(default_factory=list)
    max_size:   Optional[int] = None
    max_files:  int          = Field(default=1, ge=1)

    @field_validator("max_size", mode="before")
    @classmethod
    def _parse_max_size(cls, v):
        return parse_size(v)


class UploadSettings(BaseModel):
    ui_library: str = "fineuploader"


class RetentionSettings(BaseModel):
    days:      int = Field(default=7, ge=1)
    component: str = "user"


class AppConfig(BaseModel):
    server:     ServerSettings     = Field(default_factory=ServerSettings)
    logging:    LoggingSettings    = Field(default_factory=LoggingSettings)
    storage:    StorageSettings    = Field(default_factory=StorageSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    upload:     UploadSettings     = Field(default_factory=UploadSettings)
    retention:  RetentionSettings  = Field(default_factory=RetentionSettings)


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


def _base_dir_for(settings_path: Path) -> Path:
    """Directory that relative paths in *settings_path* are resolved from.

    A settings file kept in a ``config/`` directory belongs to the project
    root one level up; anywhere else the file's own directory is used.
    """
    settings_dir = settings_path.resolve().parent
    if settings_dir.name == "config":
        return settings_dir.parent
    return settings_dir


def _resolve(path: str, base_dir: Path) -> str:
    if path == ":memory:":
        return path
    candidate = Path(path)
    if candidate.is_absolute():
        return str(candidate)
    return str(base_dir / candidate)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


_config: Optional[AppConfig] = None


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load *settings_path* (default ``draftstore.settings.yaml``) into an AppConfig."""
    settings_path = Path(settings_path) if settings_path else SETTINGS_FILE
    data = _load_yaml(settings_path)

    config = AppConfig(**data)

    base_dir = _base_dir_for(settings_path)
    config.storage.path = _resolve(config.storage.path, base_dir)
    config.storage.db_path = _resolve(config.storage.db_path, base_dir)

    logger.info(
        "Settings loaded (storage=%s, db=%s, ui_library=%s, retention.days=%s)",
        config.storage.path,
        config.storage.db_path,
        config.upload.ui_library,
        config.retention.days,
    )
    return config


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: AppConfig) -> None:
    global _config
    _config = config


def reset_config() -> None:
    """Forget the cached config (for testing)."""
    global _config
    _config = None
