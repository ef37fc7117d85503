"""Pydantic schemas for the file lifecycle.

This module defines the data models shared by the lifecycle services and the
HTTP layer:
- FileRecord: one logical file (draft or permanent), persisted in DuckDB
- FileUILibrary: Enum of the browser upload widgets the router understands
- DeleteFileResponse: API response after a delete request

A record lives in the *draft area* while ``component == "user"`` and
``filearea == "draft"``; its ``item_id`` is then the draft item id that the
browser widget echoes back. Promotion rewrites the coordinates in place, so
the record keeps its identity and content hash for its whole life.
"""
import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


DRAFT_COMPONENT = "user"
DRAFT_FILEAREA = "draft"
DEFAULT_CONTEXT_ID = 1
ROOT_FILEPATH = "/"


class FileUILibrary(str, Enum):
    """Browser upload widgets with a server-side adapter."""
    FINE_UPLOADER = "fineuploader"
    DROPZONE = "dropzone"
    JQUERY_FILE_UPLOAD = "jquery_file_upload"
    PLUPLOAD = "plupload"
    UPLOADIFY = "uploadify"
    BLUIMP = "bluimp"


def _now() -> int:
    return int(time.time())


class FileRecord(BaseModel):
    """Metadata for one logical file.

    Several records may point at the same physical blob through
    ``content_hash``; the blob itself is owned by the content-addressed
    store. ``id`` stays ``None`` until the repository saves the record.
    """
    id: Optional[int] = Field(None, description="Identity assigned on first save")
    content_hash: str = Field("", description="SHA-1 of the file content; empty for placeholders")
    pathname_hash: str = Field("", description="SHA-1 of the original filename")
    context_id: int = Field(DEFAULT_CONTEXT_ID, description="Security/tenant context")
    component: str = Field(..., description="Owning subsystem")
    filearea: str = Field(..., description="Area within the component")
    item_id: int = Field(0, description="Draft item id, or owning entity id")
    filepath: str = Field(ROOT_FILEPATH, description="Logical directory path")
    filename: str = Field("", description="Original client-supplied filename")
    user_id: Optional[int] = Field(None, description="Owner")
    filesize: int = Field(0, description="Size in bytes")
    mimetype: Optional[str] = Field(None, description="MIME type")
    status: int = Field(0, description="0 = normal")
    source: Optional[str] = None
    author: Optional[str] = None
    license: Optional[str] = None
    time_created: int = Field(default_factory=_now, description="Epoch seconds")
    time_modified: int = Field(default_factory=_now, description="Epoch seconds")
    sort_order: int = 0
    reference_file_id: Optional[int] = Field(
        None, description="Permanent record this draft was copied from"
    )

    @property
    def is_draft(self) -> bool:
        return self.component == DRAFT_COMPONENT and self.filearea == DRAFT_FILEAREA

    @property
    def is_placeholder(self) -> bool:
        return self.content_hash == ""


class DeleteFileResponse(BaseModel):
    """Response from the delete endpoint."""
    success: bool = Field(..., description="Whether the file was deleted")
    file_id: int = Field(..., description="ID of the deleted file")
