"""Upload widget adapters.

Each browser upload widget posts the file under its own multipart field name
and expects its own JSON shape back. An adapter captures exactly those two
differences; everything else (draft id issuance, ingestion, error mapping)
is shared by the router.

Adapters are looked up by library key in ADAPTERS. Unknown keys fall back to
the configured default library, then to Fine Uploader.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .schemas import FileRecord, FileUILibrary

logger = logging.getLogger(__name__)

Payload = Union[Dict[str, Any], list]


def _is_image(record: FileRecord) -> bool:
    return bool(record.mimetype) and record.mimetype.startswith("image/")


# =============================================================================
# Response shapes
# =============================================================================


def _fineuploader_success(record: FileRecord, url: str, request_id: str) -> Payload:
    return {
        "success": True,
        "uuid": str(record.id),
        "name": record.filename,
        "size": record.filesize,
        "draftitemid": record.item_id,
    }


def _dropzone_success(record: FileRecord, url: str, request_id: str) -> Payload:
    return {
        "id": record.id,
        "name": record.filename,
        "size": record.filesize,
        "url": url,
    }


def _file_list_success(record: FileRecord, url: str, request_id: str) -> Payload:
    entry = {
        "name": record.filename,
        "size": record.filesize,
        "url": url,
        "draftitemid": record.item_id,
    }
    if _is_image(record):
        entry["thumbnailUrl"] = url
    return [entry]


def _plupload_success(record: FileRecord, url: str, request_id: str) -> Payload:
    return {
        "jsonrpc": "2.0",
        "result": {
            "name": record.filename,
            "size": record.filesize,
            "url": url,
            "draftitemid": record.item_id,
        },
        "id": request_id,
    }


def _uploadify_success(record: FileRecord, url: str, request_id: str) -> Payload:
    return {
        "success": True,
        "name": record.filename,
        "size": record.filesize,
        "url": url,
        "draftitemid": record.item_id,
    }


def _flagged_error(message: str, status_code: int) -> Payload:
    return {"success": False, "error": message}


def _plain_error(message: str, status_code: int) -> Payload:
    return {"error": message}


def _plupload_error(message: str, status_code: int) -> Payload:
    return {
        "jsonrpc": "2.0",
        "error": {"code": status_code, "message": message},
        "id": "id",
    }


# =============================================================================
# Registry
# =============================================================================


@dataclass(frozen=True)
class UploadAdapter:
    """Request/response conventions of one upload widget.

    Attributes:
        library: Widget this adapter serves.
        file_fields: Multipart field names holding the file, tried in order.
        success: Builds the success payload from (record, download_url, request_id).
        error: Builds the error payload from (message, status_code).
    """
    library: FileUILibrary
    file_fields: Tuple[str, ...]
    success: Callable[[FileRecord, str, str], Payload]
    error: Callable[[str, int], Payload]


ADAPTERS: Dict[FileUILibrary, UploadAdapter] = {
    adapter.library: adapter
    for adapter in (
        UploadAdapter(FileUILibrary.FINE_UPLOADER, ("qqfile", "file"), _fineuploader_success, _flagged_error),
        UploadAdapter(FileUILibrary.DROPZONE, ("file",), _dropzone_success, _plain_error),
        UploadAdapter(FileUILibrary.JQUERY_FILE_UPLOAD, ("files", "files[]", "file"), _file_list_success, _plain_error),
        UploadAdapter(FileUILibrary.PLUPLOAD, ("file",), _plupload_success, _plupload_error),
        UploadAdapter(FileUILibrary.UPLOADIFY, ("Filedata", "file"), _uploadify_success, _flagged_error),
        UploadAdapter(FileUILibrary.BLUIMP, ("files", "files[]", "file"), _file_list_success, _plain_error),
    )
}

DEFAULT_LIBRARY = FileUILibrary.FINE_UPLOADER


def resolve_library(requested: Optional[str], default: Optional[str] = None) -> FileUILibrary:
    """Map a library key to a known widget, falling back to *default* then Fine Uploader."""
    for key in (requested, default):
        if not key:
            continue
        try:
            return FileUILibrary(key)
        except ValueError:
            logger.debug("Unknown upload library %r", key)
    return DEFAULT_LIBRARY


def get_adapter(library: Union[FileUILibrary, str, None], default: Optional[str] = None) -> UploadAdapter:
    """Adapter for *library* (enum or key), with the documented fallback."""
    if isinstance(library, FileUILibrary):
        return ADAPTERS[library]
    return ADAPTERS[resolve_library(library, default)]
