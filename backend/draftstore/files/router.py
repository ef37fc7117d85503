"""FastAPI router for file upload, delete and download endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse

from ..config import get_config
from ..errors import FileRecordNotFoundError, FileValidationError, StorageIOError
from .adapters import get_adapter
from .schemas import DEFAULT_CONTEXT_ID, DRAFT_COMPONENT, DRAFT_FILEAREA, DeleteFileResponse
from .service import FileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/file", tags=["files"])


def get_download_url(request: Request, file_id: int) -> str:
    """Generate download URL for a file."""
    base_url = str(request.base_url).rstrip("/")
    return f"{base_url}/file/download/{file_id}"


def _form_int(form, name: str, default: Optional[int]) -> Optional[int]:
    """Integer form field, *default* when absent; ValueError when not a number."""
    value = form.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {name}: {value!r}") from None


def _find_upload(form, field_names):
    """First uploaded file found under any of *field_names*."""
    for name in field_names:
        for item in form.getlist(name):
            if not isinstance(item, str):
                return item
    return None


@router.post("/upload")
@router.post("/upload/{ui_library}")
async def upload_file(request: Request, ui_library: Optional[str] = None):
    """Upload a file into the draft area.

    The widget is chosen by the path, then the ``ui_library`` form field,
    then the configured default. Every upload gets a fresh draft item id,
    returned to the widget as ``draftitemid`` (or ``id`` for Dropzone).

    Form fields:
        <widget file field>: The file (qqfile, file, files[], Filedata, ...)
        contextid: Context id (default 1)
        userid: Uploading user id (optional)
        id: Plupload request id, echoed back

    Returns:
        The widget-specific success payload, or its error payload with
        400 (no file, non-numeric contextid or userid, rejected by
        validation) or 500 (storage failure).
    """
    form = await request.form()
    adapter = get_adapter(ui_library or form.get("ui_library"), get_config().upload.ui_library)

    upload = _find_upload(form, adapter.file_fields)
    if upload is None:
        return JSONResponse(adapter.error("No file uploaded", 400), status_code=400)

    try:
        context_id = _form_int(form, "contextid", DEFAULT_CONTEXT_ID)
        user_id = _form_int(form, "userid", None)
    except ValueError as e:
        logger.info("Upload rejected: %s", e)
        return JSONResponse(adapter.error(str(e), 400), status_code=400)

    service = FileService.get_instance()

    try:
        content = await upload.read()
        draft_item_id = await run_in_threadpool(service.lifecycle.new_draft_item_id)
        record = await run_in_threadpool(
            service.ingest.ingest,
            content,
            upload.filename or "unnamed",
            upload.content_type,
            upload.size,
            DRAFT_COMPONENT,
            DRAFT_FILEAREA,
            draft_item_id,
            context_id,
            user_id,
        )
    except FileValidationError as e:
        logger.info("Upload rejected: %s", e.message)
        return JSONResponse(adapter.error(e.message, 400), status_code=400)
    except StorageIOError as e:
        logger.error("File upload failed: %s", e.message)
        return JSONResponse(adapter.error(e.message, 500), status_code=500)

    download_url = get_download_url(request, record.id)
    request_id = form.get("id") or "id"
    return JSONResponse(adapter.success(record, download_url, request_id))


@router.api_route("/delete/{file_id}", methods=["DELETE", "POST"], response_model=DeleteFileResponse)
def delete_file(file_id: int) -> DeleteFileResponse:
    """Delete a file record, and its blob when no other record shares it.

    Raises:
        HTTPException 404: If the file does not exist
    """
    service = FileService.get_instance()
    if not service.lifecycle.delete_file(file_id):
        raise HTTPException(status_code=404, detail="File not found")
    return DeleteFileResponse(success=True, file_id=file_id)


@router.get("/download/{file_id}")
def download_file(file_id: int):
    """Download a file by ID.

    Images are served inline, everything else as an attachment.

    Raises:
        HTTPException 404: If the record or its blob is missing
    """
    service = FileService.get_instance()

    try:
        record = service.repository.get(file_id)
    except FileRecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    if not service.store.exists(record.content_hash):
        raise HTTPException(status_code=404, detail="Physical file not found")

    disposition = "attachment"
    if record.mimetype and record.mimetype.startswith("image/"):
        disposition = "inline"

    return FileResponse(
        path=service.store.full_path(record.content_hash),
        filename=record.filename or record.content_hash,
        media_type=record.mimetype or "application/octet-stream",
        content_disposition_type=disposition,
    )
