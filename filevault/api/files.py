"""Files service routes: list, upload, download and delete per-user files."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from filevault.api.deps import get_app_settings, get_storage
from filevault.core.access import get_principal
from filevault.core.config import Settings
from filevault.core.database import get_db
from filevault.core.errors import InternalError, NotFound, ValidationFailed
from filevault.models import StoredFile
from filevault.schemas.auth import Principal
from filevault.schemas.common import MessageResponse
from filevault.schemas.files import CascadeResponse, FileOut
from filevault.services.accounts import parse_user_id
from filevault.services.cascade import cascade_delete_files
from filevault.services.ownership import load_owned_file
from filevault.services.storage import FileStorage, UploadTooLargeError

logger = logging.getLogger(__name__)
router = APIRouter()

DEFAULT_MIME_TYPE = "application/octet-stream"


def _is_upload_file(obj: object) -> bool:
    """True if obj is an uploaded file (UploadFile or file-like with filename and read)."""
    if isinstance(obj, UploadFile):
        return True
    return (
        hasattr(obj, "read")
        and callable(getattr(obj, "read", None))
        and hasattr(obj, "filename")
    )


async def _get_upload_from_request(request: Request) -> UploadFile:
    """Return the multipart 'file' part (or the first file part). Other fields are ignored."""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type != "multipart/form-data":
        raise ValidationFailed("No file uploaded")
    form = await request.form()
    file = form.get("file")
    if file is None or not _is_upload_file(file):
        # Some clients send the file under another name; use first file-like part.
        file = next(
            (v for v in form.values() if _is_upload_file(v)),
            None,
        )
    if file is None or not getattr(file, "filename", None):
        raise ValidationFailed("No file uploaded")
    return file


@router.get("/", response_model=list[FileOut])
def list_files(
    principal: Annotated[Principal, Depends(get_principal)],
    db: Annotated[Session, Depends(get_db)],
) -> list[FileOut]:
    """Files owned by the caller, newest first."""
    rows = (
        db.query(StoredFile)
        .filter(StoredFile.user_id == principal.user_id)
        .order_by(StoredFile.uploaded_at.desc(), StoredFile.id.desc())
        .all()
    )
    return [FileOut.model_validate(r) for r in rows]


@router.post("/", response_model=FileOut, status_code=status.HTTP_201_CREATED)
async def upload_file(
    request: Request,
    principal: Annotated[Principal, Depends(get_principal)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
    storage: Annotated[FileStorage, Depends(get_storage)],
) -> FileOut:
    """
    Store an uploaded file for the caller.

    Send `multipart/form-data` with a field named `file`. The owner is always
    the authenticated caller; any owner field in the form is ignored. Metadata
    is written only after the bytes are on disk.
    """
    upload = await _get_upload_from_request(request)
    try:
        file_path, file_size = await run_in_threadpool(
            storage.save, upload.file, upload.filename, settings.MAX_UPLOAD_BYTES
        )
    except UploadTooLargeError as e:
        raise ValidationFailed(
            f"File size must not exceed {e.limit // (1024 * 1024)} MB."
        ) from e
    except OSError as e:
        logger.exception("Could not store upload for userId=%s", principal.user_id)
        raise InternalError() from e

    record = StoredFile(
        user_id=principal.user_id,
        file_name=upload.filename,
        file_path=file_path,
        file_size=file_size,
        file_type=upload.content_type or DEFAULT_MIME_TYPE,
    )
    try:
        db.add(record)
        db.commit()
    except Exception:
        db.rollback()
        try:
            storage.delete(file_path)
        except OSError as e:
            logger.warning("Could not remove orphaned upload at %s: %s", file_path, e)
        raise
    db.refresh(record)
    logger.info("Stored file id=%s for userId=%s (%s bytes)", record.id, record.user_id, file_size)
    return FileOut.model_validate(record)


@router.get("/{file_id}/download")
def download_file(
    file_id: str,
    principal: Annotated[Principal, Depends(get_principal)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_storage)],
) -> FileResponse:
    record = load_owned_file(db, file_id, principal)
    if not storage.exists(record.file_path):
        logger.warning("Bytes missing for file id=%s at %s", record.id, record.file_path)
        raise NotFound("File not found")
    return FileResponse(
        record.file_path,
        media_type=record.file_type,
        filename=record.file_name,
    )


@router.delete("/{file_id}", response_model=MessageResponse)
def delete_file(
    file_id: str,
    principal: Annotated[Principal, Depends(get_principal)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_storage)],
) -> MessageResponse:
    """Delete a file (owner or Admin). Byte removal after the record is best effort."""
    record = load_owned_file(db, file_id, principal)
    file_path = record.file_path
    db.delete(record)
    db.commit()
    try:
        storage.delete(file_path)
    except OSError as e:
        logger.warning("Could not delete bytes at %s: %s", file_path, e)
    return MessageResponse(message="File deleted successfully")


@router.delete("/users/{user_id}", response_model=CascadeResponse)
def delete_user_files(
    user_id: str,
    _admin: Annotated[Principal, Depends(get_principal)],
    db: Annotated[Session, Depends(get_db)],
    storage: Annotated[FileStorage, Depends(get_storage)],
) -> CascadeResponse:
    """Remove every file of a deleted account (Admin only; called by the users service)."""
    result = cascade_delete_files(db, parse_user_id(user_id), storage)
    if result.records_failed:
        raise InternalError()
    return CascadeResponse(
        message="User files deleted",
        files_deleted=result.records_deleted,
        storage_failures=result.storage_failures,
    )
