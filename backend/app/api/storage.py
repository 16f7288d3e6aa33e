"""Storage routes: upload, delete, list, usage, and serving stored files from the same root."""
import logging
import stat
from dataclasses import asdict

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import FileResponse, Response

from app.api.schemas import (
    DeleteRequest,
    FileMetadataOut,
    ListResponse,
    MessageResponse,
    SortOrder,
    StorageFileOut,
    UploadResponse,
    UsageResponse,
)
from app.core.config import get_settings
from app.core.deps import client_identifier, get_storage_backend, parse_public_folder
from app.core.logging_redaction import log_event
from app.core.metrics import record_delete, record_upload
from app.core.rate_limit import is_upload_rate_limited
from app.services.storage import StorageBackend, StorageError, StorageErrorCode, StorageFolder, UploadRequest
from app.services.storage.catalog import FALLBACK_MIME, format_file_size, mime_from_extension
from app.services.storage.models import FileMetadata, StorageFile, parse_folder

router = APIRouter(prefix="/storage", tags=["storage"])
settings = get_settings()
logger = logging.getLogger("app.api.storage")

# Cache policy per folder: stored images and documents never change; the avatar slot is rewritten in place
CACHE_CONTROL = {
    StorageFolder.IMAGES: "public, max-age=31536000, immutable",
    StorageFolder.DOCUMENTS: "public, max-age=86400",
    StorageFolder.AVATARS: "public, max-age=0, must-revalidate",
}


def storage_file_out(f: StorageFile) -> StorageFileOut:
    return StorageFileOut(**{**asdict(f), "folder": f.folder.value})


def metadata_out(m: FileMetadata) -> FileMetadataOut:
    return FileMetadataOut(**{**asdict(m), "folder": m.folder.value})


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
def upload_file(
    request: Request,
    file: UploadFile | None = File(None),
    folder: str | None = Form(None),
    storage: StorageBackend = Depends(get_storage_backend),
):
    client = client_identifier(request)
    if is_upload_rate_limited(client):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many requests")
    if file is None:
        raise StorageError(StorageErrorCode.FILE_REQUIRED, field="file")
    target = parse_public_folder(folder) if folder else None
    content = file.file.read()
    result = storage.upload(
        UploadRequest(
            buffer=content,
            original_name=file.filename or "",
            mime_type=file.content_type or "",
            size=len(content),
            folder=target,
        )
    )
    record_upload(result.folder.value, result.size)
    log_event(logger, logging.INFO, "File uploaded", stored_name=result.filename, folder=result.folder.value, client_ip=client)
    return UploadResponse(data=storage_file_out(result))


@router.delete("/delete", response_model=MessageResponse)
def delete_file(
    body: DeleteRequest,
    storage: StorageBackend = Depends(get_storage_backend),
):
    folder = parse_public_folder(body.folder)
    storage.delete(body.filename, folder)
    record_delete(folder.value)
    return MessageResponse(message="File deleted successfully")


@router.get("/list", response_model=ListResponse)
def list_files(
    folder: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.list_default_limit, ge=1, le=settings.list_max_limit),
    sort: SortOrder = Query("desc"),
    storage: StorageBackend = Depends(get_storage_backend),
):
    result = storage.list_files(parse_public_folder(folder), page=page, limit=limit, sort=sort)
    return ListResponse(
        files=[metadata_out(m) for m in result.files],
        page=result.page,
        limit=result.limit,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.get("/usage", response_model=UsageResponse)
def storage_usage(
    folder: str | None = Query(None),
    storage: StorageBackend = Depends(get_storage_backend),
):
    target = parse_public_folder(folder)
    usage = storage.get_usage(target)
    return UsageResponse(
        folder=target.value,
        count=usage.count,
        total_size=usage.total_size,
        total_size_human=format_file_size(usage.total_size),
    )


@router.get("/files/{folder}/{file_path:path}")
def serve_file(
    folder: str,
    file_path: str,
    request: Request,
    storage: StorageBackend = Depends(get_storage_backend),
):
    """Serve stored bytes at request time so files written after startup are reachable immediately."""
    target = parse_folder(folder)
    if not file_path or ".." in file_path or "//" in file_path:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid path")
    path = storage.root.file_path(target, file_path)
    try:
        st = path.stat()
    except (FileNotFoundError, NotADirectoryError):
        raise StorageError(StorageErrorCode.FILE_NOT_FOUND, field="filename", value=file_path) from None
    except OSError as e:
        log_event(logger, logging.ERROR, "Failed to stat served file", exc_info=True, folder=target.value)
        raise StorageError(StorageErrorCode.STORAGE_ERROR) from e
    if not stat.S_ISREG(st.st_mode):
        raise StorageError(StorageErrorCode.FILE_NOT_FOUND, field="filename", value=file_path)
    etag = f'"{int(st.st_mtime * 1000):x}-{st.st_size:x}"'
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers={"ETag": etag})
    return FileResponse(
        path,
        media_type=mime_from_extension(path.suffix) or FALLBACK_MIME,
        headers={
            "Cache-Control": CACHE_CONTROL[target],
            "ETag": etag,
            "X-Content-Type-Options": "nosniff",
        },
    )
