"""User avatar routes: single-slot upload, lookup, delete. Caller identity is resolved upstream."""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status

from app.api.schemas import AvatarResponse, MessageResponse
from app.core.deps import client_identifier, get_storage_backend
from app.core.logging_redaction import log_event
from app.core.metrics import record_avatar_upload
from app.core.rate_limit import is_upload_rate_limited
from app.services.storage import StorageBackend, StorageError, StorageErrorCode

router = APIRouter(prefix="/users", tags=["avatars"])
logger = logging.getLogger("app.api.avatars")


@router.post("/{user_id}/avatar", response_model=AvatarResponse)
def upload_avatar(
    user_id: str,
    request: Request,
    file: UploadFile | None = File(None),
    storage: StorageBackend = Depends(get_storage_backend),
):
    if is_upload_rate_limited(client_identifier(request)):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Too many requests")
    if file is None:
        raise StorageError(StorageErrorCode.FILE_REQUIRED, "No file provided", field="file")
    content = file.file.read()
    result = storage.upload_user_avatar(user_id, content, file.content_type or "", len(content))
    record_avatar_upload()
    log_event(logger, logging.INFO, "Avatar uploaded", user_id=user_id, url=result.url)
    return AvatarResponse(url=result.url, filename=result.filename)


@router.get("/{user_id}/avatar", response_model=AvatarResponse)
def get_avatar(
    user_id: str,
    storage: StorageBackend = Depends(get_storage_backend),
):
    return AvatarResponse(url=storage.get_user_avatar_url(user_id))


@router.delete("/{user_id}/avatar", response_model=MessageResponse)
def delete_avatar(
    user_id: str,
    storage: StorageBackend = Depends(get_storage_backend),
):
    storage.delete_user_avatar(user_id)
    log_event(logger, logging.INFO, "Avatar deleted", user_id=user_id)
    return MessageResponse(message="Avatar deleted successfully")
