"""Upload validation: MIME allowlist, size ceiling per category, magic-byte sniffing, folder classification.

Checks run cheapest first and stop at the first failure. The byte comparison always runs before the
declared type is trusted for anything (the stored extension is derived from the validated MIME type).
"""
import logging

from app.core.config import get_settings
from app.core.logging_redaction import log_event
from app.services.storage.catalog import (
    ALLOWED_MIME_TYPES,
    SizeLimits,
    detect_mime_from_bytes,
    matches_signature,
    size_limits_from_settings,
)
from app.services.storage.errors import StorageError, StorageErrorCode
from app.services.storage.models import StorageFolder, is_public_folder

logger = logging.getLogger("app.storage.validation")

_settings = get_settings()
_LIMITS = size_limits_from_settings(_settings)


def is_content_type_allowed(content_type: str) -> bool:
    return content_type in ALLOWED_MIME_TYPES


def max_byte_size_for_mime(mime_type: str, limits: SizeLimits | None = None) -> int:
    return (limits or _LIMITS).for_mime(mime_type)


def infer_folder(mime_type: str) -> StorageFolder:
    if mime_type.startswith("image/"):
        return StorageFolder.IMAGES
    return StorageFolder.DOCUMENTS


def resolve_folder(requested: StorageFolder | str | None, mime_type: str) -> StorageFolder:
    """Explicit public folder wins; otherwise inferred from MIME. Avatars cannot be targeted directly."""
    if requested is None or requested == "":
        return infer_folder(mime_type)
    if not is_public_folder(requested):
        value = requested.value if isinstance(requested, StorageFolder) else requested
        raise StorageError(StorageErrorCode.INVALID_FOLDER, field="folder", value=value)
    return StorageFolder(requested)


def validate_upload(
    mime_type: str,
    size: int,
    buffer: bytes | None,
    folder: StorageFolder | str | None = None,
    limits: SizeLimits | None = None,
    images_only: bool = False,
) -> StorageFolder:
    """Return the target folder if the upload is acceptable; raise StorageError otherwise."""
    if not buffer:
        raise StorageError(StorageErrorCode.FILE_REQUIRED, field="file")

    if not is_content_type_allowed(mime_type) or (images_only and not mime_type.startswith("image/")):
        message = "Only image files are allowed for avatars" if images_only else None
        raise StorageError(StorageErrorCode.INVALID_MIME_TYPE, message, field="mimeType", value=mime_type)

    if size > max_byte_size_for_mime(mime_type, limits):
        raise StorageError(StorageErrorCode.FILE_TOO_LARGE, field="size", value=size)

    if not matches_signature(buffer, mime_type):
        log_event(
            logger,
            logging.WARNING,
            "MIME type mismatch detected (possible spoofing)",
            declared_mime=mime_type,
            detected_mime=detect_mime_from_bytes(buffer),
            size_bytes=size,
        )
        raise StorageError(StorageErrorCode.MIME_MISMATCH, field="file", value=mime_type)

    return resolve_folder(folder, mime_type)
