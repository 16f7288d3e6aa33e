"""Storage value types: folders, upload request, stored file, metadata, list page."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from app.services.storage.errors import StorageError, StorageErrorCode


class StorageFolder(str, Enum):
    """Top-level storage folders. AVATARS is server-internal and never listed."""

    IMAGES = "images"
    DOCUMENTS = "documents"
    AVATARS = "avatars"


PUBLIC_FOLDERS = (StorageFolder.IMAGES, StorageFolder.DOCUMENTS)


def is_public_folder(folder: str | StorageFolder) -> bool:
    return folder in {f.value for f in PUBLIC_FOLDERS}


def parse_folder(value: str | StorageFolder) -> StorageFolder:
    try:
        return StorageFolder(value)
    except ValueError:
        raise StorageError(StorageErrorCode.INVALID_FOLDER, field="folder", value=value) from None


@dataclass
class UploadRequest:
    """One upload; consumed once, never persisted."""

    buffer: bytes
    original_name: str
    mime_type: str
    size: int
    folder: StorageFolder | str | None = None


@dataclass(frozen=True)
class StorageFile:
    id: str
    filename: str
    original_name: str
    mime_type: str
    size: int
    folder: StorageFolder
    url: str
    created_at: datetime


@dataclass(frozen=True)
class FileMetadata:
    """Derived from stat + extension on every call; MIME is never taken from upload time."""

    filename: str
    mime_type: str
    size: int
    folder: StorageFolder
    url: str
    modified_at: datetime
    created_at: datetime


@dataclass(frozen=True)
class ListResult:
    page: int
    limit: int
    total: int
    total_pages: int
    files: list[FileMetadata] = field(default_factory=list)


@dataclass(frozen=True)
class StorageUsage:
    count: int
    total_size: int


@dataclass(frozen=True)
class AvatarUpload:
    url: str
    filename: str
