"""Storage backend factory: one LocalStorage per process, rooted at settings.storage_root."""
from functools import lru_cache

from app.core.config import get_settings
from app.services.storage.base import StorageBackend
from app.services.storage.catalog import size_limits_from_settings
from app.services.storage.errors import StorageError, StorageErrorCode
from app.services.storage.local import LocalStorage
from app.services.storage.models import (
    AvatarUpload,
    FileMetadata,
    ListResult,
    StorageFile,
    StorageFolder,
    StorageUsage,
    UploadRequest,
)
from app.services.storage.paths import StorageRoot


def build_storage(settings=None) -> LocalStorage:
    """Construct a storage handle from settings (tests pass their own root instead)."""
    settings = settings or get_settings()
    return LocalStorage(
        StorageRoot(settings.storage_root, url_prefix=settings.public_url_prefix),
        limits=size_limits_from_settings(settings),
        max_probes=settings.unique_name_max_probes,
        default_limit=settings.list_default_limit,
        max_limit=settings.list_max_limit,
        usage_scan_cap=settings.usage_scan_cap,
    )


@lru_cache
def get_storage() -> StorageBackend:
    """Return the process-wide storage backend."""
    return build_storage()


__all__ = [
    "AvatarUpload",
    "FileMetadata",
    "ListResult",
    "LocalStorage",
    "StorageBackend",
    "StorageError",
    "StorageErrorCode",
    "StorageFile",
    "StorageFolder",
    "StorageRoot",
    "StorageUsage",
    "UploadRequest",
    "build_storage",
    "get_storage",
]
