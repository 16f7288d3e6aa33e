"""Storage backend interface: upload, delete, list, metadata, usage, and the per-user avatar slot."""
from abc import ABC, abstractmethod

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


class StorageBackend(ABC):
    """Abstract storage. Every operation raises StorageError (never a raw OSError) on failure."""

    @property
    @abstractmethod
    def root(self) -> StorageRoot:
        """Path resolver for this backend (also used by the file-serving route)."""
        ...

    @abstractmethod
    def initialize(self) -> None:
        """Create the root and category folders if absent. Idempotent."""
        ...

    @abstractmethod
    def upload(self, request: UploadRequest) -> StorageFile:
        ...

    @abstractmethod
    def delete(self, filename: str, folder: StorageFolder) -> None:
        """Remove filename from folder. FILE_NOT_FOUND if absent."""
        ...

    @abstractmethod
    def list_files(
        self,
        folder: StorageFolder,
        page: int = 1,
        limit: int | None = None,
        sort: str = "desc",
    ) -> ListResult:
        """One page of files sorted by creation time. Missing folder or out-of-range page -> empty page."""
        ...

    @abstractmethod
    def exists(self, filename: str, folder: StorageFolder) -> bool:
        ...

    @abstractmethod
    def get_metadata(self, filename: str, folder: StorageFolder) -> FileMetadata:
        ...

    @abstractmethod
    def get_usage(self, folder: StorageFolder) -> StorageUsage:
        ...

    @abstractmethod
    def upload_user_avatar(self, user_id: str, buffer: bytes, mime_type: str, size: int) -> AvatarUpload:
        """Replace the user's avatar. Previous avatar.* files are removed before the write."""
        ...

    @abstractmethod
    def delete_user_avatar(self, user_id: str) -> None:
        ...

    @abstractmethod
    def get_user_avatar_url(self, user_id: str) -> str | None:
        """URL of the current avatar, or None when the user has none."""
        ...
