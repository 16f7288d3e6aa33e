"""Path resolver: absolute on-disk locations and public URLs under one storage root."""
import os
import re
from pathlib import Path
from urllib.parse import quote

from app.services.storage.errors import StorageError, StorageErrorCode
from app.services.storage.models import StorageFolder, parse_folder

AVATAR_BASENAME = "avatar"
_USER_ID = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class StorageRoot:
    """Handle on the storage root directory. Construct once per process (or per test) and pass around."""

    def __init__(self, root: str | os.PathLike, url_prefix: str = "/api/storage/files") -> None:
        self.root = Path(os.path.abspath(root))
        self.url_prefix = url_prefix.rstrip("/")

    def __repr__(self) -> str:
        return f"StorageRoot({str(self.root)!r})"

    def folder_path(self, folder: StorageFolder) -> Path:
        return self.root / parse_folder(folder).value

    def _contained(self, base: Path, name: str, field: str) -> Path:
        # normpath collapses ../ without touching the filesystem; the result must sit strictly below base
        candidate = os.path.normpath(os.path.join(base, name))
        if "\x00" in name or not candidate.startswith(str(base) + os.sep):
            raise StorageError(StorageErrorCode.PATH_TRAVERSAL, field=field, value=name)
        return Path(candidate)

    def file_path(self, folder: StorageFolder, filename: str) -> Path:
        """Absolute path of filename in folder; PATH_TRAVERSAL if it would escape the folder."""
        return self._contained(self.folder_path(folder), filename, "filename")

    def file_url(self, folder: StorageFolder, filename: str) -> str:
        return f"{self.url_prefix}/{parse_folder(folder).value}/{quote(filename)}"

    def avatar_folder_path(self, user_id: str) -> Path:
        if not _USER_ID.fullmatch(str(user_id)):
            raise StorageError(StorageErrorCode.PATH_TRAVERSAL, field="userId", value=user_id)
        return self._contained(self.folder_path(StorageFolder.AVATARS), str(user_id), "userId")

    def avatar_url(self, user_id: str, filename: str) -> str:
        return f"{self.url_prefix}/{StorageFolder.AVATARS.value}/{user_id}/{quote(filename)}"
