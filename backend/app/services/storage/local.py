"""Local disk storage under a StorageRoot. No index: every read is re-derived from the filesystem."""
import logging
import math
import os
import stat
from datetime import datetime, timezone
from pathlib import Path

from app.core.logging_redaction import log_event
from app.services.storage.base import StorageBackend
from app.services.storage.catalog import (
    FALLBACK_MIME,
    SizeLimits,
    extension_from_mime,
    format_file_size,
    mime_from_extension,
)
from app.services.storage.errors import StorageError, StorageErrorCode
from app.services.storage.filenames import (
    allocate_unique_filename,
    generate_filename,
    sanitize_filename,
    slugify,
)
from app.services.storage.models import (
    AvatarUpload,
    FileMetadata,
    ListResult,
    StorageFile,
    StorageFolder,
    StorageUsage,
    UploadRequest,
    parse_folder,
)
from app.services.storage.paths import AVATAR_BASENAME, StorageRoot
from app.services.storage.validation import validate_upload

logger = logging.getLogger("app.storage")

# Exclusive-create attempts before giving up on an upload (each retry re-runs the probe sequence)
_CREATE_ATTEMPTS = 10
_AVATAR_PREFIX = f"{AVATAR_BASENAME}."


def _timestamp(st: os.stat_result) -> datetime:
    # st_birthtime where the platform has it (macOS, BSD, Windows); ctime otherwise
    ts = getattr(st, "st_birthtime", None) or st.st_ctime
    return datetime.fromtimestamp(ts, tz=timezone.utc)


class LocalStorage(StorageBackend):
    """Disk storage: files under root/{images,documents}, avatars under root/avatars/{user_id}/."""

    def __init__(
        self,
        root: StorageRoot,
        limits: SizeLimits | None = None,
        max_probes: int = 1000,
        default_limit: int = 20,
        max_limit: int = 100,
        usage_scan_cap: int = 10000,
    ) -> None:
        self._root = root
        self._limits = limits or SizeLimits()
        self._max_probes = max_probes
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._usage_scan_cap = usage_scan_cap
        self._initialized = False

    @property
    def root(self) -> StorageRoot:
        return self._root

    def initialize(self) -> None:
        if self._initialized:
            return
        try:
            self._root.root.mkdir(parents=True, exist_ok=True)
            for folder in StorageFolder:
                self._root.folder_path(folder).mkdir(exist_ok=True)
        except OSError as e:
            log_event(logger, logging.ERROR, "Failed to initialize storage", exc_info=True, base_path=str(self._root.root))
            raise StorageError(StorageErrorCode.STORAGE_ERROR, "Failed to initialize storage system") from e
        self._initialized = True
        log_event(logger, logging.INFO, "Storage system initialized", base_path=str(self._root.root))

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    # ----- Files -----

    def upload(self, request: UploadRequest) -> StorageFile:
        self._ensure_initialized()
        safe_original = sanitize_filename(request.original_name)
        log_event(
            logger,
            logging.DEBUG,
            "Processing upload",
            original_name=safe_original,
            mime_type=request.mime_type,
            size_bytes=request.size,
        )
        folder = validate_upload(
            request.mime_type,
            request.size,
            request.buffer,
            folder=request.folder,
            limits=self._limits,
        )
        desired = generate_filename(safe_original, request.mime_type)

        for _ in range(_CREATE_ATTEMPTS):
            filename = allocate_unique_filename(desired, folder, self.exists, self._max_probes)
            path = self._root.file_path(folder, filename)
            try:
                # "x" mode: the create itself is the collision check, so concurrent uploads never clobber
                with open(path, "xb") as f:
                    f.write(request.buffer)
                break
            except FileExistsError:
                log_event(logger, logging.DEBUG, "Filename taken concurrently, re-probing", stored_name=filename, folder=folder.value)
            except OSError as e:
                log_event(logger, logging.ERROR, "Failed to write file", exc_info=True, stored_name=filename, folder=folder.value)
                raise StorageError(StorageErrorCode.STORAGE_ERROR) from e
        else:
            raise StorageError(StorageErrorCode.STORAGE_ERROR, "Could not allocate a unique filename", field="filename", value=desired)

        url = self._root.file_url(folder, filename)
        log_event(
            logger,
            logging.INFO,
            "File uploaded successfully",
            stored_name=filename,
            folder=folder.value,
            size_bytes=request.size,
            size_human=format_file_size(request.size),
            mime_type=request.mime_type,
        )
        return StorageFile(
            id=slugify(os.path.splitext(filename)[0]),
            filename=filename,
            original_name=safe_original,
            mime_type=request.mime_type,
            size=request.size,
            folder=folder,
            url=url,
            created_at=datetime.now(timezone.utc),
        )

    def delete(self, filename: str, folder: StorageFolder) -> None:
        self._ensure_initialized()
        folder = parse_folder(folder)
        path = self._root.file_path(folder, filename)
        try:
            if not path.is_file():
                raise FileNotFoundError(filename)
            path.unlink()
        except FileNotFoundError:
            raise StorageError(StorageErrorCode.FILE_NOT_FOUND, field="filename", value=filename) from None
        except OSError as e:
            log_event(logger, logging.ERROR, "Failed to delete file", exc_info=True, stored_name=filename, folder=folder.value)
            raise StorageError(StorageErrorCode.STORAGE_ERROR) from e
        log_event(logger, logging.INFO, "File deleted successfully", stored_name=filename, folder=folder.value)

    def _metadata(self, path: Path, folder: StorageFolder, st: os.stat_result) -> FileMetadata:
        return FileMetadata(
            filename=path.name,
            mime_type=mime_from_extension(path.suffix) or FALLBACK_MIME,
            size=st.st_size,
            folder=folder,
            url=self._root.file_url(folder, path.name),
            modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            created_at=_timestamp(st),
        )

    def _scan(self, folder: StorageFolder, sort: str = "desc") -> list[FileMetadata]:
        """All regular files directly in folder, sorted by creation time (filename breaks ties)."""
        base = self._root.folder_path(folder)
        try:
            with os.scandir(base) as it:
                entries = [e for e in it if e.is_file(follow_symlinks=False)]
        except FileNotFoundError:
            return []
        except OSError as e:
            log_event(logger, logging.ERROR, "Failed to list files", exc_info=True, folder=folder.value)
            raise StorageError(StorageErrorCode.STORAGE_ERROR) from e

        files: list[FileMetadata] = []
        for entry in entries:
            try:
                st = entry.stat(follow_symlinks=False)
            except OSError:
                # Removed mid-scan or unreadable: skip rather than fail the whole listing
                continue
            files.append(self._metadata(Path(entry.path), folder, st))
        files.sort(key=lambda m: (m.created_at, m.filename), reverse=(sort == "desc"))
        return files

    def list_files(
        self,
        folder: StorageFolder,
        page: int = 1,
        limit: int | None = None,
        sort: str = "desc",
    ) -> ListResult:
        self._ensure_initialized()
        folder = parse_folder(folder)
        page = max(1, int(page))
        limit = min(max(1, int(limit or self._default_limit)), self._max_limit)
        files = self._scan(folder, sort)
        total = len(files)
        start = (page - 1) * limit
        return ListResult(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
            files=files[start:start + limit],
        )

    def exists(self, filename: str, folder: StorageFolder) -> bool:
        self._ensure_initialized()
        try:
            return self._root.file_path(folder, filename).exists()
        except StorageError:
            return False
        except OSError:
            # ENAMETOOLONG and friends: nothing by that name can exist
            return False

    def get_metadata(self, filename: str, folder: StorageFolder) -> FileMetadata:
        self._ensure_initialized()
        folder = parse_folder(folder)
        path = self._root.file_path(folder, filename)
        try:
            st = path.stat()
        except (FileNotFoundError, NotADirectoryError):
            raise StorageError(StorageErrorCode.FILE_NOT_FOUND, field="filename", value=filename) from None
        except OSError as e:
            log_event(logger, logging.ERROR, "Failed to stat file", exc_info=True, stored_name=filename, folder=folder.value)
            raise StorageError(StorageErrorCode.STORAGE_ERROR) from e
        if not stat.S_ISREG(st.st_mode):
            raise StorageError(StorageErrorCode.FILE_NOT_FOUND, field="filename", value=filename)
        return self._metadata(path, folder, st)

    def get_usage(self, folder: StorageFolder) -> StorageUsage:
        self._ensure_initialized()
        files = self._scan(parse_folder(folder))
        return StorageUsage(
            count=len(files),
            total_size=sum(f.size for f in files[: self._usage_scan_cap]),
        )

    # ----- Avatars -----

    def _avatar_names(self, folder: Path) -> list[str]:
        return sorted(name for name in os.listdir(folder) if name.startswith(_AVATAR_PREFIX))

    def upload_user_avatar(self, user_id: str, buffer: bytes, mime_type: str, size: int) -> AvatarUpload:
        self._ensure_initialized()
        validate_upload(mime_type, size, buffer, limits=self._limits, images_only=True)
        folder = self._root.avatar_folder_path(user_id)
        filename = f"{AVATAR_BASENAME}{extension_from_mime(mime_type) or '.jpg'}"
        try:
            folder.mkdir(parents=True, exist_ok=True)
            for name in self._avatar_names(folder):
                try:
                    (folder / name).unlink()
                except FileNotFoundError:
                    continue
                log_event(logger, logging.INFO, "Deleted existing avatar", user_id=user_id, stored_name=name)
            (folder / filename).write_bytes(buffer)
        except OSError as e:
            log_event(logger, logging.ERROR, "Failed to write avatar file", exc_info=True, user_id=user_id)
            raise StorageError(StorageErrorCode.STORAGE_ERROR) from e

        url = self._root.avatar_url(user_id, filename)
        log_event(
            logger,
            logging.INFO,
            "User avatar uploaded successfully",
            user_id=user_id,
            stored_name=filename,
            size_bytes=size,
            mime_type=mime_type,
        )
        return AvatarUpload(url=url, filename=filename)

    def delete_user_avatar(self, user_id: str) -> None:
        self._ensure_initialized()
        folder = self._root.avatar_folder_path(user_id)
        not_found = StorageError(
            StorageErrorCode.FILE_NOT_FOUND, "No avatar found for this user", field="userId", value=user_id
        )
        try:
            names = self._avatar_names(folder)
            for name in names:
                (folder / name).unlink(missing_ok=True)
                log_event(logger, logging.INFO, "Deleted user avatar", user_id=user_id, stored_name=name)
        except (FileNotFoundError, NotADirectoryError):
            raise not_found from None
        except OSError as e:
            log_event(logger, logging.ERROR, "Failed to delete avatar", exc_info=True, user_id=user_id)
            raise StorageError(StorageErrorCode.STORAGE_ERROR) from e
        if not names:
            raise not_found

    def get_user_avatar_url(self, user_id: str) -> str | None:
        self._ensure_initialized()
        folder = self._root.avatar_folder_path(user_id)
        try:
            names = self._avatar_names(folder)
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            log_event(logger, logging.ERROR, "Failed to read avatar folder", exc_info=True, user_id=user_id)
            raise StorageError(StorageErrorCode.STORAGE_ERROR) from e
        if not names:
            return None
        return self._root.avatar_url(user_id, names[0])
