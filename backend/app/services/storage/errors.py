"""Storage error taxonomy. One exception type; the code enum is the closed set of failure kinds."""
from enum import Enum
from typing import Any


class StorageErrorCode(str, Enum):
    FILE_REQUIRED = "FILE_REQUIRED"
    INVALID_MIME_TYPE = "INVALID_MIME_TYPE"
    MIME_MISMATCH = "MIME_MISMATCH"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_FOLDER = "INVALID_FOLDER"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    PATH_TRAVERSAL = "PATH_TRAVERSAL"
    STORAGE_ERROR = "STORAGE_ERROR"


STORAGE_MESSAGES: dict[StorageErrorCode, str] = {
    StorageErrorCode.FILE_REQUIRED: "File is required",
    StorageErrorCode.INVALID_MIME_TYPE: "File type is not allowed",
    StorageErrorCode.MIME_MISMATCH: "File content does not match declared type (possible spoofing attempt)",
    StorageErrorCode.FILE_TOO_LARGE: "File size exceeds the maximum allowed limit",
    StorageErrorCode.INVALID_FOLDER: "Invalid storage folder",
    StorageErrorCode.FILE_NOT_FOUND: "File not found",
    StorageErrorCode.PATH_TRAVERSAL: "Invalid file path",
    StorageErrorCode.STORAGE_ERROR: "Storage operation failed",
}

# HTTP status per code (mapping lives here so the API layer stays mechanical)
STATUS_CODES: dict[StorageErrorCode, int] = {
    StorageErrorCode.FILE_REQUIRED: 400,
    StorageErrorCode.INVALID_MIME_TYPE: 400,
    StorageErrorCode.MIME_MISMATCH: 400,
    StorageErrorCode.FILE_TOO_LARGE: 400,
    StorageErrorCode.INVALID_FOLDER: 400,
    StorageErrorCode.FILE_NOT_FOUND: 404,
    StorageErrorCode.PATH_TRAVERSAL: 500,
    StorageErrorCode.STORAGE_ERROR: 500,
}


class StorageError(Exception):
    """Typed storage failure carrying the offending field/value."""

    def __init__(
        self,
        code: StorageErrorCode,
        message: str | None = None,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        self.code = code
        self.message = message or STORAGE_MESSAGES[code]
        self.field = field
        self.value = value
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.code]

    @property
    def details(self) -> dict:
        out: dict[str, Any] = {"code": self.code.value}
        if self.field is not None:
            out["field"] = self.field
        if self.value is not None:
            out["value"] = self.value
        return out

    def __repr__(self) -> str:
        return f"StorageError({self.code.value}, field={self.field!r}, value={self.value!r})"
