"""FastAPI dependencies: storage backend, folder parsing, client identity, metrics guard."""
from fastapi import Header, HTTPException, Request, status

from app.core.config import get_settings
from app.services.storage import StorageBackend, get_storage
from app.services.storage.errors import StorageError, StorageErrorCode
from app.services.storage.models import StorageFolder, is_public_folder


def get_storage_backend() -> StorageBackend:
    """Storage handle for request handlers. Tests override this via app.dependency_overrides."""
    return get_storage()


def parse_public_folder(value: str | None) -> StorageFolder:
    """images | documents. Avatars are server-internal and never addressable through listing routes."""
    if not value or not is_public_folder(value):
        raise StorageError(StorageErrorCode.INVALID_FOLDER, "Folder must be 'images' or 'documents'", field="folder", value=value)
    return StorageFolder(value)


def client_identifier(request: Request) -> str:
    """Best-effort client key for rate limiting: first X-Forwarded-For hop, else peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def require_metrics_access(
    x_metrics_secret: str | None = Header(None, alias="X-Metrics-Secret"),
) -> None:
    """Allow /metrics if no secret is configured (local) or the X-Metrics-Secret header matches."""
    s = get_settings()
    if s.metrics_secret and x_metrics_secret != s.metrics_secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing X-Metrics-Secret",
        )
