"""
Python client for the storage API: upload, list, delete, usage, avatars.
Uploads retry transport errors, 429 and 5xx responses with exponential backoff; other 4xx rejections are final.
"""
import mimetypes
import time
from pathlib import Path

import httpx


class StorageClientError(Exception):
    """Typed API failure: code and message from the server's error envelope."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"{status_code} {code}: {message}")


def _raise_for_error(r: httpx.Response) -> None:
    if r.is_success or r.status_code == 304:
        return
    try:
        body = r.json()
    except ValueError:
        body = {}
    if isinstance(body, dict) and "code" in body:
        raise StorageClientError(r.status_code, body["code"], body.get("message", ""), body.get("details"))
    r.raise_for_status()


def _backoff(attempt: int) -> None:
    time.sleep((2**attempt) + (time.time() % 1))  # exponential backoff + jitter


class StorageClient:
    """Client for the storage service."""

    def __init__(self, base_url: str, timeout: float = 60.0, max_retries: int = 5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self._session: httpx.Client | None = None

    def _get_session(self) -> httpx.Client:
        if self._session is None:
            self._session = httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._session

    def _post_file_with_retry(self, url: str, path: Path, data: dict | None = None) -> dict:
        body = path.read_bytes()
        content_type, _ = mimetypes.guess_type(str(path))
        content_type = content_type or "application/octet-stream"
        last = self.max_retries - 1
        for attempt in range(self.max_retries):
            try:
                r = self._get_session().post(
                    url,
                    files={"file": (path.name, body, content_type)},
                    data=data or {},
                )
            except httpx.TransportError:
                if attempt == last:
                    raise
                _backoff(attempt)
                continue
            if (r.status_code >= 500 or r.status_code == 429) and attempt < last:
                _backoff(attempt)
                continue
            _raise_for_error(r)
            return r.json()
        raise StorageClientError(0, "STORAGE_ERROR", "Upload retries exhausted")

    def upload(self, path: str | Path, folder: str | None = None) -> dict:
        """Upload one file. Returns the stored file record (filename, url, size, ...)."""
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(p)
        data = {"folder": folder} if folder else None
        return self._post_file_with_retry("/api/storage/upload", p, data=data)["data"]

    def list_files(self, folder: str, page: int = 1, limit: int = 20, sort: str = "desc") -> dict:
        """One page: { files, page, limit, total, total_pages }."""
        r = self._get_session().get(
            "/api/storage/list",
            params={"folder": folder, "page": page, "limit": limit, "sort": sort},
        )
        _raise_for_error(r)
        return r.json()

    def delete(self, filename: str, folder: str) -> None:
        r = self._get_session().request(
            "DELETE",
            "/api/storage/delete",
            json={"filename": filename, "folder": folder},
        )
        _raise_for_error(r)

    def usage(self, folder: str) -> dict:
        r = self._get_session().get("/api/storage/usage", params={"folder": folder})
        _raise_for_error(r)
        return r.json()

    def upload_avatar(self, user_id: str, path: str | Path) -> str:
        """Replace the user's avatar. Returns its URL."""
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(p)
        return self._post_file_with_retry(f"/api/users/{user_id}/avatar", p)["url"]

    def delete_avatar(self, user_id: str) -> None:
        r = self._get_session().delete(f"/api/users/{user_id}/avatar")
        _raise_for_error(r)

    def avatar_url(self, user_id: str) -> str | None:
        r = self._get_session().get(f"/api/users/{user_id}/avatar")
        _raise_for_error(r)
        return r.json()["url"]

    def close(self) -> None:
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self) -> "StorageClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
