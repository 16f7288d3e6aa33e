"""Prometheus metrics: request count by route/status, latency, uploads, rejections, deletes."""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total requests",
    ["method", "path", "status_class"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency",
    ["method", "path"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
UPLOAD_TOTAL = Counter(
    "storage_uploads_total",
    "Accepted uploads",
    ["folder"],
)
UPLOAD_BYTES = Counter(
    "storage_upload_bytes_total",
    "Bytes written by accepted uploads",
    ["folder"],
)
REJECTION_TOTAL = Counter(
    "storage_rejections_total",
    "Storage operations failed with a typed error",
    ["code"],
)
DELETE_TOTAL = Counter(
    "storage_deletes_total",
    "Deleted files",
    ["folder"],
)
AVATAR_UPLOAD_TOTAL = Counter(
    "storage_avatar_uploads_total",
    "Avatar uploads",
)


def _status_class(status: int) -> str:
    if status < 200:
        return "1xx"
    if status < 300:
        return "2xx"
    if status < 400:
        return "3xx"
    if status < 500:
        return "4xx"
    return "5xx"


def record_request(method: str, path: str, status_code: int, latency_seconds: float) -> None:
    path = path or "/"
    # Normalize path to avoid high cardinality (one label per folder, not per file or user)
    if path.startswith("/api/storage/files/"):
        folder = path[len("/api/storage/files/"):].split("/", 1)[0]
        if folder not in ("images", "documents", "avatars"):
            folder = "{folder}"
        path = f"/api/storage/files/{folder}/{{path}}"
    elif path.startswith("/api/users/") and path.endswith("/avatar"):
        path = "/api/users/{user_id}/avatar"
    sc = _status_class(status_code)
    REQUEST_COUNT.labels(method=method, path=path, status_class=sc).inc()
    REQUEST_LATENCY.labels(method=method, path=path).observe(latency_seconds)


def record_upload(folder: str, size: int) -> None:
    UPLOAD_TOTAL.labels(folder=folder).inc()
    UPLOAD_BYTES.labels(folder=folder).inc(size)


def record_rejection(code: str) -> None:
    REJECTION_TOTAL.labels(code=code).inc()


def record_delete(folder: str) -> None:
    DELETE_TOTAL.labels(folder=folder).inc()


def record_avatar_upload() -> None:
    AVATAR_UPLOAD_TOTAL.inc()


def get_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
