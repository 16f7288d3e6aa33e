"""Application settings."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """App config from env."""

    app_name: str = "Media Storage Service"
    debug: bool = False
    # Structured logging: set LOG_JSON=1 for one-JSON-object-per-line (CloudWatch, etc.)
    log_json: bool = False
    # Metrics: if set, /metrics requires the X-Metrics-Secret header
    metrics_secret: str | None = None

    # CORS (strict allowlist; local dev uses the Next.js dev server)
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Storage root; relative paths resolve against the process cwd
    storage_root: str = "public/storage"
    # Files are served by the API route, not as static assets, so uploads are visible without a rebuild
    public_url_prefix: str = "/api/storage/files"

    # Upload limits per category
    max_byte_size_image_mb: int = 15
    max_byte_size_document_mb: int = 100
    max_byte_size_other_mb: int = 10

    # Listing
    list_default_limit: int = 20
    list_max_limit: int = 100
    usage_scan_cap: int = 10000  # getUsage lists at most this many files

    # Unique-name allocator: linear probes before falling back to a random suffix
    unique_name_max_probes: int = 1000

    # Rate limit
    upload_rate_limit_per_minute: int = 60  # per client IP

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
