"""Pytest fixtures: storage rooted in tmp_path, test client, sample file bytes."""
import pytest
from httpx import ASGITransport, AsyncClient

from app.core.deps import get_storage_backend
from app.core.rate_limit import reset_rate_limits
from app.main import app
from app.services.storage import LocalStorage, StorageRoot

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x00" * 32
GIF_BYTES = b"GIF89a" + b"\x00" * 32
WEBP_BYTES = b"RIFF\x24\x00\x00\x00WEBPVP8 " + b"\x00" * 32
PDF_BYTES = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n" + b"0" * 32
DOCX_BYTES = b"PK\x03\x04\x14\x00\x06\x00" + b"\x00" * 32
SVG_BYTES = b'<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1"></svg>'


@pytest.fixture
def storage_root(tmp_path) -> StorageRoot:
    return StorageRoot(tmp_path / "storage")


@pytest.fixture
def storage(storage_root) -> LocalStorage:
    backend = LocalStorage(storage_root)
    backend.initialize()
    return backend


@pytest.fixture(autouse=True)
def _clear_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
async def client(storage):
    app.dependency_overrides[get_storage_backend] = lambda: storage
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
