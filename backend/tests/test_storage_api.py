"""HTTP surface: upload, delete, list, usage, file serving, avatars, error envelope, metrics."""
import pytest
from httpx import AsyncClient

from app.core import deps, rate_limit
from app.core.config import get_settings
from app.services.storage import StorageFolder
from conftest import JPEG_BYTES, PDF_BYTES, PNG_BYTES


async def _upload(client: AsyncClient, name="photo.png", body=PNG_BYTES, mime="image/png", folder=None):
    data = {"folder": folder} if folder else {}
    return await client.post("/api/storage/upload", files={"file": (name, body, mime)}, data=data)


@pytest.mark.asyncio
async def test_upload_returns_created_file(client: AsyncClient):
    r = await _upload(client, name="Team Photo.png")
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["data"]["filename"] == "team-photo.png"
    assert body["data"]["folder"] == "images"
    assert body["data"]["url"] == "/api/storage/files/images/team-photo.png"
    assert body["data"]["size"] == len(PNG_BYTES)


@pytest.mark.asyncio
async def test_upload_spoofed_file_is_400(client: AsyncClient):
    r = await _upload(client, name="evil.png", body=PDF_BYTES, mime="image/png")
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["code"] == "MIME_MISMATCH"
    assert body["details"]["code"] == "MIME_MISMATCH"


@pytest.mark.asyncio
async def test_upload_disallowed_type_is_400(client: AsyncClient):
    r = await _upload(client, name="page.html", body=b"<html></html>", mime="text/html")
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_MIME_TYPE"


@pytest.mark.asyncio
async def test_upload_without_file_is_400(client: AsyncClient):
    r = await client.post("/api/storage/upload", data={"folder": "images"})
    assert r.status_code == 400
    assert r.json()["code"] == "FILE_REQUIRED"


@pytest.mark.asyncio
async def test_upload_with_explicit_folder(client: AsyncClient, storage):
    r = await _upload(client, folder="documents")
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["folder"] == "documents"
    assert data["url"] == "/api/storage/files/documents/photo.png"
    assert storage.exists("photo.png", StorageFolder.DOCUMENTS)
    assert not storage.exists("photo.png", StorageFolder.IMAGES)


@pytest.mark.asyncio
async def test_upload_to_avatars_folder_is_400(client: AsyncClient):
    r = await _upload(client, folder="avatars")
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_FOLDER"


@pytest.mark.asyncio
async def test_upload_rate_limited(client: AsyncClient, monkeypatch):
    limited = get_settings().model_copy(update={"upload_rate_limit_per_minute": 2})
    monkeypatch.setattr(rate_limit, "get_settings", lambda: limited)
    assert (await _upload(client)).status_code == 201
    assert (await _upload(client)).status_code == 201
    assert (await _upload(client)).status_code == 429


@pytest.mark.asyncio
async def test_delete(client: AsyncClient):
    await _upload(client)
    r = await client.request("DELETE", "/api/storage/delete", json={"filename": "photo.png", "folder": "images"})
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "File deleted successfully"}
    r = await client.request("DELETE", "/api/storage/delete", json={"filename": "photo.png", "folder": "images"})
    assert r.status_code == 404
    assert r.json()["code"] == "FILE_NOT_FOUND"


@pytest.mark.asyncio
@pytest.mark.parametrize("filename", ["../secret.png", "a//b.png", "no-extension", "-lead.png", "x" * 256 + ".png"])
async def test_delete_rejects_malformed_filenames(client: AsyncClient, filename):
    r = await client.request("DELETE", "/api/storage/delete", json={"filename": filename, "folder": "images"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_delete_requires_public_folder(client: AsyncClient):
    r = await client.request("DELETE", "/api/storage/delete", json={"filename": "avatar.png", "folder": "avatars"})
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_FOLDER"


@pytest.mark.asyncio
async def test_list(client: AsyncClient):
    for i in range(3):
        await _upload(client, name=f"img {i}.png")
    r = await client.get("/api/storage/list", params={"folder": "images", "limit": 2})
    assert r.status_code == 200
    body = r.json()
    assert (body["page"], body["limit"], body["total"], body["total_pages"]) == (1, 2, 3, 2)
    assert len(body["files"]) == 2
    assert body["files"][0]["mime_type"] == "image/png"
    r = await client.get("/api/storage/list", params={"folder": "images", "limit": 2, "page": 2, "sort": "asc"})
    assert len(r.json()["files"]) == 1


@pytest.mark.asyncio
async def test_list_validation(client: AsyncClient):
    assert (await client.get("/api/storage/list")).json()["code"] == "INVALID_FOLDER"
    assert (await client.get("/api/storage/list", params={"folder": "avatars"})).status_code == 400
    assert (await client.get("/api/storage/list", params={"folder": "images", "limit": 1000})).status_code == 422
    assert (await client.get("/api/storage/list", params={"folder": "images", "page": 0})).status_code == 422
    assert (await client.get("/api/storage/list", params={"folder": "images", "sort": "up"})).status_code == 422


@pytest.mark.asyncio
async def test_usage(client: AsyncClient):
    await _upload(client, name="doc.pdf", body=PDF_BYTES, mime="application/pdf")
    r = await client.get("/api/storage/usage", params={"folder": "documents"})
    assert r.status_code == 200
    assert r.json() == {
        "folder": "documents",
        "count": 1,
        "total_size": len(PDF_BYTES),
        "total_size_human": f"{len(PDF_BYTES)} B",
    }


@pytest.mark.asyncio
async def test_serve_file_with_etag(client: AsyncClient):
    url = (await _upload(client)).json()["data"]["url"]
    r = await client.get(url)
    assert r.status_code == 200
    assert r.content == PNG_BYTES
    assert r.headers["content-type"] == "image/png"
    assert r.headers["x-content-type-options"] == "nosniff"
    assert "immutable" in r.headers["cache-control"]
    etag = r.headers["etag"]
    r = await client.get(url, headers={"If-None-Match": etag})
    assert r.status_code == 304
    assert r.content == b""


@pytest.mark.asyncio
async def test_serve_file_visible_immediately_and_gone_after_delete(client: AsyncClient):
    url = (await _upload(client, name="doc.pdf", body=PDF_BYTES, mime="application/pdf")).json()["data"]["url"]
    assert (await client.get(url)).status_code == 200
    await client.request("DELETE", "/api/storage/delete", json={"filename": "doc.pdf", "folder": "documents"})
    r = await client.get(url)
    assert r.status_code == 404
    assert r.json()["code"] == "FILE_NOT_FOUND"


@pytest.mark.asyncio
async def test_serve_rejects_traversal_and_unknown_folders(client: AsyncClient):
    assert (await client.get("/api/storage/files/images/%2e%2e/%2e%2e/etc/passwd")).status_code == 400
    assert (await client.get("/api/storage/files/images/a//b.png")).status_code == 400
    assert (await client.get("/api/storage/files/videos/a.png")).status_code == 400


@pytest.mark.asyncio
async def test_serve_over_long_name_is_structured_error(client: AsyncClient):
    r = await client.get("/api/storage/files/images/" + "a" * 300 + ".png")
    assert r.status_code == 500
    assert r.json()["code"] == "STORAGE_ERROR"


# ----- Avatars -----

@pytest.mark.asyncio
async def test_avatar_lifecycle(client: AsyncClient):
    r = await client.get("/api/users/u1/avatar")
    assert r.json() == {"url": None, "filename": None}

    r = await client.post("/api/users/u1/avatar", files={"file": ("me.png", PNG_BYTES, "image/png")})
    assert r.status_code == 200
    assert r.json() == {"url": "/api/storage/files/avatars/u1/avatar.png", "filename": "avatar.png"}

    r = await client.post("/api/users/u1/avatar", files={"file": ("me.jpg", JPEG_BYTES, "image/jpeg")})
    url = r.json()["url"]
    assert url.endswith("/avatar.jpg")
    assert (await client.get("/api/users/u1/avatar")).json()["url"] == url
    served = await client.get(url)
    assert served.content == JPEG_BYTES
    assert "must-revalidate" in served.headers["cache-control"]
    assert (await client.get("/api/storage/files/avatars/u1/avatar.png")).status_code == 404

    assert (await client.delete("/api/users/u1/avatar")).status_code == 200
    assert (await client.get("/api/users/u1/avatar")).json()["url"] is None
    r = await client.delete("/api/users/u1/avatar")
    assert r.status_code == 404
    assert r.json()["message"] == "No avatar found for this user"


@pytest.mark.asyncio
async def test_avatar_rejects_documents(client: AsyncClient):
    r = await client.post("/api/users/u1/avatar", files={"file": ("cv.pdf", PDF_BYTES, "application/pdf")})
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_MIME_TYPE"


@pytest.mark.asyncio
async def test_avatar_malformed_user_id_does_not_echo_value(client: AsyncClient):
    r = await client.post("/api/users/bad.id/avatar", files={"file": ("me.png", PNG_BYTES, "image/png")})
    assert r.status_code == 500
    assert r.json()["code"] == "PATH_TRAVERSAL"
    assert r.json()["details"] == {"code": "PATH_TRAVERSAL"}


# ----- Ops -----

@pytest.mark.asyncio
async def test_health_and_request_id(client: AsyncClient):
    r = await client.get("/health")
    assert r.json() == {"status": "ok"}
    assert r.headers["x-request-id"]


@pytest.mark.asyncio
async def test_metrics_count_uploads_and_rejections(client: AsyncClient):
    await _upload(client)
    await _upload(client, body=PDF_BYTES)
    r = await client.get("/metrics")
    assert r.status_code == 200
    assert 'storage_uploads_total{folder="images"}' in r.text
    assert 'storage_rejections_total{code="MIME_MISMATCH"}' in r.text


@pytest.mark.asyncio
async def test_metrics_secret(client: AsyncClient, monkeypatch):
    guarded = get_settings().model_copy(update={"metrics_secret": "s3cret"})
    monkeypatch.setattr(deps, "get_settings", lambda: guarded)
    assert (await client.get("/metrics")).status_code == 401
    assert (await client.get("/metrics", headers={"X-Metrics-Secret": "s3cret"})).status_code == 200
