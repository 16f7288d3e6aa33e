"""
Seed script for local dev: placeholder images, documents and one avatar under settings.storage_root.
Run from backend/: python scripts/seed_dev.py
Re-running adds suffixed copies (photo-1.png, ...) rather than overwriting.
"""
import logging
import os

# Add parent to path so app is importable
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.config import get_settings
from app.services.storage import StorageError, UploadRequest, build_storage

logger = logging.getLogger("app.seed")

# Minimal valid PNG (1x1 red pixel)
PLACEHOLDER_PNG = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x02\x00\x00\x00\x90wS\xde"
    b"\x00\x00\x00\x0cIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)

# Minimal one-page PDF
PLACEHOLDER_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj\n"
    b"2 0 obj<</Type/Pages/Kids[3 0 R]/Count 1>>endobj\n"
    b"3 0 obj<</Type/Page/Parent 2 0 R/MediaBox[0 0 200 200]>>endobj\n"
    b"trailer<</Root 1 0 R>>\n%%EOF\n"
)

SEED_FILES = [
    ("Team Photo.png", "image/png", PLACEHOLDER_PNG),
    ("Product Shot.png", "image/png", PLACEHOLDER_PNG),
    ("Q3 Report.pdf", "application/pdf", PLACEHOLDER_PDF),
    ("Onboarding Guide.pdf", "application/pdf", PLACEHOLDER_PDF),
]
SEED_AVATAR_USER = "dev-user"


def seed() -> int:
    settings = get_settings()
    storage = build_storage(settings)
    storage.initialize()
    for name, mime, body in SEED_FILES:
        result = storage.upload(UploadRequest(buffer=body, original_name=name, mime_type=mime, size=len(body)))
        print(f"  {result.folder.value}/{result.filename} -> {result.url}")
    avatar = storage.upload_user_avatar(SEED_AVATAR_USER, PLACEHOLDER_PNG, "image/png", len(PLACEHOLDER_PNG))
    print(f"  avatar for {SEED_AVATAR_USER} -> {avatar.url}")
    print(f"Seeded {len(SEED_FILES)} files under {storage.root.root}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    try:
        sys.exit(seed())
    except StorageError as e:
        logger.error("Seeding failed: %s", e)
        sys.exit(1)
