"""Signature catalog: MIME <-> extension, magic-byte prefixes, per-category size ceilings. Static lookup only."""
import os
from dataclasses import dataclass

_MB = 1024 * 1024

ALLOWED_IMAGE_TYPES = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/svg+xml",
)

DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_DOCUMENT_TYPES = (
    "application/pdf",
    "application/msword",
    DOCX,
)

ALLOWED_MIME_TYPES = frozenset(ALLOWED_IMAGE_TYPES + ALLOWED_DOCUMENT_TYPES)

MIME_TO_EXTENSION = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/svg+xml": ".svg",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    DOCX: ".docx",
}

EXTENSION_TO_MIME = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": DOCX,
}

FALLBACK_MIME = "application/octet-stream"

# Leading bytes per format. SVG is text and has no reliable signature.
MAGIC_BYTES = {
    "image/jpeg": b"\xff\xd8\xff",
    "image/png": b"\x89PNG\r\n\x1a\n",
    "image/gif": b"GIF8",
    "image/webp": b"RIFF",
    "application/pdf": b"%PDF",
    "application/msword": b"\xd0\xcf\x11\xe0",  # OLE compound document
    DOCX: b"PK\x03\x04",  # ZIP container
}

# Secondary signatures: (offset, bytes). WebP is a RIFF container tagged WEBP at offset 8.
SECONDARY_SIGNATURES = {
    "image/webp": (8, b"WEBP"),
}


@dataclass(frozen=True)
class SizeLimits:
    """Byte ceilings per category."""

    image: int = 15 * _MB
    document: int = 100 * _MB
    default: int = 10 * _MB

    def for_mime(self, mime_type: str) -> int:
        if mime_type.startswith("image/"):
            return self.image
        if mime_type.startswith("application/"):
            return self.document
        return self.default


def size_limits_from_settings(settings) -> SizeLimits:
    return SizeLimits(
        image=settings.max_byte_size_image_mb * _MB,
        document=settings.max_byte_size_document_mb * _MB,
        default=settings.max_byte_size_other_mb * _MB,
    )


def extension_from_mime(mime_type: str) -> str | None:
    return MIME_TO_EXTENSION.get(mime_type)


def mime_from_extension(extension: str) -> str | None:
    ext = extension if extension.startswith(".") else f".{extension}"
    return EXTENSION_TO_MIME.get(ext.lower())


def extension_from_filename(filename: str) -> str:
    """Lowercased extension including the dot, or "" when the name has none."""
    return os.path.splitext(filename)[1].lower()


def matches_signature(buffer: bytes, mime_type: str) -> bool:
    """True if buffer carries mime_type's signature. Types without a signature always match."""
    magic = MAGIC_BYTES.get(mime_type)
    if magic is None:
        return True
    if not buffer.startswith(magic):
        return False
    secondary = SECONDARY_SIGNATURES.get(mime_type)
    if secondary:
        offset, tag = secondary
        if buffer[offset:offset + len(tag)] != tag:
            return False
    return True


def detect_mime_from_bytes(buffer: bytes) -> str | None:
    """Reverse lookup: first catalog type whose signature the buffer carries."""
    for mime_type in MAGIC_BYTES:
        if matches_signature(buffer, mime_type):
            return mime_type
    return None


def format_file_size(num_bytes: int) -> str:
    """Human-readable size: 0 B, 512 B, 1.5 KB, 2 MB."""
    if num_bytes <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[i]}"
