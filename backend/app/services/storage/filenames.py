"""Filename handling: sanitize original names, slugify, and allocate collision-free stored names."""
import os
import re
import secrets
import unicodedata
from typing import Callable

from app.services.storage.catalog import extension_from_filename, extension_from_mime
from app.services.storage.models import StorageFolder

_ILLEGAL_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_DOT_RUNS = re.compile(r"\.{2,}")
_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-+")

SLUG_FALLBACK = "file"

# Stored names stay well under the 255-byte filename limit, leaving room for "-NNNN" or "-<8 hex>" and the extension
MAX_STEM_LENGTH = 200
_MAX_EXTENSION_LENGTH = 16

ExistsCheck = Callable[[str, StorageFolder], bool]


def sanitize_filename(filename: str | None) -> str:
    """Original name safe for logging/echoing: no path components, illegal or control chars, or dot runs."""
    if not filename:
        return ""
    base = filename.replace("\\", "/").split("/")[-1]
    base = _ILLEGAL_CHARS.sub("_", base)
    return _DOT_RUNS.sub(".", base).strip()


def slugify(text: str) -> str:
    """Lowercase ASCII slug with single hyphens. Never raises; empty input yields 'file'."""
    slug = _WHITESPACE.sub("-", str(text).lower().strip())
    slug = "".join(c for c in unicodedata.normalize("NFD", slug) if not unicodedata.combining(c))
    slug = _NON_SLUG.sub("", slug)
    slug = _HYPHEN_RUNS.sub("-", slug).strip("-")
    return slug or SLUG_FALLBACK


def generate_filename(original_name: str, mime_type: str) -> str:
    """slug + extension of the validated MIME type; the client's extension is only a last resort."""
    safe = sanitize_filename(original_name)
    stem = os.path.splitext(safe)[0]
    extension = extension_from_mime(mime_type) or extension_from_filename(safe)[:_MAX_EXTENSION_LENGTH]
    slug = slugify(stem)[:MAX_STEM_LENGTH].rstrip("-")
    return f"{slug}{extension}"


def allocate_unique_filename(
    desired: str,
    folder: StorageFolder,
    exists: ExistsCheck,
    max_probes: int = 1000,
) -> str:
    """First free name in desired, base-1, base-2, ...; after max_probes, base-<8 hex chars>."""
    if not exists(desired, folder):
        return desired
    base, ext = os.path.splitext(desired)
    for n in range(1, max_probes + 1):
        candidate = f"{base}-{n}{ext}"
        if not exists(candidate, folder):
            return candidate
    return f"{base}-{secrets.token_hex(4)}{ext}"
