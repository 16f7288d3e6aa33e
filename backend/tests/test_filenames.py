"""Filename sanitizing, slugs, and unique-name allocation."""
import re

from app.services.storage.filenames import (
    MAX_STEM_LENGTH,
    allocate_unique_filename,
    generate_filename,
    sanitize_filename,
    slugify,
)
from app.services.storage.models import StorageFolder


def test_sanitize_filename():
    assert sanitize_filename("a/b/c.png") == "c.png"
    assert sanitize_filename("..\\..\\evil.pdf") == "evil.pdf"
    assert sanitize_filename("normal.png") == "normal.png"
    assert sanitize_filename('we<i>rd:"name"?.png') == "we_i_rd__name__.png"
    assert sanitize_filename("report..final...pdf") == "report.final.pdf"
    assert sanitize_filename("") == ""
    assert sanitize_filename(None) == ""


def test_sanitize_strips_control_chars():
    assert sanitize_filename("line\r\nbreak.png") == "line__break.png"


def test_slugify():
    assert slugify("My Image") == "my-image"
    assert slugify("  Café  Menu ") == "cafe-menu"
    assert slugify("a -- b") == "a-b"
    assert slugify("Résumé_2024!") == "resume2024"


def test_slugify_is_total():
    assert slugify("") == "file"
    assert slugify("!!!") == "file"
    assert slugify("日本語") == "file"


def test_generate_filename_uses_validated_type_extension():
    assert generate_filename("My Photo.PNG", "image/png") == "my-photo.png"
    assert generate_filename("scan.jpeg", "image/jpeg") == "scan.jpg"
    # Client-supplied extension never survives when the type is known
    assert generate_filename("payload.html", "application/pdf") == "payload.pdf"
    assert generate_filename("???.gif", "image/gif") == "file.gif"


def test_allocate_returns_desired_when_free():
    assert allocate_unique_filename("a.png", StorageFolder.IMAGES, lambda n, f: False) == "a.png"


def test_allocate_probes_in_order():
    taken = {"a.png", "a-1.png", "a-2.png"}
    name = allocate_unique_filename("a.png", StorageFolder.IMAGES, lambda n, f: n in taken)
    assert name == "a-3.png"


def test_allocate_falls_back_to_random_suffix():
    probed = []

    def exists(name, folder):
        probed.append(name)
        return True

    name = allocate_unique_filename("a.png", StorageFolder.IMAGES, exists, max_probes=5)
    assert probed == ["a.png", "a-1.png", "a-2.png", "a-3.png", "a-4.png", "a-5.png"]
    assert re.fullmatch(r"a-[0-9a-f]{8}\.png", name)


def test_generate_filename_caps_long_names():
    name = generate_filename("a" * 300 + ".png", "image/png")
    assert name == "a" * MAX_STEM_LENGTH + ".png"
    # Truncation never leaves a dangling hyphen
    assert generate_filename("a" * (MAX_STEM_LENGTH - 1) + " bcd.pdf", "application/pdf") == "a" * (MAX_STEM_LENGTH - 1) + ".pdf"
