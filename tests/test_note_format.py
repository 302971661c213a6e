from __future__ import annotations

from datetime import datetime, timezone

import yaml

from core.models import ClipResult
from core.note_format import build_frontmatter, build_markdown_document, build_note

CLIPPED_AT = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _split(document: str) -> tuple[dict, str]:
    assert document.startswith("---\n")
    _, header, body = document.split("---\n", 2)
    return yaml.safe_load(header), body


def test_frontmatter_keeps_key_order_and_skips_empty_fields() -> None:
    clip = ClipResult(
        title='Quotes "and": colons',
        content="Body",
        url="https://example.com/a",
        author="Ada",
        site_name="Example",
    )
    frontmatter = build_frontmatter(clip, "2026-01-02T03:04:05+00:00")
    assert frontmatter.startswith("---\n")
    assert frontmatter.endswith("\n---")

    data = yaml.safe_load(frontmatter.strip("-\n"))
    assert list(data) == ["title", "source", "author", "site", "clipped"]
    assert data["title"] == 'Quotes "and": colons'
    assert data["source"] == "https://example.com/a"
    assert data["clipped"] == "2026-01-02T03:04:05+00:00"
    assert "error" not in data


def test_error_clip_is_flagged() -> None:
    clip = ClipResult(title="Error clipping: x", content="# Clip Error", url="https://x", is_error=True)
    data, _ = _split(build_markdown_document(clip, CLIPPED_AT))
    assert data["error"] is True


def test_document_has_blank_line_then_body() -> None:
    clip = ClipResult(title="T", content="# Heading\n\ntext", url="https://example.com")
    document = build_markdown_document(clip, CLIPPED_AT)
    data, body = _split(document)
    assert data["clipped"] == CLIPPED_AT.isoformat()
    assert body == "\n# Heading\n\ntext\n"


def test_build_note_places_file_in_destination_folder() -> None:
    clip = ClipResult(title="My Article", content="x", url="https://example.com")
    note = build_note(clip, "Clippings/", stamp=1, clipped_at=CLIPPED_AT)
    assert note.path.startswith("Clippings/My Article_")
    assert note.path.endswith(".md")
    assert note.content.endswith("x\n")
