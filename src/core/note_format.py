"""Note document formatting.

A note is YAML frontmatter followed by the clipped Markdown body. Keeping the
formatting here means every clip lands in the vault with the same shape.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import yaml

from core.filename import build_filename
from core.models import ClipResult, Note


def build_frontmatter(clip: ClipResult, clipped_at: str) -> str:
    """Return the ``---`` delimited YAML block describing a clip."""

    fields: dict[str, Any] = {"title": clip.title, "source": clip.url}
    optional = (
        ("author", clip.author),
        ("description", clip.description),
        ("site", clip.site_name),
        ("published", clip.published),
    )
    for key, value in optional:
        if value:
            fields[key] = value
    fields["clipped"] = clipped_at
    if clip.is_error:
        fields["error"] = True

    body = yaml.safe_dump(
        fields,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )
    return f"---\n{body}---"


def build_markdown_document(clip: ClipResult, clipped_at: Optional[datetime] = None) -> str:
    """Build the full note text: frontmatter, blank line, body."""

    moment = clipped_at or datetime.now(timezone.utc)
    frontmatter = build_frontmatter(clip, moment.isoformat())
    return f"{frontmatter}\n\n{clip.content}\n"


def build_note(
    clip: ClipResult,
    destination_folder: str,
    stamp: int,
    clipped_at: Optional[datetime] = None,
) -> Note:
    """Turn a clip into a vault note under ``destination_folder``."""

    filename = build_filename(clip.title, clip.url, stamp)
    return Note(
        path=f"{destination_folder}{filename}",
        content=build_markdown_document(clip, clipped_at),
    )
