"""Filename helpers for clipped notes.

Names are derived from the page title plus a short hash so that notes with
identical titles never overwrite each other.
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime

NOTE_EXTENSION = ".md"
UNTITLED = "Untitled"

# Characters that are invalid in filenames across Windows/macOS/Linux.
_INVALID_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')
_CONSECUTIVE_HYPHENS = re.compile(r"-{2,}")
_EDGE_HYPHENS_AND_SPACE = re.compile(r"^[\s-]+|[\s-]+$")


def sanitize_title(title: str) -> str:
    """Turn a page title into a filesystem-safe string.

    Invalid characters become hyphens, hyphen runs collapse into one, and
    leading/trailing hyphens and whitespace are trimmed. An empty result
    falls back to ``"Untitled"``.
    """

    sanitized = _INVALID_FILENAME_CHARS.sub("-", title.strip())
    sanitized = _CONSECUTIVE_HYPHENS.sub("-", sanitized)
    sanitized = _EDGE_HYPHENS_AND_SPACE.sub("", sanitized)
    return sanitized or UNTITLED


def generate_short_hash(url: str, stamp: int) -> str:
    """Return a 6 character hex digest of the URL and a uniqueness stamp."""

    payload = f"{url}\n{stamp}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()[:6]


def generate_timestamp_string(moment: datetime) -> str:
    """Format a moment as ``YYYYMMDD_HHMMSS``."""

    return moment.strftime("%Y%m%d_%H%M%S")


def build_filename(title: str, url: str, stamp: int) -> str:
    """Build ``{sanitized-title}_{hash}.md`` for a clipped page."""

    return f"{sanitize_title(title)}_{generate_short_hash(url, stamp)}{NOTE_EXTENSION}"
