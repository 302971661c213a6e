"""URL extraction helpers (core domain)."""

from __future__ import annotations

import re

URL_PATTERN = re.compile(r"https?://[^\s<>]+", re.IGNORECASE)


def extract_urls(text: str) -> list[str]:
    """Return every URL-shaped substring of ``text`` in order of appearance."""

    return URL_PATTERN.findall(text or "")
