"""Error types shared by the core and adapters."""

from __future__ import annotations

from typing import Optional


class ConfigError(RuntimeError):
    """Raised at startup when a required setting is missing or invalid."""


class VaultError(RuntimeError):
    """Raised when a note could not be written to the vault."""

    def __init__(self, status: Optional[int], body: str) -> None:
        self.status = status
        self.body = body
        if status is None:
            super().__init__(f"Failed to reach Obsidian vault: {body}")
        else:
            super().__init__(f"Failed to save to Obsidian vault (HTTP {status}): {body}")
