"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for chat, clipping, and vault adapters so
that the core can be reused with different platforms and backends.
"""

from __future__ import annotations

from typing import Protocol

from core.models import ClipResult, InboundMessage


class ChatPort(Protocol):
    """Chat operations required by the reporter and the recovery scan."""

    async def add_reaction(self, message_id: str, emoji: str) -> None:
        ...

    async def remove_reaction(self, message_id: str, emoji: str, user_id: str) -> None:
        ...

    async def reply(self, message_id: str, text: str) -> None:
        ...

    async def fetch_recent_history(self, channel_id: str, limit: int) -> list[InboundMessage]:
        """Return up to ``limit`` messages, newest first."""
        ...

    def self_user_id(self) -> str:
        ...


class ClipperPort(Protocol):
    """Render-and-extract operation required by the pipeline."""

    async def extract(self, url: str) -> ClipResult:
        ...


class VaultPort(Protocol):
    """Vault operations required by the pipeline."""

    async def probe(self) -> bool:
        ...

    async def write_note(self, path: str, content: str) -> None:
        ...
