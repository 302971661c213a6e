"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional


class ProcessOutcome(Enum):
    """Result of clipping one URL, ordered by severity for aggregation."""

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @classmethod
    def worst(cls, outcomes: Iterable["ProcessOutcome"]) -> "ProcessOutcome":
        """Return the most severe outcome; an empty batch counts as success."""

        return max(outcomes, key=lambda outcome: outcome.severity, default=cls.SUCCESS)


_SEVERITY = {
    ProcessOutcome.SUCCESS: 0,
    ProcessOutcome.WARNING: 1,
    ProcessOutcome.ERROR: 2,
}

# Reaction keys used to reflect message status back into the chat.
PROCESSING_REACTION = "⏳"
OUTCOME_REACTIONS = {
    ProcessOutcome.SUCCESS: "✅",
    ProcessOutcome.WARNING: "⚠️",
    ProcessOutcome.ERROR: "❌",
}
TERMINAL_REACTIONS = frozenset(OUTCOME_REACTIONS.values())


@dataclass(frozen=True)
class Reaction:
    """A reaction (or Matrix annotation) tagged with who sent it, when known."""

    key: str
    sender_id: Optional[str] = None


@dataclass(frozen=True)
class InboundMessage:
    """Platform-agnostic snapshot of a chat message at fetch time."""

    message_id: str
    channel_id: str
    author_is_bot: bool
    body: str
    reactions: frozenset[Reaction] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ClipResult:
    """Structured result of rendering and extracting one URL."""

    title: str
    content: str
    url: str
    is_error: bool = False
    author: Optional[str] = None
    description: Optional[str] = None
    site_name: Optional[str] = None
    published: Optional[str] = None


@dataclass(frozen=True)
class Note:
    """A vault note ready to be written: vault-relative path plus document."""

    path: str
    content: str
