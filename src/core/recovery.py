"""Startup catch-up scan.

Messages posted while the bot was offline are re-derived from the newest page
of channel history and replayed through the same pipeline, oldest first.
Reactions left by the bot are the only record of what was already handled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from core.models import InboundMessage
from core.ports import ChatPort
from core.processor import MessageProcessor
from core.reporter import is_processed_by_bot
from core.urls import extract_urls

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


@dataclass(frozen=True)
class RecoveryStats:
    scanned: int
    replayed: int


def select_unprocessed(
    messages: list[InboundMessage], self_user_id: str
) -> list[InboundMessage]:
    """Filter a newest-first history page down to pending messages, oldest first."""

    pending = [
        message
        for message in messages
        if not message.author_is_bot
        and not is_processed_by_bot(message, self_user_id)
        and extract_urls(message.body)
    ]
    pending.reverse()
    return pending


async def recover_unprocessed(
    chat: ChatPort,
    processor: MessageProcessor,
    channel_id: str,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> RecoveryStats:
    """Replay unprocessed messages from recent history through the processor."""

    LOGGER.info("Scanning the last %s messages for unprocessed URLs", limit)
    messages = await chat.fetch_recent_history(channel_id, limit)
    pending = select_unprocessed(messages, chat.self_user_id())

    if not pending:
        LOGGER.info("No unprocessed messages found")
        return RecoveryStats(scanned=len(messages), replayed=0)

    LOGGER.info("Found %s unprocessed message(s), replaying", len(pending))
    replayed = 0
    for message in pending:
        try:
            await processor.handle(message)
        except Exception:
            LOGGER.exception("Failed to replay message %s", message.message_id)
            continue
        replayed += 1

    LOGGER.info(
        "Catch-up scan complete: messages=%s, replayed=%s",
        len(messages),
        replayed,
    )
    return RecoveryStats(scanned=len(messages), replayed=replayed)
