"""Status reporting through chat reactions.

The reporter is the only component that talks back to the chat. Delivery
problems are logged and dropped: a missing emoji must never abort the
pipeline.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from core.models import (
    OUTCOME_REACTIONS,
    PROCESSING_REACTION,
    TERMINAL_REACTIONS,
    InboundMessage,
    ProcessOutcome,
)
from core.ports import ChatPort

LOGGER = logging.getLogger(__name__)

ERROR_REPLY = "❌ Could not save to Obsidian. Please check if the service is running."


def is_processed_by_bot(message: InboundMessage, self_user_id: str) -> bool:
    """Return True if the bot already left a terminal reaction on the message."""

    return any(
        reaction.key in TERMINAL_REACTIONS and reaction.sender_id == self_user_id
        for reaction in message.reactions
    )


class StatusReporter:
    """Maps message outcomes to reactions and replies on a chat adapter."""

    def __init__(self, chat: ChatPort, error_reply: str = ERROR_REPLY) -> None:
        self._chat = chat
        self._error_reply = error_reply

    async def mark_processing(self, message: InboundMessage) -> None:
        await self._deliver(
            "add processing reaction",
            message,
            lambda: self._chat.add_reaction(message.message_id, PROCESSING_REACTION),
        )

    async def clear_processing(self, message: InboundMessage) -> None:
        user_id = self._self_user_id()
        if user_id is None:
            return
        await self._deliver(
            "remove processing reaction",
            message,
            lambda: self._chat.remove_reaction(message.message_id, PROCESSING_REACTION, user_id),
        )

    async def report(self, message: InboundMessage, outcome: ProcessOutcome) -> None:
        """Post the terminal reaction, plus an explanatory reply on error."""

        emoji = OUTCOME_REACTIONS[outcome]
        await self._deliver(
            f"add {outcome.value} reaction",
            message,
            lambda: self._chat.add_reaction(message.message_id, emoji),
        )
        if outcome is ProcessOutcome.ERROR:
            await self._deliver(
                "reply with error",
                message,
                lambda: self._chat.reply(message.message_id, self._error_reply),
            )

    def _self_user_id(self) -> Optional[str]:
        try:
            return self._chat.self_user_id()
        except Exception:
            LOGGER.warning("Could not resolve the bot identity", exc_info=True)
            return None

    async def _deliver(
        self,
        action: str,
        message: InboundMessage,
        call: Callable[[], Awaitable[None]],
    ) -> None:
        try:
            await call()
        except Exception:
            LOGGER.warning("Failed to %s on message %s", action, message.message_id, exc_info=True)
