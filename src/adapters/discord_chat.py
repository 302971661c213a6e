"""Discord chat adapter.

Implements the core ChatPort on top of discord.py and maps Discord messages
into InboundMessage so that discord.py types never reach the core.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

import discord

from core.config import DiscordConfig
from core.models import InboundMessage, Reaction

LOGGER = logging.getLogger(__name__)

ReadyHandler = Callable[[], Awaitable[None]]
MessageHandler = Callable[[InboundMessage], Awaitable[None]]


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.guilds = True
    intents.guild_messages = True
    intents.guild_reactions = True
    # Privileged: must also be enabled for the bot in the developer portal.
    intents.message_content = True
    return intents


def build_inbound_message(message: discord.Message, self_user_id: Optional[str]) -> InboundMessage:
    """Build a core InboundMessage from a discord.py Message."""

    reactions = set()
    for reaction in getattr(message, "reactions", None) or []:
        # Discord only tells us cheaply whether *we* reacted; other senders
        # would need one API call per reaction.
        sender = self_user_id if getattr(reaction, "me", False) else None
        reactions.add(Reaction(key=str(reaction.emoji), sender_id=sender))

    author = getattr(message, "author", None)
    return InboundMessage(
        message_id=str(message.id),
        channel_id=str(message.channel.id),
        author_is_bot=bool(getattr(author, "bot", False)),
        body=message.content or "",
        reactions=frozenset(reactions),
    )


class DiscordChat:
    """ChatPort adapter bound to one Discord text channel."""

    def __init__(self, config: DiscordConfig, client: Optional[discord.Client] = None) -> None:
        self._config = config
        self._client = client or discord.Client(intents=build_intents())
        self._ready_handled = False

    @property
    def channel_id(self) -> str:
        return self._config.channel_id

    def self_user_id(self) -> str:
        user = self._client.user
        if user is None:
            raise RuntimeError("Discord client is not logged in yet")
        return str(user.id)

    async def _channel(self, channel_id: Optional[str] = None) -> discord.TextChannel:
        target = int(channel_id or self._config.channel_id)
        channel = self._client.get_channel(target)
        if channel is None:
            channel = await self._client.fetch_channel(target)
        # Text, voice-text and thread channels all support partial messages.
        if not hasattr(channel, "get_partial_message"):
            raise RuntimeError(f"Channel {target} is not a text channel")
        return channel

    async def _message(self, message_id: str) -> discord.PartialMessage:
        channel = await self._channel()
        return channel.get_partial_message(int(message_id))

    async def add_reaction(self, message_id: str, emoji: str) -> None:
        message = await self._message(message_id)
        await message.add_reaction(emoji)

    async def remove_reaction(self, message_id: str, emoji: str, user_id: str) -> None:
        message = await self._message(message_id)
        await message.remove_reaction(emoji, discord.Object(id=int(user_id)))

    async def reply(self, message_id: str, text: str) -> None:
        message = await self._message(message_id)
        await message.reply(text)

    async def fetch_recent_history(self, channel_id: str, limit: int) -> list[InboundMessage]:
        channel = await self._channel(channel_id)
        self_id = self.self_user_id()
        # history() yields newest first by default.
        return [
            build_inbound_message(message, self_id)
            async for message in channel.history(limit=limit)
        ]

    async def run(self, ready_handler: ReadyHandler, message_handler: MessageHandler) -> None:
        """Log in and dispatch events until the client is closed."""

        client = self._client

        # discord.py dispatches by function name, so these must be on_ready/on_message.
        @client.event
        async def on_ready() -> None:
            LOGGER.info("Discord bot logged in as %s", client.user)
            # on_ready fires again after reconnects; recovery runs once.
            if self._ready_handled:
                return
            self._ready_handled = True
            await ready_handler()

        @client.event
        async def on_message(message: discord.Message) -> None:
            if str(message.channel.id) != self._config.channel_id:
                return
            if message.author.bot:
                return
            await message_handler(build_inbound_message(message, self.self_user_id()))

        await client.start(self._config.token)

    async def close(self) -> None:
        LOGGER.info("Closing Discord client")
        await self._client.close()
