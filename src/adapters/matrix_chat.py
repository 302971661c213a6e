"""Matrix chat adapter.

Implements the core ChatPort on top of matrix-nio for a single room. Matrix
has no bot flag and no "reacted by me" summary, so:
- a message is bot-authored when its sender is our own user id
- reactions are ``m.reaction`` annotation events collected from history
- removing a reaction means redacting the reaction event we sent
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from nio import (
    AsyncClient,
    InviteMemberEvent,
    JoinResponse,
    MatrixRoom,
    MessageDirection,
    RoomMessagesResponse,
    RoomMessageText,
    RoomRedactResponse,
    RoomSendResponse,
    SyncResponse,
    WhoamiResponse,
)

from core.config import MatrixConfig
from core.models import PROCESSING_REACTION, InboundMessage, Reaction

LOGGER = logging.getLogger(__name__)

SYNC_TIMEOUT_MS = 30000

ReadyHandler = Callable[[], Awaitable[None]]
MessageHandler = Callable[[InboundMessage], Awaitable[None]]


def _annotation(source: dict) -> Optional[tuple[str, str]]:
    """Return (target event id, key) for an m.reaction event source."""

    if source.get("type") != "m.reaction":
        return None
    relates = (source.get("content") or {}).get("m.relates_to") or {}
    if relates.get("rel_type") != "m.annotation":
        return None
    target = relates.get("event_id")
    key = relates.get("key")
    if not target or not key:
        return None
    return target, key


def build_inbound_messages(
    events: Iterable[Any], room_id: str, self_user_id: str
) -> list[InboundMessage]:
    """Map a history chunk to InboundMessages, keeping the chunk order.

    Annotations found anywhere in the chunk are attached to the message they
    point at, tagged with their sender.
    """

    events = list(events)
    reactions: dict[str, set[Reaction]] = {}
    for event in events:
        annotation = _annotation(getattr(event, "source", None) or {})
        if annotation is None:
            continue
        target, key = annotation
        reactions.setdefault(target, set()).add(Reaction(key=key, sender_id=event.sender))

    messages = []
    for event in events:
        if not isinstance(event, RoomMessageText):
            continue
        messages.append(
            InboundMessage(
                message_id=event.event_id,
                channel_id=room_id,
                author_is_bot=event.sender == self_user_id,
                body=event.body or "",
                reactions=frozenset(reactions.get(event.event_id, ())),
            )
        )
    return messages


class MatrixChat:
    """ChatPort adapter bound to one Matrix room."""

    def __init__(self, config: MatrixConfig, client: Optional[AsyncClient] = None) -> None:
        self._config = config
        self._client = client or AsyncClient(
            config.homeserver_url,
            user=config.user_id or "",
            device_id=config.device_id,
        )
        self._client.access_token = config.access_token
        # message event id -> our processing reaction event id, for redaction.
        self._processing_reactions: dict[str, str] = {}
        self._message_handler: Optional[MessageHandler] = None

    @property
    def channel_id(self) -> str:
        return self._config.room_id

    def self_user_id(self) -> str:
        user_id = self._client.user_id
        if not user_id:
            raise RuntimeError("Matrix user id is not known yet")
        return user_id

    async def _resolve_identity(self) -> None:
        if self._config.user_id:
            self._client.user_id = self._config.user_id
            return
        response = await self._client.whoami()
        if not isinstance(response, WhoamiResponse):
            raise RuntimeError(f"Matrix whoami failed: {response}")
        self._client.user_id = response.user_id
        if response.device_id and not self._client.device_id:
            self._client.device_id = response.device_id

    async def _send(self, message_type: str, content: dict) -> str:
        response = await self._client.room_send(self._config.room_id, message_type, content)
        if not isinstance(response, RoomSendResponse):
            raise RuntimeError(f"Matrix send of {message_type} failed: {response}")
        return response.event_id

    async def add_reaction(self, message_id: str, emoji: str) -> None:
        event_id = await self._send(
            "m.reaction",
            {
                "m.relates_to": {
                    "rel_type": "m.annotation",
                    "event_id": message_id,
                    "key": emoji,
                }
            },
        )
        # Only the processing marker is ever removed again.
        if emoji == PROCESSING_REACTION:
            self._processing_reactions[message_id] = event_id

    async def remove_reaction(self, message_id: str, emoji: str, user_id: str) -> None:
        if user_id != self.self_user_id():
            raise RuntimeError("Matrix bots can only remove their own reactions")
        reaction_id = None
        if emoji == PROCESSING_REACTION:
            reaction_id = self._processing_reactions.pop(message_id, None)
        if reaction_id is None:
            LOGGER.debug("No %s reaction of ours on %s to remove", emoji, message_id)
            return
        response = await self._client.room_redact(self._config.room_id, reaction_id)
        if not isinstance(response, RoomRedactResponse):
            raise RuntimeError(f"Matrix redaction of {emoji} on {message_id} failed: {response}")

    async def reply(self, message_id: str, text: str) -> None:
        await self._send(
            "m.room.message",
            {
                "msgtype": "m.text",
                "body": text,
                "m.relates_to": {"m.in_reply_to": {"event_id": message_id}},
            },
        )

    async def fetch_recent_history(self, channel_id: str, limit: int) -> list[InboundMessage]:
        start = self._client.next_batch
        if not start:
            raise RuntimeError("Matrix history requires an initial sync")
        response = await self._client.room_messages(
            channel_id,
            start=start,
            direction=MessageDirection.back,
            limit=limit,
        )
        if not isinstance(response, RoomMessagesResponse):
            raise RuntimeError(f"Matrix history fetch failed: {response}")
        # Paging backwards yields the newest event first.
        return build_inbound_messages(response.chunk, channel_id, self.self_user_id())

    async def _on_message(self, room: MatrixRoom, event: RoomMessageText) -> None:
        if room.room_id != self._config.room_id or self._message_handler is None:
            return
        message = InboundMessage(
            message_id=event.event_id,
            channel_id=room.room_id,
            author_is_bot=event.sender == self._client.user_id,
            body=event.body or "",
        )
        await self._message_handler(message)

    async def _on_invite(self, room: MatrixRoom, event: InviteMemberEvent) -> None:
        if room.room_id != self._config.room_id:
            return
        if event.state_key != self._client.user_id or event.membership != "invite":
            return
        LOGGER.info("Invited to %s, joining", room.room_id)
        await self._join()

    async def _join(self) -> None:
        response = await self._client.join(self._config.room_id)
        if not isinstance(response, JoinResponse):
            LOGGER.warning("Could not join %s: %s", self._config.room_id, response)

    async def run(self, ready_handler: ReadyHandler, message_handler: MessageHandler) -> None:
        """Sync once, run the ready handler, then follow the room until closed."""

        await self._resolve_identity()
        LOGGER.info("Matrix bot identified as %s", self._client.user_id)

        # The first sync only establishes a position; messages it contains are
        # left to the catch-up scan instead of the live handler.
        response = await self._client.sync(timeout=SYNC_TIMEOUT_MS, full_state=True)
        if not isinstance(response, SyncResponse):
            raise RuntimeError(f"Initial Matrix sync failed: {response}")
        if self._config.room_id not in self._client.rooms:
            await self._join()

        await ready_handler()

        self._message_handler = message_handler
        self._client.add_event_callback(self._on_message, RoomMessageText)
        self._client.add_event_callback(self._on_invite, InviteMemberEvent)
        LOGGER.info("Listening in room %s", self._config.room_id)
        await self._client.sync_forever(timeout=SYNC_TIMEOUT_MS)

    async def close(self) -> None:
        LOGGER.info("Closing Matrix client")
        await self._client.close()
