from __future__ import annotations

import asyncio

import pytest
from nio import RoomMessageText, RoomRedactError, RoomRedactResponse, RoomSendResponse

from adapters.matrix_chat import MatrixChat, build_inbound_messages
from core.config import MatrixConfig
from core.models import Reaction

ROOM = "!room:example.org"
BOT = "@clipper:example.org"


def _text(event_id: str, sender: str, body: str) -> RoomMessageText:
    return RoomMessageText.from_dict(
        {
            "type": "m.room.message",
            "event_id": event_id,
            "sender": sender,
            "origin_server_ts": 1700000000000,
            "content": {"msgtype": "m.text", "body": body},
        }
    )


class DummyReactionEvent:
    def __init__(self, target: str, key: str, sender: str) -> None:
        self.sender = sender
        self.source = {
            "type": "m.reaction",
            "sender": sender,
            "content": {"m.relates_to": {"rel_type": "m.annotation", "event_id": target, "key": key}},
        }


def test_history_chunk_keeps_order_and_attaches_annotations() -> None:
    chunk = [
        DummyReactionEvent("$old", "✅", BOT),
        _text("$new", "@alice:example.org", "https://example.com/new"),
        DummyReactionEvent("$old", "👍", "@bob:example.org"),
        _text("$reply", BOT, "❌ Could not save to Obsidian."),
        _text("$old", "@alice:example.org", "https://example.com/old"),
    ]

    messages = build_inbound_messages(chunk, ROOM, BOT)

    assert [message.message_id for message in messages] == ["$new", "$reply", "$old"]
    new, reply, old = messages
    assert new.reactions == frozenset()
    assert new.channel_id == ROOM
    assert reply.author_is_bot is True
    assert old.author_is_bot is False
    assert old.reactions == frozenset({Reaction("✅", BOT), Reaction("👍", "@bob:example.org")})


def test_ignores_malformed_annotations() -> None:
    broken = DummyReactionEvent("$m", "✅", BOT)
    broken.source["content"] = {}
    messages = build_inbound_messages([broken, _text("$m", "@a:example.org", "https://x")], ROOM, BOT)
    assert messages[0].reactions == frozenset()


class FakeNioClient:
    def __init__(self, redact_response=None) -> None:
        self.user_id = BOT
        self.access_token = None
        self.sent: list[tuple[str, dict]] = []
        self.redacted: list[str] = []
        self._redact_response = redact_response

    async def room_send(self, room_id: str, message_type: str, content: dict):
        self.sent.append((message_type, content))
        return RoomSendResponse(f"$reaction{len(self.sent)}", room_id)

    async def room_redact(self, room_id: str, event_id: str):
        self.redacted.append(event_id)
        return self._redact_response or RoomRedactResponse(f"$redaction-{event_id}", room_id)


def _chat(client: FakeNioClient) -> MatrixChat:
    config = MatrixConfig(homeserver_url="https://matrix.example.org", access_token="tok", room_id=ROOM, user_id=BOT)
    return MatrixChat(config, client=client)


def test_processing_reaction_is_redacted_and_forgotten() -> None:
    client = FakeNioClient()
    chat = _chat(client)

    async def scenario() -> None:
        await chat.add_reaction("$msg", "⏳")
        await chat.remove_reaction("$msg", "⏳", BOT)
        await chat.add_reaction("$msg", "✅")

    asyncio.run(scenario())

    assert client.redacted == ["$reaction1"]
    assert chat._processing_reactions == {}


def test_terminal_reactions_are_not_tracked() -> None:
    chat = _chat(FakeNioClient())

    async def scenario() -> None:
        for index in range(5):
            await chat.add_reaction(f"$msg{index}", "✅")

    asyncio.run(scenario())

    assert chat._processing_reactions == {}


def test_failed_redaction_is_raised() -> None:
    client = FakeNioClient(redact_response=RoomRedactError("forbidden"))
    chat = _chat(client)

    async def scenario() -> None:
        await chat.add_reaction("$msg", "⏳")
        await chat.remove_reaction("$msg", "⏳", BOT)

    with pytest.raises(RuntimeError, match="redaction"):
        asyncio.run(scenario())
