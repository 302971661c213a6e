from __future__ import annotations

import asyncio

from core.models import ClipResult, InboundMessage, Reaction
from core.processor import MessageProcessor
from core.recovery import recover_unprocessed, select_unprocessed
from core.reporter import StatusReporter

BOT_ID = "bot-1"
CHANNEL = "chan-1"


class FakeChat:
    def __init__(self, history: list[InboundMessage]) -> None:
        self._history = history
        self.history_requests: list[tuple[str, int]] = []
        self.calls: list[tuple] = []

    async def add_reaction(self, message_id: str, emoji: str) -> None:
        self.calls.append(("add", message_id, emoji))

    async def remove_reaction(self, message_id: str, emoji: str, user_id: str) -> None:
        self.calls.append(("remove", message_id, emoji))

    async def reply(self, message_id: str, text: str) -> None:
        self.calls.append(("reply", message_id))

    async def fetch_recent_history(self, channel_id: str, limit: int) -> list[InboundMessage]:
        self.history_requests.append((channel_id, limit))
        return self._history[:limit]

    def self_user_id(self) -> str:
        return BOT_ID


class RecordingProcessor:
    def __init__(self) -> None:
        self.handled: list[str] = []

    async def handle(self, message: InboundMessage):
        self.handled.append(message.message_id)
        return None


class FakeClipper:
    def __init__(self) -> None:
        self.urls: list[str] = []

    async def extract(self, url: str):
        self.urls.append(url)
        return ClipResult(title="t", content="c", url=url)


class FakeVault:
    async def probe(self) -> bool:
        return True

    async def write_note(self, path: str, content: str) -> None:
        return None


def _msg(index: int, body: str = "plain chatter", *, bot: bool = False, reactions=()) -> InboundMessage:
    return InboundMessage(
        message_id=f"m{index}",
        channel_id=CHANNEL,
        author_is_bot=bot,
        body=body,
        reactions=frozenset(reactions),
    )


def _window() -> list[InboundMessage]:
    """A 100 message newest-first window; m95, m50 and m3 are pending."""

    pending = {95, 50, 3}
    terminal = {90: "✅", 60: "⚠️", 10: "❌"}
    bot_authored = {80, 20}
    messages = []
    for index in range(99, -1, -1):
        if index in pending:
            messages.append(_msg(index, f"see https://example.com/{index}"))
        elif index in terminal:
            messages.append(
                _msg(index, f"old https://example.com/{index}", reactions=[Reaction(terminal[index], BOT_ID)])
            )
        elif index in bot_authored:
            messages.append(_msg(index, "❌ https://example.com/reply", bot=True))
        else:
            messages.append(_msg(index))
    return messages


def test_select_unprocessed_returns_pending_oldest_first() -> None:
    pending = select_unprocessed(_window(), BOT_ID)
    assert [message.message_id for message in pending] == ["m3", "m50", "m95"]


def test_recovery_replays_exactly_the_pending_messages() -> None:
    chat = FakeChat(_window())
    processor = RecordingProcessor()

    stats = asyncio.run(recover_unprocessed(chat, processor, CHANNEL, limit=100))

    assert chat.history_requests == [(CHANNEL, 100)]
    assert processor.handled == ["m3", "m50", "m95"]
    assert stats.scanned == 100
    assert stats.replayed == 3


def test_terminal_marker_from_bot_prevents_reprocessing() -> None:
    done = _msg(1, "https://example.com/done", reactions=[Reaction("✅", BOT_ID)])
    chat = FakeChat([done])
    clipper = FakeClipper()
    processor = MessageProcessor(
        clipper=clipper,
        vault=FakeVault(),
        reporter=StatusReporter(chat),
        channel_id=CHANNEL,
        destination_folder="Clippings/",
    )

    stats = asyncio.run(recover_unprocessed(chat, processor, CHANNEL))

    assert stats.replayed == 0
    assert clipper.urls == []
    assert chat.calls == []


def test_markers_from_others_or_processing_marker_do_not_count() -> None:
    messages = [
        _msg(3, "https://example.com/3", reactions=[Reaction("⏳", BOT_ID)]),
        _msg(2, "https://example.com/2", reactions=[Reaction("✅", "someone-else")]),
        _msg(1, "https://example.com/1", reactions=[Reaction("✅", None)]),
    ]
    pending = select_unprocessed(messages, BOT_ID)
    assert [message.message_id for message in pending] == ["m1", "m2", "m3"]


def test_replay_failure_does_not_stop_the_scan() -> None:
    class FlakyProcessor(RecordingProcessor):
        async def handle(self, message: InboundMessage):
            await super().handle(message)
            if message.message_id == "m1":
                raise RuntimeError("boom")

    messages = [_msg(2, "https://example.com/2"), _msg(1, "https://example.com/1")]
    processor = FlakyProcessor()

    stats = asyncio.run(recover_unprocessed(FakeChat(messages), processor, CHANNEL))

    assert processor.handled == ["m1", "m2"]
    assert stats.replayed == 1
