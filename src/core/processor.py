"""Core message processing pipeline.

This module is integration-agnostic. It only relies on ports for chat,
clipping, and vault access, enabling new chat platforms without changes here.

Per message the pipeline enforces a strict order:
1) Fast-exit for other channels, bot authors, or bodies without URLs
2) Mark the message as processing
3) Clip and save each URL in order of appearance
4) Aggregate the per-URL outcomes (worst wins)
5) Replace the processing marker with the terminal reaction
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from core.errors import VaultError
from core.models import ClipResult, InboundMessage, Note, ProcessOutcome
from core.note_format import build_note
from core.ports import ClipperPort, VaultPort
from core.reporter import StatusReporter
from core.urls import extract_urls

LOGGER = logging.getLogger(__name__)


class MessageProcessor:
    """Orchestrates clipping, vault writes, and status reactions."""

    def __init__(
        self,
        clipper: ClipperPort,
        vault: VaultPort,
        reporter: StatusReporter,
        channel_id: str,
        destination_folder: str,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self._clipper = clipper
        self._vault = vault
        self._reporter = reporter
        self._channel_id = channel_id
        self._destination_folder = destination_folder
        self._clock = clock
        self._last_stamp = 0
        self._issued_paths: set[str] = set()
        # One message at a time: the renderer behind the clipper is shared.
        self._lock = asyncio.Lock()

    async def handle(self, message: InboundMessage) -> Optional[ProcessOutcome]:
        """Process one message; returns None when the message was not eligible."""

        if message.channel_id != self._channel_id:
            return None
        if message.author_is_bot:
            return None

        urls = extract_urls(message.body)
        if not urls:
            return None

        async with self._lock:
            return await self._process(message, urls)

    async def _process(self, message: InboundMessage, urls: list[str]) -> ProcessOutcome:
        LOGGER.info("Processing message %s with %s URL(s)", message.message_id, len(urls))
        await self._reporter.mark_processing(message)

        outcomes: list[ProcessOutcome] = []
        try:
            await self._clip_all(message, urls, outcomes)
        except Exception:
            LOGGER.exception("Unexpected failure while processing message %s", message.message_id)
            outcomes.append(ProcessOutcome.ERROR)
        finally:
            final = ProcessOutcome.worst(outcomes)
            await self._reporter.clear_processing(message)
            await self._reporter.report(message, final)

        LOGGER.info("Message %s finished: %s", message.message_id, final.value)
        return final

    async def _clip_all(self, message: InboundMessage, urls: list[str], outcomes: list[ProcessOutcome]) -> None:
        for url in urls:
            # Fail fast when the vault is down rather than rendering pages we
            # cannot store.
            if not await self._vault.probe():
                LOGGER.warning("Obsidian vault unavailable, skipping remaining URLs of %s", message.message_id)
                outcomes.append(ProcessOutcome.ERROR)
                return

            try:
                clip = await self._clipper.extract(url)
            except Exception:
                LOGGER.exception("Clipping failed for %s", url)
                outcomes.append(ProcessOutcome.ERROR)
                continue

            try:
                note = self._note_for(clip)
                await self._vault.write_note(note.path, note.content)
            except VaultError:
                LOGGER.exception("Saving %s to the vault failed", url)
                outcomes.append(ProcessOutcome.ERROR)
                return
            except Exception:
                LOGGER.exception("Could not build or save the note for %s", url)
                outcomes.append(ProcessOutcome.ERROR)
                return

            outcome = ProcessOutcome.WARNING if clip.is_error else ProcessOutcome.SUCCESS
            LOGGER.info("Saved %s as %s (%s)", url, note.path, outcome.value)
            outcomes.append(outcome)

    def _note_for(self, clip: ClipResult) -> Note:
        """Build a note whose path was not issued before during this run."""

        while True:
            note = build_note(
                clip,
                self._destination_folder,
                self._next_stamp(),
                clipped_at=datetime.now(timezone.utc),
            )
            if note.path not in self._issued_paths:
                self._issued_paths.add(note.path)
                return note

    def _next_stamp(self) -> int:
        # Strictly increasing even when the clock does not advance.
        stamp = max(self._clock(), self._last_stamp + 1)
        self._last_stamp = stamp
        return stamp
