"""Application entry point for the clipper bot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, Union

from art import tprint

from adapters.discord_chat import DiscordChat
from adapters.matrix_chat import MatrixChat
from adapters.obsidian_vault import ObsidianVault
from adapters.web_clipper import PlaywrightClipper
from core.errors import ConfigError
from core.models import InboundMessage
from core.processor import MessageProcessor
from core.recovery import recover_unprocessed
from core.reporter import StatusReporter
from settings import Settings, load_settings

NAME = "CLIPPER"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)

ChatAdapter = Union[DiscordChat, MatrixChat]


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _configure_logging(settings: Settings) -> None:
    config = settings.logging
    level = getattr(logging, config.level, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    # Longest first so a secret containing another is masked whole.
    secrets = sorted(set(settings.secrets()), key=len, reverse=True) if config.redact else []
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if config.file_path:
        directory = os.path.dirname(config.file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers, force=True)


def _build_chat(settings: Settings) -> ChatAdapter:
    # Select the chat adapter based on configuration to keep the core
    # processor independent from the platform.
    if settings.platform == "discord":
        return DiscordChat(settings.discord)
    if settings.platform == "matrix":
        return MatrixChat(settings.matrix)
    raise ConfigError(f"Unknown BOT_TYPE: {settings.platform}. Please use 'discord' or 'matrix'.")


def _install_shutdown_handlers(loop: asyncio.AbstractEventLoop, task: asyncio.Task) -> None:
    # SIGTERM (docker stop, systemd) unwinds like Ctrl+C so every context
    # manager in _serve closes its resource.
    try:
        loop.add_signal_handler(signal.SIGTERM, task.cancel)
    except (NotImplementedError, RuntimeError):
        LOGGER.debug("SIGTERM handler not supported on this platform")


async def _serve(settings: Settings) -> None:
    _install_shutdown_handlers(asyncio.get_running_loop(), asyncio.current_task())
    async with PlaywrightClipper(settings.clipper) as clipper, ObsidianVault(settings.vault) as vault:
        chat = _build_chat(settings)
        reporter = StatusReporter(chat)
        processor = MessageProcessor(
            clipper=clipper,
            vault=vault,
            reporter=reporter,
            channel_id=settings.channel_id,
            destination_folder=settings.vault.destination_folder,
        )
        LOGGER.info("Selected chat platform - %s", settings.platform)

        async def on_ready() -> None:
            # Backlog first; live messages queue behind it on the processor lock.
            try:
                await recover_unprocessed(
                    chat,
                    processor,
                    settings.channel_id,
                    limit=settings.recovery.history_limit,
                )
            except Exception:
                LOGGER.exception("Failed to recover unprocessed messages")

        async def on_message(message: InboundMessage) -> None:
            try:
                await processor.handle(message)
            except Exception:
                LOGGER.exception("Error while processing message %s", message.message_id)

        try:
            LOGGER.info("System is online. Listening for links...")
            await chat.run(on_ready, on_message)
        finally:
            await chat.close()


def _load_or_exit() -> Settings:
    try:
        return load_settings()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        raise SystemExit(1) from None


def _run() -> None:
    _print_banner()
    settings = _load_or_exit()
    _configure_logging(settings)
    LOGGER.info("Starting clipper")
    try:
        asyncio.run(_serve(settings))
    except (KeyboardInterrupt, asyncio.CancelledError):
        LOGGER.info("Shutting down...")


async def _check_vault(settings: Settings) -> bool:
    async with ObsidianVault(settings.vault) as vault:
        return await vault.probe()


def _check() -> None:
    settings = _load_or_exit()
    _configure_logging(settings)
    if asyncio.run(_check_vault(settings)):
        print(f"Obsidian REST API reachable at {settings.vault.base_url}")
        return
    print(f"Obsidian REST API NOT reachable at {settings.vault.base_url}")
    raise SystemExit(1)


def _matrix_token() -> None:
    _print_banner()
    from get_token import main as token_main

    asyncio.run(token_main())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="clipper")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the bot")
    subparsers.add_parser("check", help="Validate configuration and probe the Obsidian REST API")
    subparsers.add_parser(
        "matrix-token",
        help="Log in to Matrix with a password and print an access token for .env",
    )

    args = parser.parse_args(argv)
    if args.command == "check":
        _check()
        return
    if args.command == "matrix-token":
        _matrix_token()
        return
    _run()


if __name__ == "__main__":
    main()
