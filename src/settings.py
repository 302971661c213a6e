"""Runtime configuration for the clipper.

All settings come from environment variables, optionally seeded from a local
``.env`` file so secrets stay out of the repo. Anything required but missing
stops the process at startup with a message naming the variable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from core.config import (
    ClipperConfig,
    DiscordConfig,
    LoggingConfig,
    MatrixConfig,
    RecoveryConfig,
    VaultConfig,
)
from core.errors import ConfigError

PLATFORMS = ("discord", "matrix")

DEFAULT_OBSIDIAN_API_URL = "http://127.0.0.1:27123/"
DEFAULT_DESTINATION_FOLDER = "Clippings/"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Everything the app layer needs to wire adapters and the core."""

    platform: str
    vault: VaultConfig
    clipper: ClipperConfig
    recovery: RecoveryConfig
    logging: LoggingConfig
    discord: Optional[DiscordConfig] = None
    matrix: Optional[MatrixConfig] = None

    @property
    def channel_id(self) -> str:
        """The Discord channel or Matrix room being watched."""

        if self.platform == "discord":
            return self.discord.channel_id
        return self.matrix.room_id

    def secrets(self) -> list[str]:
        """Values that must never appear in log output."""

        values = [self.vault.api_key]
        if self.discord:
            values.append(self.discord.token)
        if self.matrix:
            values.append(self.matrix.access_token)
        return [value for value in values if value]


def _require(env: Mapping[str, str], key: str) -> str:
    value = (env.get(key) or "").strip()
    if not value:
        raise ConfigError(
            f"Missing required environment variable: {key}. "
            "Copy .env.example to .env and fill in the values."
        )
    return value


def _optional(env: Mapping[str, str], key: str) -> Optional[str]:
    value = (env.get(key) or "").strip()
    return value or None


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = _optional(env, key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = _optional(env, key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {value}")
    return value


def _bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = _optional(env, key)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{key} must be a boolean (true/false), got {raw!r}")


def _with_trailing_slash(value: str) -> str:
    return value if value.endswith("/") else f"{value}/"


def _api_url(env: Mapping[str, str]) -> str:
    raw = _optional(env, "OBSIDIAN_API_URL") or DEFAULT_OBSIDIAN_API_URL
    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigError(f"Invalid URL provided for OBSIDIAN_API_URL: {raw}")
    return _with_trailing_slash(raw)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from ``environ`` (defaults to os.environ plus .env)."""

    if environ is None:
        load_dotenv()
        environ = os.environ
    env = environ

    platform = (_optional(env, "BOT_TYPE") or "discord").lower()
    if platform not in PLATFORMS:
        raise ConfigError(f"Unknown BOT_TYPE: {platform}. Please use 'discord' or 'matrix'.")

    discord_config = None
    matrix_config = None
    # Only the selected platform's credentials are required.
    if platform == "discord":
        discord_config = DiscordConfig(
            token=_require(env, "DISCORD_TOKEN"),
            channel_id=_require(env, "DISCORD_CHANNEL_ID"),
        )
    else:
        matrix_config = MatrixConfig(
            homeserver_url=_require(env, "MATRIX_HOMESERVER_URL"),
            access_token=_require(env, "MATRIX_ACCESS_TOKEN"),
            room_id=_require(env, "MATRIX_ROOM_ID"),
            user_id=_optional(env, "MATRIX_USER_ID"),
            device_id=_optional(env, "MATRIX_DEVICE_ID"),
        )

    vault = VaultConfig(
        base_url=_api_url(env),
        api_key=_require(env, "OBSIDIAN_API_KEY"),
        destination_folder=_with_trailing_slash(
            _optional(env, "DESTINATION_FOLDER") or DEFAULT_DESTINATION_FOLDER
        ),
    )
    clipper = ClipperConfig(
        navigation_timeout=_float(env, "CLIP_NAVIGATION_TIMEOUT", 30.0),
        settle_delay=_float(env, "CLIP_SETTLE_DELAY", 2.0),
        headless=_bool(env, "CLIP_HEADLESS", True),
    )
    recovery = RecoveryConfig(history_limit=_int(env, "RECOVERY_HISTORY_LIMIT", 100))
    logging_config = LoggingConfig(
        level=(_optional(env, "LOG_LEVEL") or "INFO").upper(),
        console=_bool(env, "LOG_CONSOLE", True),
        file_path=_optional(env, "LOG_FILE"),
        max_bytes=_int(env, "LOG_FILE_MAX_BYTES", 5 * 1024 * 1024),
        backup_count=_int(env, "LOG_FILE_BACKUP_COUNT", 5),
        redact=_bool(env, "LOG_REDACT", True),
    )

    return Settings(
        platform=platform,
        vault=vault,
        clipper=clipper,
        recovery=recovery,
        logging=logging_config,
        discord=discord_config,
        matrix=matrix_config,
    )
