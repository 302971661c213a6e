"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core and adapters expect so the app layer can build them safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VaultConfig:
    """Obsidian Local REST API settings."""

    base_url: str
    api_key: str
    destination_folder: str = "Clippings/"
    probe_timeout: float = 5.0
    write_timeout: float = 10.0


@dataclass(frozen=True)
class ClipperConfig:
    """Headless rendering settings consumed by the web clipper adapter."""

    navigation_timeout: float = 30.0
    settle_delay: float = 2.0
    headless: bool = True


@dataclass(frozen=True)
class RecoveryConfig:
    """Startup catch-up scan settings."""

    history_limit: int = 100


@dataclass(frozen=True)
class DiscordConfig:
    token: str
    channel_id: str


@dataclass(frozen=True)
class MatrixConfig:
    homeserver_url: str
    access_token: str
    room_id: str
    user_id: Optional[str] = None
    device_id: Optional[str] = None


@dataclass(frozen=True)
class LoggingConfig:
    """Log output settings; redaction masks configured secrets."""

    level: str = "INFO"
    console: bool = True
    file_path: Optional[str] = None
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5
    redact: bool = True
