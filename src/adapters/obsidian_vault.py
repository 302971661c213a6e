"""Obsidian Local REST API adapter.

Implements the core VaultPort: a reachability probe and a create-or-replace
note write, both over one shared async HTTP client.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from core.config import VaultConfig
from core.errors import VaultError

LOGGER = logging.getLogger(__name__)


class ObsidianVault:
    """Thin httpx wrapper that satisfies the VaultPort contract."""

    def __init__(self, config: VaultConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient()

    async def __aenter__(self) -> "ObsidianVault":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def note_url(self, path: str) -> str:
        # The whole vault path is one URL component, slashes included.
        return f"{self._config.base_url}vault/{quote(path, safe='')}"

    async def probe(self) -> bool:
        """Return True if the REST API answers with a success status."""

        try:
            response = await self._client.get(
                self._config.base_url,
                timeout=self._config.probe_timeout,
            )
        except httpx.HTTPError as exc:
            LOGGER.debug("Vault probe failed: %s", exc)
            return False
        return response.is_success

    async def write_note(self, path: str, content: str) -> None:
        """Create or overwrite ``path`` in the vault with ``content``."""

        try:
            response = await self._client.put(
                self.note_url(path),
                content=content.encode("utf-8"),
                headers={
                    "Authorization": f"Bearer {self._config.api_key}",
                    "Content-Type": "text/markdown",
                },
                timeout=self._config.write_timeout,
            )
        except httpx.HTTPError as exc:
            raise VaultError(None, str(exc)) from exc

        if not response.is_success:
            raise VaultError(response.status_code, response.text or "Unknown error")
