"""Headless web clipper adapter.

Renders pages with a shared Playwright Chromium instance and extracts the
readable article with trafilatura. Site errors are not raised: they come back
as error clips so a diagnostic note can still be saved for review.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import urlparse

import trafilatura
from playwright.async_api import Browser, Playwright, async_playwright

from core.config import ClipperConfig
from core.models import ClipResult

LOGGER = logging.getLogger(__name__)


def error_clip(url: str, detail_label: str, detail: str, message: Optional[str] = None) -> ClipResult:
    """Build the diagnostic clip saved when a page cannot be clipped."""

    lines = ["# Clip Error", "", f"- **URL**: {url}", f"- **{detail_label}**: {detail}"]
    if message:
        lines.append(f"- **Message**: {message}")
    return ClipResult(
        title=f"Error clipping: {url}",
        content="\n".join(lines) + "\n",
        url=url,
        is_error=True,
    )


def extract_article(html: str, url: str) -> ClipResult:
    """Extract title, metadata, and a Markdown body from rendered HTML."""

    metadata = trafilatura.extract_metadata(html, default_url=url)
    content = trafilatura.extract(
        html,
        url=url,
        output_format="markdown",
        include_comments=False,
        include_tables=True,
        include_links=True,
        include_images=True,
    )

    title = getattr(metadata, "title", None) or urlparse(url).hostname or url
    return ClipResult(
        title=title,
        content=content or "",
        url=url,
        author=getattr(metadata, "author", None) or None,
        description=getattr(metadata, "description", None) or None,
        site_name=getattr(metadata, "sitename", None) or None,
        published=getattr(metadata, "date", None) or None,
    )


class PlaywrightClipper:
    """ClipperPort adapter backed by one lazily launched Chromium browser.

    The browser is not guarded by a lock: the message pipeline only ever runs
    one clip at a time.
    """

    def __init__(self, config: ClipperConfig) -> None:
        self._config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightClipper":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_browser(self) -> Browser:
        if self._browser is None or not self._browser.is_connected():
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            LOGGER.info("Launching headless Chromium")
            self._browser = await self._playwright.chromium.launch(headless=self._config.headless)
        return self._browser

    async def close(self) -> None:
        """Shut down the shared browser, if it was ever started."""

        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def extract(self, url: str) -> ClipResult:
        browser = await self._get_browser()
        page = await browser.new_page()
        try:
            response = await page.goto(
                url,
                wait_until="load",
                timeout=self._config.navigation_timeout * 1000,
            )
            # JS-heavy pages keep rendering after the load event.
            await page.wait_for_timeout(self._config.settle_delay * 1000)

            # Redirects (short links) resolve to the final URL.
            final_url = page.url
            status = response.status if response is not None else 0
            if response is None or status >= 400:
                LOGGER.warning("Site returned HTTP %s for %s", status, final_url)
                return error_clip(
                    final_url,
                    "Status",
                    str(status),
                    "The server returned an error response.",
                )

            html = await page.content()
            # trafilatura is synchronous and CPU bound.
            return await asyncio.to_thread(extract_article, html, final_url)
        except Exception as exc:
            LOGGER.warning("Clipping %s failed: %s", url, exc)
            return error_clip(url, "Error", str(exc))
        finally:
            await page.close()
