"""Playwright binding: one browser process, contexts on demand."""

from __future__ import annotations

import logging

from playwright.async_api import async_playwright, Browser, BrowserContext, Playwright
from playwright_stealth import Stealth

from .config import CrawlerConfig

logger = logging.getLogger(__name__)


class PlaywrightEngine:
    """
    Launches a single Chromium process and creates browsing contexts on it.

    The crawler owns exactly one context at a time; pages are opened and
    closed by the operations themselves.
    """

    def __init__(self, config: CrawlerConfig):
        self.config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    async def launch(self) -> Browser:
        """Start Playwright and Chromium, reusing a connected browser."""
        if self._browser is not None and self._browser.is_connected():
            return self._browser

        if self._playwright is None:
            self._playwright = await async_playwright().start()

        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
            args=list(self.config.browser_args),
        )
        logger.info(f"Chromium launched (headless={self.config.headless})")
        return self._browser

    async def new_context(self, storage_state: dict | None = None) -> BrowserContext:
        """Create a context, seeded with ``storage_state`` when given."""
        browser = await self.launch()
        context_kwargs: dict[str, object] = {
            "user_agent": self.config.user_agent,
            "locale": self.config.locale,
            "viewport": self.config.viewport,
        }
        if storage_state is not None:
            context_kwargs["storage_state"] = storage_state

        context = await browser.new_context(**context_kwargs)
        if self.config.stealth:
            await Stealth().apply_stealth_async(context)
        return context

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
