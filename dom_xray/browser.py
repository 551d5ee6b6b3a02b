from __future__ import annotations

import logging
import os

from playwright.async_api import (
    BrowserContext,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import Settings, settings as default_settings
from .explorer.playwright_host import PlaywrightHost


class BrowserSession:
    def __init__(self, settings: Settings | None = None, user_data_dir: str | None = None) -> None:
        self.settings = settings or default_settings
        self.context: BrowserContext | None = None
        self.page: Page | None = None
        self._playwright: Playwright | None = None
        self.user_data_dir = os.path.expanduser(
            user_data_dir or self.settings.user_data_dir or "~/.dom_xray_profiles/default"
        )

    async def __aenter__(self) -> "BrowserSession":
        self._playwright = await async_playwright().start()
        chromium = self._playwright.chromium
        self.context = await chromium.launch_persistent_context(self.user_data_dir, headless=self.settings.headless)
        # a persistent profile opens with one blank tab; explore in it
        pages = self.context.pages
        self.page = pages[0] if pages else await self.context.new_page()
        logging.info("browser_started profile=%s headless=%s", self.user_data_dir, self.settings.headless)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        context, self.context, self.page = self.context, None, None
        playwright, self._playwright = self._playwright, None
        if context is not None:
            await context.close()
        if playwright is not None:
            await playwright.stop()

    async def goto(self, url: str, wait_ms: int | None = None) -> None:
        """
        Navigate to a URL and give the app a moment to hydrate.
        """
        if not self.page:
            raise RuntimeError("Browser page is not initialized. Use within an async context manager.")

        await self.page.goto(url, wait_until="domcontentloaded", timeout=30000)
        try:
            await self.page.wait_for_load_state("networkidle", timeout=5000)
        except PlaywrightTimeoutError:
            logging.info("networkidle_wait_timed_out url=%s", url)

        wait_ms = self.settings.navigation_wait_ms if wait_ms is None else wait_ms
        if wait_ms > 0:
            await self.page.wait_for_timeout(wait_ms)

    def host(self) -> PlaywrightHost:
        if not self.page:
            raise RuntimeError("Browser page is not initialized. Use within an async context manager.")
        return PlaywrightHost(self.page)

    def __repr__(self) -> str:
        return f"BrowserSession(headless={self.settings.headless})"
