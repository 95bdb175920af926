"""Headless-browser renderer backed by Playwright.

earth.nullschool.net draws everything client-side, so the spotlight values
only exist in the DOM after the page's scripts have run. The renderer waits
for the particulate element to appear, lets the panel settle briefly, and
returns the full document; navigation, waiting and settling all fit in one
`navigation_timeout` budget.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from playwright.async_api import Browser, Error as PlaywrightError, Playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from collector.exceptions import RenderError
from collector.extract import READING_SELECTOR
from collector.renderer.base import Renderer
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="renderer/playwright")

VIEWPORT = {"width": 1280, "height": 1024}


class PlaywrightRenderer(Renderer):
    """Render pages in a shared browser; one fresh context per render call.

    Use as an async context manager so the browser is launched once per run
    and always closed:

        async with PlaywrightRenderer() as renderer:
            html = await renderer.render(url)
    """

    def __init__(
        self,
        *,
        browser: str = "chromium",
        headless: bool = True,
        settle_seconds: float = 2.0,
        navigation_timeout: float = 30.0,
        ready_selector: Optional[str] = READING_SELECTOR,
    ) -> None:
        self.browser_name = browser
        self.headless = headless
        self.settle_seconds = settle_seconds
        self.navigation_timeout = navigation_timeout
        self.ready_selector = ready_selector
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightRenderer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Launch the browser."""
        if self._browser is not None:
            return
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self.browser_name)
        logger.info("Launching %s (headless=%s)", self.browser_name, self.headless)
        try:
            self._browser = await launcher.launch(
                headless=self.headless,
                args=["--no-sandbox"] if self.browser_name == "chromium" else None,
            )
        except PlaywrightError as exc:
            await self.close()
            raise RenderError(f"Failed to launch {self.browser_name}: {exc}") from exc

    async def close(self) -> None:
        """Close the browser and stop Playwright; safe to call twice."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def _wait_until_ready(self, page, remaining: float) -> None:
        if not self.ready_selector or remaining <= 0:
            return
        try:
            await page.wait_for_selector(
                self.ready_selector,
                state="attached",
                timeout=remaining * 1000,
            )
        except PlaywrightTimeoutError:
            # the page loaded but the value never showed up; let the caller
            # treat it as missing data rather than a transient failure
            logger.debug("Ready selector %r not found before timeout", self.ready_selector)

    async def render(self, url: str) -> str:
        """Navigate to `url` and return the rendered document's markup."""
        if self._browser is None:
            raise RenderError("Renderer has not been started")

        # navigation, ready wait and settle share one navigation_timeout budget
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.navigation_timeout
        context = None
        try:
            context = await self._browser.new_context(viewport=VIEWPORT)
            page = await context.new_page()
            logger.debug("Navigating to %s", url)
            await page.goto(url, wait_until="load", timeout=self.navigation_timeout * 1000)
            await self._wait_until_ready(page, deadline - loop.time() - self.settle_seconds)
            if self.settle_seconds > 0:
                await asyncio.sleep(self.settle_seconds)
            return await page.content()
        except PlaywrightError as exc:
            raise RenderError(f"Failed to render {url}: {exc}") from exc
        finally:
            if context is not None:
                await self._close_context(context)

    async def _close_context(self, context) -> None:
        try:
            await context.close()
        except PlaywrightError as exc:
            # a crashed browser takes its contexts with it
            logger.warning("Failed to close browser context: %s", exc)
