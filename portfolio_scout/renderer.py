"""Page renderers: a Playwright-backed browser and a static HTML stand-in."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import CrawlConfig
from .errors import PageFetchFailure, PageFetchTimeout
from .utils import normalize_url

logger = logging.getLogger("portfolio_scout")

_CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


class PlaywrightRenderer:
    """Headless Chromium shared across one crawl session.

    Use as an async context manager. Each ``render`` call opens its own page
    and closes it before returning, whatever the outcome.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> "PlaywrightRenderer":
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=True, args=_CHROMIUM_ARGS
            )
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            finally:
                self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            finally:
                self._playwright = None

    async def render(self, url: str) -> Tuple[str, str]:
        """Navigate to a URL and return the rendered HTML and final URL."""
        if self._browser is None:
            raise RuntimeError("PlaywrightRenderer used outside of its context")
        page = await self._browser.new_page(user_agent=self.config.user_agent)
        try:
            page.set_default_navigation_timeout(self.config.navigation_timeout * 1000)
            logger.debug("Loading %s", url)
            await page.goto(url, wait_until="networkidle")
            if self.config.wait_after_load:
                await page.wait_for_timeout(int(self.config.wait_after_load * 1000))
            html = await page.content()
            final_url = page.url or url
        except PlaywrightTimeoutError as exc:
            raise PageFetchTimeout(f"Timed out loading {url}: {exc}") from exc
        except PlaywrightError as exc:
            raise PageFetchFailure(f"Navigation to {url} failed: {exc}") from exc
        finally:
            await page.close()
        if final_url != url:
            logger.debug("%s redirected to %s", url, final_url)
        return html, final_url


class StaticRenderer:
    """Serves pre-rendered HTML keyed by URL; unknown URLs fail to load.

    Stands in for a browser in tests and offline runs. ``redirects`` maps a
    requested URL to the URL the page is served from. Keeps a log of the URLs
    requested and whether the session was closed.
    """

    def __init__(
        self,
        pages: Dict[str, str],
        *,
        timeouts: Optional[List[str]] = None,
        redirects: Optional[Dict[str, str]] = None,
    ) -> None:
        self.pages = {normalize_url(url): html for url, html in pages.items()}
        self.timeouts = {normalize_url(url) for url in (timeouts or [])}
        self.redirects = {
            normalize_url(source): normalize_url(target)
            for source, target in (redirects or {}).items()
        }
        self.requested: List[str] = []
        self.opened = False
        self.closed = False

    async def __aenter__(self) -> "StaticRenderer":
        self.opened = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.closed = True

    async def render(self, url: str) -> Tuple[str, str]:
        key = normalize_url(url)
        self.requested.append(key)
        final_url = self.redirects.get(key, key)
        if key in self.timeouts:
            raise PageFetchTimeout(f"Timed out loading {url}")
        if final_url not in self.pages:
            raise PageFetchFailure(f"No page registered for {url}")
        return self.pages[final_url], final_url
