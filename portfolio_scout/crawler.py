"""High-level orchestration: crawl a site, score its images, rank them."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Set

from .compliance import check_robots
from .config import CrawlConfig
from .content import extract_page
from .errors import (
    ComplianceDenied,
    CrawlCancelled,
    InvalidStartURL,
    PageFetchError,
    SessionAborted,
)
from .frontier import Frontier
from .models import CrawlStats, CrawlTask, ImageCandidate, PageExtraction, ScrapeResult
from .ranking import rank_candidates
from .renderer import PlaywrightRenderer
from .scoring import DEFAULT_TAXONOMY, CategoryTaxonomy, score_candidates
from .utils import is_http_url, normalize_url

logger = logging.getLogger("portfolio_scout")

IDLE = "idle"
RUNNING = "running"
COMPLETED = "completed"
ABORTED = "aborted"

RobotsChecker = Callable[..., bool]
Sleeper = Callable[[float], Awaitable[None]]


def validate_start_url(url: str) -> str:
    candidate = (url or "").strip()
    if not is_http_url(candidate):
        raise InvalidStartURL(f"Invalid URL provided: {url!r}")
    return candidate


class CrawlSession:
    """One breadth-first crawl of a single host.

    The renderer must already be open; the session only calls ``render``.
    """

    def __init__(
        self,
        start_url: str,
        config: CrawlConfig,
        renderer,
        *,
        stats: Optional[CrawlStats] = None,
        cancel_event: Optional[asyncio.Event] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.start_url = start_url
        self.config = config
        self.renderer = renderer
        self.stats = stats or CrawlStats()
        self.cancel_event = cancel_event
        self._sleep = sleep
        self.frontier = Frontier(config)
        self.images: List[ImageCandidate] = []
        self._image_sources: Set[str] = set()

    @property
    def state(self) -> str:
        return self.stats.state

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise CrawlCancelled(f"Crawl of {self.start_url} was cancelled")

    def _image_budget_reached(self) -> bool:
        return len(self.images) >= self.config.max_images

    def _collect(self, candidates: Sequence[ImageCandidate]) -> None:
        for candidate in candidates:
            if self._image_budget_reached():
                return
            if candidate.src in self._image_sources:
                continue
            self._image_sources.add(candidate.src)
            self.images.append(candidate)

    async def _process(self, task: CrawlTask) -> PageExtraction:
        try:
            html, final_url = await self.renderer.render(task.url)
        except PageFetchError as exc:
            logger.warning("%s: %s", exc.kind, exc)
            self.stats.pages_failed += 1
            return PageExtraction()
        except Exception:  # pylint: disable=broad-except
            logger.exception("Unexpected error loading %s", task.url)
            self.stats.pages_failed += 1
            return PageExtraction()

        # Links and images resolve against where the browser ended up.
        page_url = final_url or task.url
        if normalize_url(page_url) != normalize_url(task.url):
            if not self.frontier.mark_visited(page_url):
                logger.info("%s redirected to already visited %s", task.url, page_url)
                return PageExtraction()
            logger.info("%s redirected to %s", task.url, page_url)

        try:
            extraction = extract_page(html, page_url, self.config)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Failed to extract content from %s", page_url)
            self.stats.pages_failed += 1
            return PageExtraction()

        self.stats.links_dropped += extraction.dropped_links
        self.stats.images_dropped += extraction.dropped_images
        return extraction

    async def run(self) -> List[ImageCandidate]:
        """Crawl until the frontier drains or a budget runs out."""
        self.stats.state = RUNNING
        self.frontier.seed(self.start_url)
        try:
            while True:
                self._check_cancelled()
                if self.frontier.page_budget_exhausted():
                    logger.info("Page budget of %d reached", self.config.max_pages)
                    break
                task = self.frontier.pop()
                if task is None:
                    break
                self.stats.pages.append(task)
                logger.info("Crawling %s (depth %d)", task.url, task.depth)

                if task.depth > 0 and self.config.politeness_delay:
                    await self._sleep(self.config.politeness_delay)
                self._check_cancelled()

                extraction = await self._process(task)
                self._collect(extraction.images)
                logger.debug(
                    "%s -> %d link(s), %d image(s)",
                    task.url,
                    len(extraction.links),
                    len(extraction.images),
                )
                if self._image_budget_reached():
                    logger.info("Image budget of %d reached", self.config.max_images)
                    break

                if task.depth < self.config.max_depth:
                    for link in extraction.links:
                        if self.frontier.push(link, task):
                            self.stats.links_enqueued += 1
        except SessionAborted:
            self.stats.state = ABORTED
            raise
        self.stats.state = COMPLETED
        return self.images


async def run_scrape(
    start_url: str,
    categories: Sequence[str],
    config: Optional[CrawlConfig] = None,
    *,
    renderer=None,
    robots_checker: RobotsChecker = check_robots,
    taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY,
    cancel_event: Optional[asyncio.Event] = None,
    sleep: Sleeper = asyncio.sleep,
) -> ScrapeResult:
    """Crawl ``start_url`` and return the images most relevant to ``categories``.

    Always returns a ``ScrapeResult``; fatal problems are reported through
    ``success``/``error``/``error_kind`` rather than raised.
    """
    config = config or CrawlConfig()
    category_list = [category for category in categories if category]
    stats = CrawlStats(state=IDLE)
    result = ScrapeResult(
        success=False,
        website_url=start_url,
        categories=category_list,
        stats=stats,
    )
    overall_start = time.perf_counter()
    try:
        url = validate_start_url(start_url)
        logger.info("Starting scrape for %s", url)

        allowed = await asyncio.to_thread(
            robots_checker,
            url,
            timeout=config.robots_timeout,
            user_agent=config.user_agent,
        )
        if not allowed:
            raise ComplianceDenied(f"robots.txt for {url} disallows crawling")

        if renderer is None:
            renderer = PlaywrightRenderer(config)
        session = CrawlSession(
            url,
            config,
            renderer,
            stats=stats,
            cancel_event=cancel_event,
            sleep=sleep,
        )
        async with renderer:
            images = await session.run()
        logger.info("Found %d potential images on %d page(s)", len(images), stats.pages_visited)

        scored = score_candidates(images, category_list, taxonomy, stats)
        relevant, total = rank_candidates(
            scored,
            threshold=config.relevance_threshold,
            limit=config.max_results,
        )
        logger.info("Filtered to %d relevant images", len(relevant))

        result.success = True
        result.total_images_found = total
        result.relevant_images = relevant
    except SessionAborted as exc:
        stats.state = ABORTED
        result.error = str(exc)
        result.error_kind = exc.kind
        logger.error("Scrape of %s aborted (%s): %s", start_url, exc.kind, exc)
    except Exception as exc:  # pylint: disable=broad-except
        stats.state = ABORTED
        result.error = str(exc) or type(exc).__name__
        result.error_kind = "UnexpectedError"
        logger.exception("Unexpected error scraping %s", start_url)
    finally:
        stats.elapsed_seconds = time.perf_counter() - overall_start
    return result
