"""Scrape orchestration for a calling service that tracks businesses."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from .config import CrawlConfig
from .crawler import run_scrape
from .models import ScrapeResult
from .scrape_log import FAILED as LOG_FAILED
from .scrape_log import IN_PROGRESS, SCRAPE_WEBSITE, SUCCESS, ScrapeLog
from .status import COMPLETED, FAILED, STARTED, StatusStore

logger = logging.getLogger("portfolio_scout.service")


def _record_outcome(
    scrape_log: ScrapeLog,
    operation_id: int,
    business_id: str,
    result: ScrapeResult,
) -> None:
    if result.success:
        scrape_log.update_operation(
            operation_id,
            SUCCESS,
            f"Found {len(result.relevant_images)} relevant images",
        )
    else:
        scrape_log.update_operation(
            operation_id,
            LOG_FAILED,
            result.error,
            {"errorKind": result.error_kind},
        )
    scrape_log.log_metrics(
        business_id,
        result.website_url,
        result.total_images_found,
        len(result.relevant_images),
        processing_time_ms=int(result.stats.elapsed_seconds * 1000),
        errors=[result.error] if result.error else [],
    )


async def scrape_for_business(
    business_id: str,
    website_url: str,
    categories: Sequence[str],
    status_store: StatusStore,
    config: Optional[CrawlConfig] = None,
    *,
    scrape_log: Optional[ScrapeLog] = None,
    admin_user_id: Optional[str] = None,
    **scrape_kwargs: Any,
) -> ScrapeResult:
    """Run one scrape for ``business_id``, recording its progress.

    Raises ``ScrapeInProgress`` when a scrape for the same business is
    already underway; the running scrape is left untouched. If the scrape
    itself is interrupted (for example cancelled by the caller) the status
    is marked failed before the exception propagates.
    """
    with status_store.single_flight(business_id):
        status_store.update(business_id, STARTED, "Crawling website and analyzing images...")
        operation = None
        if scrape_log is not None:
            operation = scrape_log.log_operation(
                business_id,
                website_url,
                SCRAPE_WEBSITE,
                IN_PROGRESS,
                "Scraping started",
                admin_user_id=admin_user_id,
                metadata={"categories": list(categories)},
            )
        try:
            result = await run_scrape(website_url, categories, config, **scrape_kwargs)
        except BaseException as exc:
            status_store.update(business_id, FAILED, error=str(exc) or type(exc).__name__)
            if operation is not None:
                scrape_log.update_operation(operation.id, LOG_FAILED, type(exc).__name__)
            logger.warning("Scrape for %s interrupted: %s", business_id, type(exc).__name__)
            raise

        if result.success:
            message = (
                f"Found {result.total_images_found} total images, "
                f"{len(result.relevant_images)} relevant"
            )
            status_store.update(business_id, COMPLETED, message)
            logger.info("Scrape for %s completed: %s", business_id, message)
        else:
            status_store.update(business_id, FAILED, error=result.error)
            logger.warning("Scrape for %s failed: %s", business_id, result.error)
        if operation is not None:
            _record_outcome(scrape_log, operation.id, business_id, result)
        return result
