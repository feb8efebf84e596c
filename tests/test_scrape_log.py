import asyncio
import datetime as dt

import pytest

from portfolio_scout.config import CrawlConfig
from portfolio_scout.renderer import StaticRenderer
from portfolio_scout.scrape_log import FAILED, IN_PROGRESS, SCRAPE_WEBSITE, SUCCESS, ScrapeLog
from portfolio_scout.service import scrape_for_business
from portfolio_scout.status import StatusStore

SITE = "https://vendor.example/"


class FakeClock:
    def __init__(self) -> None:
        self.now = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)

    def __call__(self) -> dt.datetime:
        return self.now


def allow_all(url, **kwargs):
    return True


def test_operation_lifecycle():
    clock = FakeClock()
    log = ScrapeLog(clock=clock)
    record = log.log_operation("biz", SITE, SCRAPE_WEBSITE, IN_PROGRESS, "Scraping started")
    clock.now += dt.timedelta(seconds=5)
    updated = log.update_operation(record.id, SUCCESS, "Found 3 relevant images")
    assert updated.status == SUCCESS
    assert updated.details == "Found 3 relevant images"
    assert updated.created_at == record.created_at
    assert updated.updated_at == clock.now
    assert log.history("biz") == [updated]


def test_update_keeps_details_when_none_given():
    log = ScrapeLog()
    record = log.log_operation("biz", SITE, SCRAPE_WEBSITE, IN_PROGRESS, "Scraping started")
    assert log.update_operation(record.id, FAILED).details == "Scraping started"
    with pytest.raises(KeyError):
        log.update_operation(record.id + 1, FAILED)


def test_log_error_captures_exception():
    log = ScrapeLog()
    record = log.log_error("biz", SITE, SCRAPE_WEBSITE, ValueError("bad markup"), page="/about")
    assert record.status == FAILED
    assert record.details == "bad markup"
    assert record.metadata == {"error": {"name": "ValueError", "message": "bad markup", "page": "/about"}}
    assert record.to_dict()["created_at"] == record.created_at.isoformat()


def test_history_and_activity_are_newest_first_and_limited():
    log = ScrapeLog()
    first = log.log_operation("biz", SITE, SCRAPE_WEBSITE, SUCCESS, admin_user_id="admin-1")
    log.log_operation("other", SITE, SCRAPE_WEBSITE, SUCCESS, admin_user_id="admin-2")
    second = log.log_operation("biz", SITE, SCRAPE_WEBSITE, FAILED, admin_user_id="admin-1")
    assert [record.id for record in log.history("biz")] == [second.id, first.id]
    assert [record.id for record in log.history("biz", limit=1)] == [second.id]
    assert [record.id for record in log.admin_activity("admin-1")] == [second.id, first.id]
    assert log.admin_activity("nobody") == []


def test_statistics_cover_the_window_only():
    clock = FakeClock()
    log = ScrapeLog(clock=clock)
    log.log_operation("old", SITE, SCRAPE_WEBSITE, SUCCESS)
    log.log_metrics("old", SITE, 50, 10, processing_time_ms=9000)
    clock.now += dt.timedelta(days=40)
    log.log_operation("biz", SITE, SCRAPE_WEBSITE, SUCCESS)
    log.log_operation("biz", SITE, SCRAPE_WEBSITE, FAILED)
    log.log_operation("biz", SITE, SCRAPE_WEBSITE, SUCCESS)
    log.log_metrics("biz", SITE, 12, 4, images_saved=3, processing_time_ms=1000)
    log.log_metrics("biz", SITE, 8, 2, processing_time_ms=2001)
    log.log_metrics("biz", SITE, 0, 0, errors=["timeout"])

    stats = log.statistics()
    assert stats["windowDays"] == 30
    assert stats["totalOperations"] == 3
    assert stats["statusBreakdown"] == {SUCCESS: 2, FAILED: 1}
    assert stats["metrics"] == {
        "totalImagesFound": 20,
        "totalRelevantImages": 6,
        "totalImagesSaved": 3,
        "averageProcessingTime": 1500,
    }


def test_statistics_on_empty_log():
    stats = ScrapeLog().statistics(dt.timedelta(days=7))
    assert stats["totalOperations"] == 0
    assert stats["metrics"]["averageProcessingTime"] == 0


def test_cleanup_drops_entries_past_retention():
    clock = FakeClock()
    log = ScrapeLog(clock=clock)
    log.log_operation("biz", SITE, SCRAPE_WEBSITE, SUCCESS)
    log.log_metrics("biz", SITE, 1, 1)
    clock.now += dt.timedelta(days=91)
    fresh = log.log_operation("biz", SITE, SCRAPE_WEBSITE, SUCCESS)
    assert log.cleanup() == 2
    assert log.history("biz") == [fresh]
    assert log.cleanup() == 0


def test_scrape_for_business_logs_operation_and_metrics():
    html = (
        "<html><body><div><img src='/a.jpg' alt='Wedding photography portrait' "
        "width='500' height='400'></div></body></html>"
    )
    log = ScrapeLog()
    result = asyncio.run(
        scrape_for_business(
            "biz",
            SITE,
            ["photography"],
            StatusStore(),
            CrawlConfig(politeness_delay=0),
            scrape_log=log,
            admin_user_id="admin-1",
            renderer=StaticRenderer({SITE: html}),
            robots_checker=allow_all,
        )
    )
    assert result.success is True
    [record] = log.history("biz")
    assert record.status == SUCCESS
    assert record.details == "Found 1 relevant images"
    assert record.admin_user_id == "admin-1"
    assert record.metadata == {"categories": ["photography"]}
    stats = log.statistics()
    assert stats["metrics"]["totalImagesFound"] == 1
    assert stats["metrics"]["totalRelevantImages"] == 1


def test_scrape_for_business_logs_failure():
    log = ScrapeLog()
    result = asyncio.run(
        scrape_for_business("biz", "not a url", ["photography"], StatusStore(), scrape_log=log)
    )
    assert result.success is False
    [record] = log.history("biz")
    assert record.status == FAILED
    assert record.details == result.error
    assert record.metadata == {"errorKind": "InvalidStartURL"}
