"""In-process log of scrape operations and per-run metrics."""

from __future__ import annotations

import dataclasses
import datetime as dt
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger("portfolio_scout.scrape_log")

IN_PROGRESS = "in_progress"
SUCCESS = "success"
FAILED = "failed"

SCRAPE_WEBSITE = "scrape_website"
SAVE_IMAGES = "save_images"

RETENTION = dt.timedelta(days=90)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class OperationRecord:
    id: int
    business_id: str
    website_url: str
    operation_type: str
    status: str
    details: Optional[str]
    created_at: dt.datetime
    updated_at: dt.datetime
    admin_user_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload = dataclasses.asdict(self)
        payload["created_at"] = self.created_at.isoformat()
        payload["updated_at"] = self.updated_at.isoformat()
        return payload


@dataclass(frozen=True)
class ScrapeMetrics:
    business_id: str
    website_url: str
    total_images_found: int
    relevant_images_count: int
    created_at: dt.datetime
    images_processed: int = 0
    images_saved: int = 0
    processing_time_ms: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


class ScrapeLog:
    """Thread-safe record of operations and metrics, newest entries last.

    ``clock`` returns an aware UTC datetime; tests pass a fake one.
    """

    def __init__(self, clock: Callable[[], dt.datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._operations: List[OperationRecord] = []
        self._metrics: List[ScrapeMetrics] = []

    def log_operation(
        self,
        business_id: str,
        website_url: str,
        operation_type: str,
        status: str,
        details: Optional[str] = None,
        *,
        admin_user_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> OperationRecord:
        now = self._clock()
        with self._lock:
            record = OperationRecord(
                id=next(self._ids),
                business_id=business_id,
                website_url=website_url,
                operation_type=operation_type,
                status=status,
                details=details,
                created_at=now,
                updated_at=now,
                admin_user_id=admin_user_id,
                metadata=dict(metadata or {}),
            )
            self._operations.append(record)
        logger.debug("Logged %s for %s (%s)", operation_type, business_id, status)
        return record

    def update_operation(
        self,
        operation_id: int,
        status: str,
        details: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> OperationRecord:
        """Change the status of a logged operation; raises KeyError if unknown."""
        with self._lock:
            for index, record in enumerate(self._operations):
                if record.id != operation_id:
                    continue
                changes: Dict[str, Any] = {"status": status, "updated_at": self._clock()}
                if details:
                    changes["details"] = details
                if metadata:
                    changes["metadata"] = dict(metadata)
                updated = dataclasses.replace(record, **changes)
                self._operations[index] = updated
                return updated
        raise KeyError(operation_id)

    def log_error(
        self,
        business_id: str,
        website_url: str,
        operation_type: str,
        error: BaseException,
        **context: Any,
    ) -> OperationRecord:
        metadata = {"error": {"name": type(error).__name__, "message": str(error), **context}}
        return self.log_operation(
            business_id,
            website_url,
            operation_type,
            FAILED,
            str(error) or "Unknown error occurred",
            metadata=metadata,
        )

    def log_metrics(
        self,
        business_id: str,
        website_url: str,
        total_images_found: int,
        relevant_images_count: int,
        *,
        images_processed: int = 0,
        images_saved: int = 0,
        processing_time_ms: int = 0,
        errors: Optional[List[str]] = None,
    ) -> ScrapeMetrics:
        metrics = ScrapeMetrics(
            business_id=business_id,
            website_url=website_url,
            total_images_found=total_images_found,
            relevant_images_count=relevant_images_count,
            created_at=self._clock(),
            images_processed=images_processed,
            images_saved=images_saved,
            processing_time_ms=processing_time_ms,
            errors=list(errors or []),
        )
        with self._lock:
            self._metrics.append(metrics)
        return metrics

    def history(self, business_id: str, limit: int = 50) -> List[OperationRecord]:
        """Operations for one business, newest first."""
        with self._lock:
            matching = [record for record in self._operations if record.business_id == business_id]
        return list(reversed(matching))[:limit]

    def admin_activity(self, admin_user_id: str, limit: int = 100) -> List[OperationRecord]:
        with self._lock:
            matching = [record for record in self._operations if record.admin_user_id == admin_user_id]
        return list(reversed(matching))[:limit]

    def statistics(self, window: dt.timedelta = dt.timedelta(days=30)) -> Dict[str, Any]:
        """Status breakdown and metric totals for entries inside ``window``."""
        since = self._clock() - window
        with self._lock:
            operations = [record for record in self._operations if record.created_at >= since]
            metrics = [entry for entry in self._metrics if entry.created_at >= since]

        breakdown: Dict[str, int] = {}
        for record in operations:
            breakdown[record.status] = breakdown.get(record.status, 0) + 1

        timed = [entry.processing_time_ms for entry in metrics if entry.processing_time_ms > 0]
        return {
            "windowDays": window.days,
            "totalOperations": len(operations),
            "statusBreakdown": breakdown,
            "metrics": {
                "totalImagesFound": sum(entry.total_images_found for entry in metrics),
                "totalRelevantImages": sum(entry.relevant_images_count for entry in metrics),
                "totalImagesSaved": sum(entry.images_saved for entry in metrics),
                "averageProcessingTime": round(sum(timed) / len(timed)) if timed else 0,
            },
        }

    def cleanup(self, retention: dt.timedelta = RETENTION) -> int:
        """Drop operations and metrics older than ``retention``; returns how many."""
        cutoff = self._clock() - retention
        with self._lock:
            before = len(self._operations) + len(self._metrics)
            self._operations = [record for record in self._operations if record.created_at >= cutoff]
            self._metrics = [entry for entry in self._metrics if entry.created_at >= cutoff]
            removed = before - len(self._operations) - len(self._metrics)
        if removed:
            logger.info("Removed %d scrape log entries older than %s", removed, cutoff.date())
        return removed
