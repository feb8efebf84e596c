"""Per-business scrape status with expiry, owned by the calling service."""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterator, Optional, Set

from .errors import ScrapeInProgress
from .models import utc_timestamp

IDLE = "idle"
STARTED = "started"
COMPLETED = "completed"
FAILED = "failed"

DEFAULT_TTL_SECONDS = 60 * 60


@dataclass(frozen=True)
class ScrapeStatus:
    status: str = IDLE
    progress: Optional[str] = None
    error: Optional[str] = None
    last_updated: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "status": self.status,
            "progress": self.progress,
            "error": self.error,
            "lastUpdated": self.last_updated,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }


class StatusStore:
    """Thread-safe status map; entries expire ``ttl`` seconds after their last update."""

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, ScrapeStatus] = {}
        self._touched: Dict[str, float] = {}
        self._running: Set[str] = set()

    def _expired(self, business_id: str) -> bool:
        touched = self._touched.get(business_id)
        return touched is not None and self._clock() - touched > self.ttl

    def _drop(self, business_id: str) -> None:
        self._entries.pop(business_id, None)
        self._touched.pop(business_id, None)

    def update(
        self,
        business_id: str,
        status: str,
        progress: Optional[str] = None,
        error: Optional[str] = None,
    ) -> ScrapeStatus:
        now = utc_timestamp()
        with self._lock:
            current = self._entries.get(business_id, ScrapeStatus())
            if self._expired(business_id):
                current = ScrapeStatus()
            updated = replace(
                current,
                status=status,
                progress=progress,
                error=error,
                last_updated=now,
            )
            if status == STARTED and current.status != STARTED:
                updated = replace(updated, start_time=now, end_time=None)
            if status in (COMPLETED, FAILED):
                updated = replace(updated, end_time=now)
            self._entries[business_id] = updated
            self._touched[business_id] = self._clock()
            return updated

    def get(self, business_id: str) -> ScrapeStatus:
        with self._lock:
            if self._expired(business_id):
                self._drop(business_id)
            return self._entries.get(business_id, ScrapeStatus())

    def clear(self, business_id: str) -> None:
        with self._lock:
            self._drop(business_id)

    def purge_expired(self) -> int:
        """Remove every expired entry; returns how many were removed."""
        with self._lock:
            stale = [business_id for business_id in self._entries if self._expired(business_id)]
            for business_id in stale:
                self._drop(business_id)
            return len(stale)

    @contextmanager
    def single_flight(self, business_id: str) -> Iterator[None]:
        """Hold the per-business slot for the duration of a scrape.

        Raises ``ScrapeInProgress`` if another caller already holds it.
        """
        with self._lock:
            if business_id in self._running:
                raise ScrapeInProgress(f"A scrape for {business_id} is already running")
            self._running.add(business_id)
        try:
            yield
        finally:
            with self._lock:
                self._running.discard(business_id)
