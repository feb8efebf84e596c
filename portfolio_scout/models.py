"""Data models used throughout the crawler pipeline."""

from __future__ import annotations

import dataclasses
import datetime as dt
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def utc_timestamp() -> str:
    return (
        dt.datetime.now(dt.timezone.utc)
        .replace(microsecond=0)
        .isoformat()
        .replace("+00:00", "Z")
    )


@dataclass(frozen=True)
class CrawlTask:
    """A page waiting in the frontier."""

    url: str
    depth: int


@dataclass(frozen=True)
class ImageCandidate:
    """Image reference discovered while parsing a rendered page."""

    src: str
    page_url: str
    alt: str = ""
    title: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    context: str = ""
    relevance_score: Optional[float] = None

    def with_score(self, score: float) -> "ImageCandidate":
        """Return a scored copy. A candidate is scored at most once."""
        if self.relevance_score is not None:
            raise ValueError(f"{self.src} already has a relevance score")
        return dataclasses.replace(self, relevance_score=score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "src": self.src,
            "pageUrl": self.page_url,
            "alt": self.alt,
            "title": self.title,
            "width": self.width,
            "height": self.height,
            "context": self.context,
            "relevanceScore": self.relevance_score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageCandidate":
        return cls(
            src=data["src"],
            page_url=data.get("pageUrl") or data.get("page_url") or "",
            alt=data.get("alt") or "",
            title=data.get("title") or "",
            width=data.get("width"),
            height=data.get("height"),
            context=data.get("context") or "",
            relevance_score=data.get("relevanceScore", data.get("relevance_score")),
        )


@dataclass
class PageExtraction:
    """Links and images pulled out of one rendered document."""

    links: List[str] = field(default_factory=list)
    images: List[ImageCandidate] = field(default_factory=list)
    dropped_links: int = 0
    dropped_images: int = 0


@dataclass
class CrawlStats:
    """Counters collected while a session runs."""

    state: str = "idle"
    pages: List[CrawlTask] = field(default_factory=list)
    pages_failed: int = 0
    links_enqueued: int = 0
    links_dropped: int = 0
    images_dropped: int = 0
    scoring_failures: int = 0
    elapsed_seconds: float = 0.0

    @property
    def pages_visited(self) -> int:
        return len(self.pages)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "pagesVisited": self.pages_visited,
            "pagesFailed": self.pages_failed,
            "linksEnqueued": self.links_enqueued,
            "linksDropped": self.links_dropped,
            "imagesDropped": self.images_dropped,
            "scoringFailures": self.scoring_failures,
            "elapsedSeconds": round(self.elapsed_seconds, 3),
        }


@dataclass
class ScrapeResult:
    """Structured outcome handed back to the caller of a scrape."""

    success: bool
    website_url: str
    categories: List[str]
    total_images_found: int = 0
    relevant_images: List[ImageCandidate] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    timestamp: str = field(default_factory=utc_timestamp)
    stats: CrawlStats = field(default_factory=CrawlStats)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "websiteUrl": self.website_url,
            "categories": list(self.categories),
            "totalImagesFound": self.total_images_found,
            "relevantImages": [image.to_dict() for image in self.relevant_images],
            "timestamp": self.timestamp,
            "stats": self.stats.to_dict(),
        }
        if self.error is not None:
            payload["error"] = self.error
            payload["errorKind"] = self.error_kind
        return payload


@dataclass
class IngestResult:
    """Outcome for one image pushed through the ingestion pipeline."""

    success: bool
    original_url: str
    storage_url: Optional[str] = None
    storage_path: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    size_bytes: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in dataclasses.asdict(self).items() if value is not None}


@dataclass
class IngestSummary:
    """Aggregate counts for an ingestion run."""

    results: List[IngestResult] = field(default_factory=list)

    @property
    def saved_images(self) -> List[IngestResult]:
        return [result for result in self.results if result.success]

    @property
    def processed_count(self) -> int:
        return len(self.results)

    @property
    def saved_count(self) -> int:
        return len(self.saved_images)

    @property
    def failed_count(self) -> int:
        return self.processed_count - self.saved_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processedCount": self.processed_count,
            "savedCount": self.saved_count,
            "failedCount": self.failed_count,
            "savedImages": [result.to_dict() for result in self.saved_images],
            "failures": [result.to_dict() for result in self.results if not result.success],
        }
