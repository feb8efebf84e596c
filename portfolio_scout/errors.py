"""Exception types raised by the crawl, scoring and ingestion stages.

Only ``SessionAborted`` subclasses end a scrape. Everything else is caught at
page, item or image granularity and counted.
"""

from __future__ import annotations


class ScrapeError(Exception):
    """Base class for every error the scraper reports by kind."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class SessionAborted(ScrapeError):
    """A failure that ends the whole crawl session."""


class InvalidStartURL(SessionAborted):
    pass


class ComplianceDenied(SessionAborted):
    pass


class CrawlCancelled(SessionAborted):
    pass


class PageFetchError(ScrapeError):
    """A single page could not be rendered."""


class PageFetchTimeout(PageFetchError):
    pass


class PageFetchFailure(PageFetchError):
    pass


class ResolutionFailure(ScrapeError):
    """A link or image reference could not be made absolute."""


class LinkResolutionFailure(ResolutionFailure):
    pass


class ImageResolutionFailure(ResolutionFailure):
    pass


class ScoringFailure(ScrapeError):
    pass


class ImageIngestError(ScrapeError):
    """An approved image could not be downloaded, validated or stored."""


class ImageDownloadError(ImageIngestError):
    pass


class ImageValidationError(ImageIngestError):
    pass


class StorageError(ImageIngestError):
    pass


class ScrapeInProgress(ScrapeError):
    """Another scrape for the same business is still running."""
