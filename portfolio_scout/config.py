"""Configuration objects and constants for the crawler."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


@dataclass(frozen=True)
class CrawlConfig:
    """Budget and politeness settings for a single crawl session."""

    max_depth: int = 3
    max_pages: int = 100
    max_images: int = 50
    max_links_per_page: int = 5
    politeness_delay: float = 1.0
    navigation_timeout: float = 30.0
    wait_after_load: float = 0.0
    robots_timeout: float = 5.0
    user_agent: str = DEFAULT_USER_AGENT
    max_context_chars: int = 200
    relevance_threshold: float = 0.7
    max_results: int = 20

    def __post_init__(self) -> None:
        for name in ("max_depth", "max_pages", "max_images", "max_links_per_page", "max_results"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        for name in ("politeness_delay", "navigation_timeout", "wait_after_load", "robots_timeout"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if not 0.0 <= self.relevance_threshold <= 1.0:
            raise ValueError("relevance_threshold must be within [0, 1]")


@dataclass(frozen=True)
class IngestOptions:
    """Settings for downloading and storing approved portfolio images."""

    max_images: int = 20
    quality_threshold: float = 0.7
    concurrency: int = 3
    batch_delay: float = 1.0
    download_timeout: float = 30.0
    max_bytes: int = 10 * 1024 * 1024
    min_width: int = 400
    min_height: int = 300
    max_side: int = 2000
    webp_quality: int = 80
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.max_images < 0:
            raise ValueError("max_images must be >= 0")
        if self.batch_delay < 0:
            raise ValueError("batch_delay must be >= 0")
