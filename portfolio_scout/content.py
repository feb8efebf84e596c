"""HTML extraction of crawlable links and image candidates."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Set
from urllib.parse import urldefrag, urljoin, urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from .config import CrawlConfig
from .errors import ImageResolutionFailure, LinkResolutionFailure
from .models import ImageCandidate, PageExtraction
from .utils import collapse_whitespace, host_of, is_http_url, normalize_url

logger = logging.getLogger("portfolio_scout")

SUPPORTED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".svg")
_DIMENSION_PATTERN = re.compile(r"^\s*(\d+)")
_SKIPPED_SCHEMES = ("javascript:", "mailto:", "tel:", "data:")


def is_supported_image(url: str) -> bool:
    """Allowlisted file extension or an inline ``data:image/`` URI."""
    lowered = url.lower()
    if lowered.startswith("data:"):
        return lowered.startswith("data:image/")
    path = urlsplit(lowered).path
    return path.endswith(SUPPORTED_IMAGE_EXTENSIONS)


def parse_dimension(value: Optional[str]) -> Optional[int]:
    """Leading integer of a width/height attribute (``"640px"`` -> 640)."""
    if value is None:
        return None
    match = _DIMENSION_PATTERN.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def image_context(img: Tag, max_chars: int = 200) -> str:
    """Visible text of the parent followed by that of each element sibling."""
    pieces: List[str] = []
    parent = img.parent
    if isinstance(parent, Tag):
        parent_text = collapse_whitespace(parent.get_text(" ", strip=True))
        if parent_text:
            pieces.append(parent_text)
    siblings = list(reversed(img.find_previous_siblings())) + img.find_next_siblings()
    for sibling in siblings:
        sibling_text = collapse_whitespace(sibling.get_text(" ", strip=True))
        if sibling_text:
            pieces.append(sibling_text)
    return " ".join(pieces)[:max_chars]


def _clean_content(soup: BeautifulSoup) -> BeautifulSoup:
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    return soup


def document_base(soup: BeautifulSoup, page_url: str) -> str:
    """URL that relative references resolve against: ``<base href>`` or the page."""
    base = soup.find("base", href=True)
    if base is None:
        return page_url
    try:
        resolved = urljoin(page_url, base["href"].strip())
    except ValueError:
        return page_url
    return resolved if is_http_url(resolved) else page_url


def extract_links(
    soup: BeautifulSoup,
    page_url: str,
    max_links: int,
    base_url: Optional[str] = None,
) -> PageExtraction:
    """Same-host http(s) links in document order, deduplicated and capped."""
    result = PageExtraction()
    page_host = host_of(page_url)
    page_key = normalize_url(page_url)
    seen: Set[str] = set()
    for anchor in soup.find_all("a", href=True):
        if len(result.links) >= max_links:
            break
        href = anchor["href"].strip()
        if not href or href.startswith("#") or href.lower().startswith(_SKIPPED_SCHEMES):
            continue
        try:
            absolute, _fragment = urldefrag(urljoin(base_url or page_url, href))
            parts = urlsplit(absolute)
            hostname = parts.hostname
            key = normalize_url(absolute)
        except ValueError as exc:
            failure = LinkResolutionFailure(f"Dropping link {href!r} on {page_url}: {exc}")
            logger.debug("%s: %s", failure.kind, failure)
            result.dropped_links += 1
            continue
        if parts.scheme not in ("http", "https") or not hostname:
            continue
        if hostname.lower() != page_host:
            continue
        if key == page_key or key in seen:
            continue
        seen.add(key)
        result.links.append(key)
    return result


def extract_images(
    soup: BeautifulSoup,
    page_url: str,
    max_context_chars: int = 200,
    base_url: Optional[str] = None,
) -> PageExtraction:
    """Image candidates with alt/title/size attributes and nearby text."""
    result = PageExtraction()
    seen: Set[str] = set()
    for img in soup.find_all("img"):
        src = (img.get("src") or "").strip()
        if not src:
            continue
        try:
            if src.lower().startswith("data:"):
                absolute = src
            else:
                absolute = urljoin(base_url or page_url, src)
            supported = is_supported_image(absolute)
        except ValueError as exc:
            failure = ImageResolutionFailure(f"Dropping image {src!r} on {page_url}: {exc}")
            logger.debug("%s: %s", failure.kind, failure)
            result.dropped_images += 1
            continue
        if not supported or absolute in seen:
            continue
        seen.add(absolute)
        result.images.append(
            ImageCandidate(
                src=absolute,
                page_url=page_url,
                alt=(img.get("alt") or "").strip(),
                title=(img.get("title") or "").strip(),
                width=parse_dimension(img.get("width")),
                height=parse_dimension(img.get("height")),
                context=image_context(img, max_context_chars),
            )
        )
    return result


def extract_page(html: str, page_url: str, config: CrawlConfig) -> PageExtraction:
    """Parse rendered markup into links to follow and images to score."""
    if not html:
        return PageExtraction()
    soup = _clean_content(BeautifulSoup(html, "html.parser"))
    base_url = document_base(soup, page_url)
    links = extract_links(soup, page_url, config.max_links_per_page, base_url)
    images = extract_images(soup, page_url, config.max_context_chars, base_url)
    return PageExtraction(
        links=links.links,
        images=images.images,
        dropped_links=links.dropped_links,
        dropped_images=images.dropped_images,
    )
