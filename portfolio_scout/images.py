"""Download, validate, re-encode and store approved portfolio images."""

from __future__ import annotations

import base64
import hashlib
import io
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

import requests
from filetype import guess
from PIL import Image, UnidentifiedImageError

from .config import IngestOptions
from .errors import ImageDownloadError, ImageIngestError, ImageValidationError
from .models import ImageCandidate, IngestResult, IngestSummary
from .utils import slugify

logger = logging.getLogger("portfolio_scout")

ALLOWED_IMAGE_TYPES = {"jpg", "png", "webp", "gif"}
OUTPUT_CONTENT_TYPE = "image/webp"

Downloader = Callable[[str, IngestOptions], bytes]


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def _decode_data_uri(uri: str) -> bytes:
    header, _, payload = uri.partition(",")
    if ";base64" not in header:
        raise ImageDownloadError("Only base64 data URIs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except ValueError as exc:
        raise ImageDownloadError(f"Malformed data URI: {exc}") from exc


def download_image(
    url: str,
    options: IngestOptions,
    session: Optional[requests.Session] = None,
) -> bytes:
    """Fetch image bytes, refusing anything over ``options.max_bytes``."""
    if url.startswith("data:"):
        data = _decode_data_uri(url)
    else:
        http = session or requests
        try:
            resp = http.get(
                url,
                timeout=options.download_timeout,
                headers={"User-Agent": options.user_agent},
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise ImageDownloadError(f"Failed to download image: {exc}") from exc
        data = resp.content
    if len(data) > options.max_bytes:
        raise ImageDownloadError(
            f"File size {len(data)} bytes exceeds maximum {options.max_bytes} bytes"
        )
    return data


def validate_image(data: bytes, options: IngestOptions) -> Tuple[str, int, int]:
    """Return (format, width, height) or raise ``ImageValidationError``."""
    image_format = detect_image_format(data)
    if image_format not in ALLOWED_IMAGE_TYPES:
        raise ImageValidationError(f"Unsupported format: {image_format or 'unknown'}")
    try:
        with Image.open(io.BytesIO(data)) as image:
            width, height = image.size
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageValidationError(f"Invalid image file: {exc}") from exc
    if width < options.min_width or height < options.min_height:
        raise ImageValidationError(
            f"Image dimensions {width}x{height} below minimum "
            f"{options.min_width}x{options.min_height}"
        )
    return image_format, width, height


def optimize_image(data: bytes, options: IngestOptions) -> Tuple[bytes, int, int]:
    """Shrink to fit ``max_side`` and re-encode as WebP."""
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA" if "transparency" in image.info else "RGB")
        if image.width > options.max_side or image.height > options.max_side:
            image.thumbnail((options.max_side, options.max_side))
        buffer = io.BytesIO()
        image.save(buffer, format="WEBP", quality=options.webp_quality, method=6)
        return buffer.getvalue(), image.width, image.height


def build_storage_path(original_url: str, business_id: str, now_ms: Optional[int] = None) -> str:
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    digest = hashlib.md5(original_url.encode("utf-8")).hexdigest()[:8]
    business_slug = slugify(business_id, fallback="business")
    return f"{business_slug}/portfolio_{business_slug}_{timestamp}_{digest}.webp"


def process_image(
    candidate: ImageCandidate,
    business_id: str,
    store,
    options: IngestOptions,
    downloader: Optional[Downloader] = None,
) -> IngestResult:
    """Run one image through download, validation, re-encoding and upload."""
    logger.info("Processing image %s", candidate.src)
    fetch = downloader or download_image
    try:
        data = fetch(candidate.src, options)
        validate_image(data, options)
        encoded, width, height = optimize_image(data, options)
        storage_path = build_storage_path(candidate.src, business_id)
        storage_url = store.put(storage_path, encoded, OUTPUT_CONTENT_TYPE)
    except ImageIngestError as exc:
        logger.warning("Skipping %s: %s", candidate.src, exc)
        return IngestResult(success=False, original_url=candidate.src, error=str(exc))
    return IngestResult(
        success=True,
        original_url=candidate.src,
        storage_url=storage_url,
        storage_path=storage_path,
        width=width,
        height=height,
        size_bytes=len(encoded),
    )


def select_for_ingest(images: Sequence[ImageCandidate], options: IngestOptions) -> List[ImageCandidate]:
    """Images at or above the quality threshold, capped at ``max_images``."""
    accepted = [
        image
        for image in images
        if image.relevance_score is not None and image.relevance_score >= options.quality_threshold
    ]
    return accepted[: options.max_images]


def ingest_images(
    images: Sequence[ImageCandidate],
    business_id: str,
    store,
    options: Optional[IngestOptions] = None,
    *,
    downloader: Optional[Downloader] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> IngestSummary:
    """Process approved images in fixed-size concurrent batches."""
    options = options or IngestOptions()
    selected = select_for_ingest(images, options)
    summary = IngestSummary()
    if not selected:
        logger.info("No images meet the quality threshold for %s", business_id)
        return summary

    batch_size = options.concurrency
    batches = [selected[i : i + batch_size] for i in range(0, len(selected), batch_size)]
    with ThreadPoolExecutor(max_workers=batch_size) as executor:
        for index, batch in enumerate(batches):
            logger.debug(
                "Processing batch %d of %d (size: %d)",
                index + 1,
                len(batches),
                len(batch),
            )
            futures = [
                executor.submit(process_image, image, business_id, store, options, downloader)
                for image in batch
            ]
            for image, future in zip(batch, futures):
                try:
                    summary.results.append(future.result())
                except Exception as exc:  # pylint: disable=broad-except
                    logger.exception("Unexpected error processing %s", image.src)
                    summary.results.append(
                        IngestResult(success=False, original_url=image.src, error=str(exc))
                    )
            if index < len(batches) - 1 and options.batch_delay:
                sleep(options.batch_delay)

    logger.info(
        "Saved %d of %d image(s) for %s",
        summary.saved_count,
        summary.processed_count,
        business_id,
    )
    return summary
