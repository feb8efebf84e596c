"""Command-line entry point for the portfolio scraper."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, Sequence

from .config import CrawlConfig, IngestOptions
from .crawler import run_scrape
from .images import ingest_images
from .models import ImageCandidate
from .report import compose_report
from .scoring import DEFAULT_TAXONOMY, load_taxonomy
from .storage import LocalObjectStore, MemoryObjectStore
from .utils import host_of, slugify

logger = logging.getLogger("portfolio_scout.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("scrape", *argv)


def _configure_logging(verbose: bool, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    if quiet and not verbose:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _add_scrape_arguments(parser: argparse.ArgumentParser) -> None:
    defaults = CrawlConfig()
    parser.add_argument("url", help="Vendor website to crawl")
    parser.add_argument(
        "--category",
        dest="categories",
        action="append",
        required=True,
        help="Business category to score against (repeatable)",
    )
    parser.add_argument(
        "--output",
        default="output",
        type=Path,
        help="Directory where result.json and report.md should be written",
    )
    parser.add_argument(
        "--taxonomy",
        type=Path,
        default=None,
        help="JSON file mapping category names to keyword lists",
    )
    parser.add_argument("--max-depth", type=int, default=defaults.max_depth)
    parser.add_argument("--max-pages", type=int, default=defaults.max_pages)
    parser.add_argument("--max-images", type=int, default=defaults.max_images)
    parser.add_argument(
        "--max-links",
        type=int,
        default=defaults.max_links_per_page,
        help="Links followed from each page",
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=defaults.politeness_delay,
        help="Seconds to wait before fetching each page after the first",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=defaults.navigation_timeout,
        help="Navigation timeout in seconds",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=defaults.wait_after_load,
        help="Seconds to wait after network idle before reading HTML",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON on STDOUT instead of writing files",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_ingest_arguments(parser: argparse.ArgumentParser) -> None:
    defaults = IngestOptions()
    parser.add_argument("result", type=Path, help="result.json written by the scrape command")
    parser.add_argument("--business-id", required=True, help="Business the images belong to")
    store = parser.add_mutually_exclusive_group(required=True)
    store.add_argument("--store-dir", type=Path, help="Directory acting as the object store")
    store.add_argument(
        "--dry-run",
        action="store_true",
        help="Process images without keeping them",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Public URL prefix for stored objects",
    )
    parser.add_argument("--max-images", type=int, default=defaults.max_images)
    parser.add_argument(
        "--threshold",
        type=float,
        default=defaults.quality_threshold,
        help="Minimum relevance score for an image to be ingested",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=defaults.concurrency,
        help="Images processed at once within a batch",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Crawl a vendor website for portfolio images and rank them by relevance "
            "to the vendor's business categories."
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scrape_parser = subparsers.add_parser(
        "scrape", help="Crawl a website and rank its images"
    )
    _add_scrape_arguments(scrape_parser)

    ingest_parser = subparsers.add_parser(
        "ingest", help="Download, re-encode and store approved images"
    )
    _add_ingest_arguments(ingest_parser)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _run_scrape(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose, quiet=args.json)

    config = CrawlConfig(
        max_depth=args.max_depth,
        max_pages=args.max_pages,
        max_images=args.max_images,
        max_links_per_page=args.max_links,
        politeness_delay=args.delay,
        navigation_timeout=args.timeout,
        wait_after_load=args.wait,
    )
    taxonomy = load_taxonomy(args.taxonomy) if args.taxonomy else DEFAULT_TAXONOMY

    overall_start = time.perf_counter()
    result = asyncio.run(run_scrape(args.url, args.categories, config, taxonomy=taxonomy))
    total_elapsed = time.perf_counter() - overall_start
    logger.info(
        "Finished in %.2fs (%d page(s), %d image(s), %d relevant)",
        total_elapsed,
        result.stats.pages_visited,
        result.total_images_found,
        len(result.relevant_images),
    )

    payload = result.to_dict()
    if args.json:
        sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
        sys.stdout.flush()
        return 0 if result.success else 1

    output_dir = Path(args.output).resolve() / slugify(host_of(args.url) or "site", fallback="site")
    output_dir.mkdir(parents=True, exist_ok=True)
    result_path = output_dir / "result.json"
    result_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    report_path = output_dir / "report.md"
    report_path.write_text(compose_report(result), encoding="utf-8")
    logger.info("Saved result to %s and report to %s", result_path, report_path)
    return 0 if result.success else 1


def _run_ingest(args: argparse.Namespace) -> int:
    _configure_logging(args.verbose)

    payload = json.loads(Path(args.result).read_text(encoding="utf-8"))
    images = [ImageCandidate.from_dict(item) for item in payload.get("relevantImages", [])]
    options = IngestOptions(
        max_images=args.max_images,
        quality_threshold=args.threshold,
        concurrency=args.concurrency,
    )
    if args.dry_run:
        store = MemoryObjectStore()
    else:
        store = LocalObjectStore(Path(args.store_dir).resolve(), base_url=args.base_url)

    summary = ingest_images(images, args.business_id, store, options)
    sys.stdout.write(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False) + "\n")
    sys.stdout.flush()
    return 0 if summary.saved_count else 1


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    if args.command == "scrape":
        return _run_scrape(args)
    return _run_ingest(args)


if __name__ == "__main__":
    raise SystemExit(main())
