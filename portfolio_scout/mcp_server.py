"""MCP server exposing the portfolio scrape as a tool."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from mcp.server.fastmcp import FastMCP

from .config import CrawlConfig
from .crawler import run_scrape

logger = logging.getLogger("portfolio_scout.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="portfolio-scout")


@mcp.tool()
async def scrape(
    url: str,
    categories: List[str],
) -> Dict[str, Any]:
    """Crawl a vendor website and return its images ranked by category relevance."""
    result = await run_scrape(url, categories, CrawlConfig())
    return result.to_dict()


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
