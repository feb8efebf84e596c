"""robots.txt check performed once before a crawl starts."""

from __future__ import annotations

import logging
import urllib.robotparser
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import requests

from .config import DEFAULT_USER_AGENT

logger = logging.getLogger("portfolio_scout")


def robots_url_for(base_url: str) -> str:
    parts = urlsplit(base_url)
    return urlunsplit((parts.scheme, parts.netloc, "/robots.txt", "", ""))


def site_root(base_url: str) -> str:
    parts = urlsplit(base_url)
    return urlunsplit((parts.scheme, parts.netloc, "/", "", ""))


def disallows_everyone(robots_text: str, root_url: str = "/") -> bool:
    """True when the rules for ``User-agent: *`` forbid fetching the site root."""
    rp = urllib.robotparser.RobotFileParser()
    rp.parse(robots_text.splitlines())
    return not rp.can_fetch("*", root_url)


def check_robots(
    base_url: str,
    *,
    timeout: float = 5.0,
    user_agent: str = DEFAULT_USER_AGENT,
    session: Optional[requests.Session] = None,
) -> bool:
    """Return False only when the site blocks all crawlers outright.

    A single best-effort GET; any network error, non-200 status or
    undecodable body counts as permission granted. The body is parsed with
    ``RobotFileParser`` rather than ``RobotFileParser.read``, which has no
    timeout.
    """
    robots_url = robots_url_for(base_url)
    http = session or requests
    try:
        resp = http.get(robots_url, timeout=timeout, headers={"User-Agent": user_agent})
    except requests.RequestException as exc:
        logger.info("robots.txt not reachable at %s (%s); proceeding", robots_url, exc)
        return True
    if resp.status_code != 200:
        logger.info("robots.txt returned HTTP %s at %s; proceeding", resp.status_code, robots_url)
        return True
    try:
        text = resp.text
    except (UnicodeDecodeError, LookupError) as exc:
        logger.warning("Could not decode robots.txt at %s (%s); proceeding", robots_url, exc)
        return True
    if disallows_everyone(text or "", site_root(base_url)):
        logger.warning("robots.txt at %s disallows all user agents", robots_url)
        return False
    return True
