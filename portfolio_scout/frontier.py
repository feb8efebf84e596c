"""Breadth-first crawl frontier: pending tasks plus the visited set."""

from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional, Set

from .config import CrawlConfig
from .models import CrawlTask
from .utils import normalize_url


class Frontier:
    """FIFO queue of ``CrawlTask`` with depth and page budgets.

    A URL is marked visited when it is popped, never earlier, and is never
    handed out twice.
    """

    def __init__(self, config: CrawlConfig) -> None:
        self.config = config
        self._queue: Deque[CrawlTask] = deque()
        self._visited: Set[str] = set()
        self.visited_order: List[str] = []

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def visited(self) -> Set[str]:
        return set(self._visited)

    def is_visited(self, url: str) -> bool:
        return normalize_url(url) in self._visited

    def seed(self, url: str) -> None:
        self._queue.append(CrawlTask(url=url, depth=0))

    def push(self, url: str, parent: CrawlTask) -> bool:
        """Enqueue ``url`` one level below ``parent``; False if not allowed."""
        depth = parent.depth + 1
        if depth > self.config.max_depth or self.is_visited(url):
            return False
        self._queue.append(CrawlTask(url=url, depth=depth))
        return True

    def mark_visited(self, url: str) -> bool:
        """Record an alias of a fetched page (its final URL after redirects).

        Aliases never count against the page budget. Returns False if the
        URL was already known.
        """
        key = normalize_url(url)
        if key in self._visited:
            return False
        self._visited.add(key)
        return True

    def page_budget_exhausted(self) -> bool:
        return len(self.visited_order) >= self.config.max_pages

    def pop(self) -> Optional[CrawlTask]:
        """Next unvisited task within depth, marked visited; None when drained."""
        while self._queue:
            task = self._queue.popleft()
            key = normalize_url(task.url)
            if key in self._visited or task.depth > self.config.max_depth:
                continue
            self._visited.add(key)
            self.visited_order.append(key)
            return task
        return None
