"""Object stores that receive re-encoded portfolio images."""

from __future__ import annotations

import logging
import threading
from pathlib import Path, PurePosixPath
from typing import Dict, Optional, Tuple

from .errors import StorageError

logger = logging.getLogger("portfolio_scout")


def _safe_key(path: str) -> PurePosixPath:
    key = PurePosixPath(path)
    if key.is_absolute() or ".." in key.parts or not key.parts:
        raise StorageError(f"Refusing to store outside the bucket: {path!r}")
    return key


class LocalObjectStore:
    """Writes objects below a root directory.

    ``base_url`` is prefixed to the key to build the public URL; without it
    a ``file://`` URL is returned.
    """

    def __init__(self, root: Path, base_url: Optional[str] = None) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/") if base_url else None

    def put(self, path: str, data: bytes, content_type: str) -> str:
        key = _safe_key(path)
        destination = self.root.joinpath(*key.parts)
        if destination.exists():
            raise StorageError(f"Object already exists: {key}")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {destination}: {exc}") from exc
        logger.debug("Stored %s (%s, %d bytes)", destination, content_type, len(data))
        if self.base_url:
            return f"{self.base_url}/{key}"
        return destination.resolve().as_uri()


class MemoryObjectStore:
    """Keeps objects in a dict; handy for tests and dry runs."""

    def __init__(self, base_url: str = "memory://portfolio") -> None:
        self.base_url = base_url.rstrip("/")
        self.objects: Dict[str, Tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def put(self, path: str, data: bytes, content_type: str) -> str:
        key = str(_safe_key(path))
        with self._lock:
            if key in self.objects:
                raise StorageError(f"Object already exists: {key}")
            self.objects[key] = (data, content_type)
        return f"{self.base_url}/{key}"
