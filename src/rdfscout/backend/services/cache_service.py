"""In-memory cache with TTL support, plus the on-disk JSON cache."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any

from rdfscout.utils import sanitize_input

logger = logging.getLogger(__name__)


class MemoryCache:
    """Simple in-memory cache with per-key TTL."""

    def __init__(self) -> None:
        self._store: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires, value = entry
            if time.time() > expires:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: int = 300) -> None:
        if ttl <= 0:
            return
        with self._lock:
            self._store[key] = (time.time() + ttl, value)

    def invalidate(self, pattern: str = "") -> None:
        """Delete keys whose key starts with *pattern*."""
        with self._lock:
            keys = [k for k in self._store if k.startswith(pattern)]
            for k in keys:
                del self._store[k]


# Module-level singleton
cache = MemoryCache()


def cache_key(*parts: Any) -> str:
    """Build a short cache key from arbitrary parts."""
    raw = "|".join(str(p) for p in parts)
    return hashlib.sha256(raw.encode()).hexdigest()[:16]


class JsonFileCache:
    """Results stored as ``<directory>/<kind>_<sanitised endpoint>.json``.

    An empty *directory* disables the cache: reads miss and writes are
    dropped.
    """

    def __init__(self, directory: str | os.PathLike | None) -> None:
        self.directory = Path(directory) if directory else None

    def path(self, kind: str, endpoint: str) -> Path | None:
        if self.directory is None:
            return None
        return self.directory / f"{kind}_{sanitize_input(endpoint)}.json"

    def read(self, kind: str, endpoint: str) -> Any | None:
        path = self.path(kind, endpoint)
        if path is None or not path.is_file():
            return None
        try:
            with path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", path, exc)
            return None
        logger.info("%s data fetched from file: %s", kind.capitalize(), path)
        return data

    def write(self, kind: str, endpoint: str, data: Any) -> None:
        path = self.path(kind, endpoint)
        if path is None:
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        # readers only ever see a complete file
        fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp, path)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
        logger.debug("Wrote %s", path)
