"""
On-disk cache for AWS CLI responses.

Layout:
- <cache_dir>/<profile>/<kind>_<profile>_<name>.json
- one JSON document per key, exactly as returned by the AWS CLI
- the file's mtime is the entry's timestamp; entries older than the TTL
  are deleted on read

The cache is best-effort: every I/O problem is logged at DEBUG and turns
into a miss. It is never the only copy of anything.
"""

from __future__ import annotations

import json
import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable
from urllib.parse import quote

from .fileio import write_json_atomic
from .freshness import age_string as _age_string
from .session import Session

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300  # 5 minutes


def _safe_component(value: str) -> str:
    """Percent-encode ``value`` into a single, reversible path component."""
    encoded = quote(value, safe="-_")
    if encoded.startswith("."):
        encoded = "%2E" + encoded[1:]
    return encoded or "_"


@dataclass(frozen=True)
class CacheKey:
    """Composite cache key: resource kind + profile + resource name."""

    kind: str
    profile: str
    name: str = ""

    @classmethod
    def for_session(cls, session: Session, kind: str, name: str = "") -> "CacheKey":
        return cls(kind=kind, profile=session.namespace, name=name)

    @property
    def namespace(self) -> str:
        return _safe_component(self.profile or "default")

    @property
    def stem(self) -> str:
        parts = [self.kind, self.profile or "default"]
        if self.name:
            parts.append(self.name)
        return _safe_component("_".join(parts))

    def __str__(self) -> str:
        return self.stem


@dataclass
class CacheHit:
    """A cached payload and how old it is, in seconds."""

    payload: Any
    age: float

    @property
    def age_string(self) -> str:
        return _age_string(self.age)


class CacheStore:
    """JSON blob cache with mtime-based expiry."""

    def __init__(
        self,
        cache_dir: Path,
        ttl: int = DEFAULT_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir).expanduser()
        self.ttl = ttl
        self._clock = clock

    age_string = staticmethod(_age_string)

    def path_for(self, key: CacheKey) -> Path:
        return self.cache_dir / key.namespace / f"{key.stem}.json"

    def get(self, key: CacheKey) -> CacheHit | None:
        """Return the cached payload and its age, or None on a miss."""
        path = self.path_for(key)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug("cache stat failed for %s: %s", key, e)
            return None

        age = max(0.0, self._clock() - mtime)
        if age > self.ttl:
            logger.debug("cache expired for %s (%s)", key, _age_string(age))
            self._remove(path)
            return None

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug("cache entry unreadable for %s: %s", key, e)
            self._remove(path)
            return None

        logger.debug("cache hit for %s (%s)", key, _age_string(age))
        return CacheHit(payload=payload, age=age)

    def set(self, key: CacheKey, payload: Any) -> bool:
        """Store ``payload`` under ``key``; returns False if the write failed."""
        path = self.path_for(key)
        try:
            write_json_atomic(path, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.debug("cache write failed for %s: %s", key, e)
            return False
        return True

    def clear(self, key: CacheKey | None = None) -> None:
        """Delete one entry, or every entry when no key is given."""
        if key is not None:
            self._remove(self.path_for(key))
            return

        try:
            if not self.cache_dir.is_dir():
                return
            children = list(self.cache_dir.iterdir())
        except OSError as e:
            logger.debug("cache clear failed: %s", e)
            return
        for child in children:
            self._remove_tree(child)
        logger.debug("cache cleared")

    def clear_profile(self, profile: str) -> None:
        """Delete every entry in ``profile``'s namespace and nothing else."""
        self._remove_tree(self.cache_dir / _safe_component(profile or "default"))
        logger.debug("cache cleared for profile %s", profile)

    def _remove_tree(self, path: Path) -> None:
        try:
            if path.is_dir():
                shutil.rmtree(path, ignore_errors=True)
                return
        except OSError as e:
            logger.debug("cache delete failed for %s: %s", path, e)
            return
        self._remove(path)

    def _remove(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.debug("cache delete failed for %s: %s", path, e)
