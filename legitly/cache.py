"""Result cache for Legitly.

Memoizes the final ``EnsembleResult`` per URL:
- in-memory store guarded by a re-entrant lock
- optional JSON-on-disk persistence (one file per URL)
- time-based expiry and a size cap that evicts the oldest entries first
"""

import hashlib
import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .analyzer.models import EnsembleResult

logger = logging.getLogger(__name__)

HOUR_SECONDS = 60 * 60
DAY_SECONDS = 24 * HOUR_SECONDS


class CacheEntry:
    """Represents a cached result with the time it was stored."""

    __slots__ = ("url", "result", "stored_at")

    def __init__(self, url: str, result: dict, stored_at: float):
        self.url = url
        self.result = result
        self.stored_at = stored_at

    def is_expired(self, expiry_seconds: float, now: float) -> bool:
        return now - self.stored_at > expiry_seconds

    def to_dict(self) -> dict:
        return {"url": self.url, "result": self.result, "stored_at": self.stored_at}


def cache_key(url: str) -> str:
    """Stable key for a URL (exact string, no normalization)."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


class ResultCache:
    """
    Cache of analysis results keyed by URL.

    Usage:
        cache = ResultCache(cache_dir=Path("data/cache"), expiry_minutes=60)
        cache.set(url, result)
        cached = cache.get(url)  # EnsembleResult or None
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        expiry_minutes: int = 60,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self.expiry_minutes = max(1, int(expiry_minutes))
        self.max_entries = max(1, int(max_entries))
        self._clock = clock

        self._memory: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

        if self.cache_dir:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._load_disk()

    @property
    def expiry_seconds(self) -> int:
        return self.expiry_minutes * 60

    def _disk_path(self, key: str) -> Optional[Path]:
        if not self.cache_dir:
            return None
        return self.cache_dir / f"{key}.json"

    def _load_disk(self) -> None:
        """Populate memory from entries persisted by earlier runs."""
        for path in self.cache_dir.glob("*.json"):
            try:
                data = json.loads(path.read_text())
                entry = CacheEntry(
                    url=data["url"],
                    result=data["result"],
                    stored_at=float(data["stored_at"]),
                )
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.debug(f"Skipping unreadable cache file {path.name}: {e}")
                continue
            self._memory[path.stem] = entry
        if self._memory:
            logger.debug(f"Loaded {len(self._memory)} cached result(s) from {self.cache_dir}")

    def _write_disk(self, key: str, entry: CacheEntry) -> None:
        path = self._disk_path(key)
        if not path:
            return
        try:
            path.write_text(json.dumps(entry.to_dict()))
        except (OSError, TypeError, ValueError) as e:
            logger.debug(f"Failed to write disk cache for {entry.url}: {e}")

    def _delete_disk(self, key: str) -> None:
        path = self._disk_path(key)
        if path and path.exists():
            try:
                path.unlink()
            except OSError as e:
                logger.debug(f"Failed to delete disk cache {path.name}: {e}")

    def _evict(self, key: str) -> None:
        self._memory.pop(key, None)
        self._delete_disk(key)

    def get(self, url: str) -> Optional[EnsembleResult]:
        """Cached result for a URL, or None when missing or expired."""
        key = cache_key(url)
        with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                return None
            if entry.is_expired(self.expiry_seconds, self._clock()):
                self._evict(key)
                return None
            return EnsembleResult.from_dict(entry.result)

    def set(self, url: str, result: EnsembleResult) -> None:
        """Store a result, then trim to ``max_entries`` (oldest first)."""
        key = cache_key(url)
        entry = CacheEntry(url=url, result=result.to_dict(), stored_at=self._clock())
        with self._lock:
            self._memory[key] = entry
            self._write_disk(key, entry)
            self._trim()

    def _trim(self) -> int:
        excess = len(self._memory) - self.max_entries
        if excess <= 0:
            return 0
        oldest = sorted(self._memory.items(), key=lambda item: item[1].stored_at)[:excess]
        for key, _ in oldest:
            self._evict(key)
        logger.debug(f"Removed {excess} old cache entries")
        return excess

    def delete(self, url: str) -> None:
        with self._lock:
            self._evict(cache_key(url))

    def clear(self) -> None:
        """Drop every cached result."""
        with self._lock:
            for key in list(self._memory):
                self._evict(key)
            if self.cache_dir:
                for path in self.cache_dir.glob("*.json"):
                    self._delete_disk(path.stem)

    def clear_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._memory.items() if e.is_expired(self.expiry_seconds, now)]
            for key in expired:
                self._evict(key)
        if expired:
            logger.info(f"Cleared {len(expired)} expired cache entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._memory)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        now = self._clock()
        with self._lock:
            stamps = [e.stored_at for e in self._memory.values()]
        return {
            "total_entries": len(stamps),
            "recent_entries": sum(1 for s in stamps if now - s < HOUR_SECONDS),
            "today_entries": sum(1 for s in stamps if now - s < DAY_SECONDS),
            "oldest_entry": min(stamps) if stamps else None,
            "newest_entry": max(stamps) if stamps else None,
            "expiry_minutes": self.expiry_minutes,
            "max_entries": self.max_entries,
            "use_disk": self.cache_dir is not None,
        }
