"""Daily call budgets for trust sources."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

DAY_SECONDS = 24 * 60 * 60


@dataclass
class DailyQuota:
    """
    Fixed number of calls per rolling window.

    The window opens on first use and lasts ``window_seconds``; once it has
    elapsed the next call starts a fresh window. ``acquire()`` checks and
    increments under one lock so concurrent lookups can never overspend.
    """

    limit: int
    window_seconds: float = DAY_SECONDS
    clock: Callable[[], float] = time.time
    _calls: int = field(default=0, init=False)
    _reset_at: float = field(default=0.0, init=False)
    _lock: Optional[asyncio.Lock] = field(default=None, init=False, repr=False)
    _lock_loop: Optional[asyncio.AbstractEventLoop] = field(default=None, init=False, repr=False)

    def _roll(self) -> None:
        now = self.clock()
        if now >= self._reset_at:
            self._calls = 0
            self._reset_at = now + self.window_seconds

    def _loop_lock(self) -> asyncio.Lock:
        """Lock bound to the running loop, recreated when the loop changes."""
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def acquire(self) -> bool:
        """Reserve one call. False when the budget is spent."""
        async with self._loop_lock():
            self._roll()
            if self._calls >= self.limit:
                return False
            self._calls += 1
            return True

    @property
    def used(self) -> int:
        if self.clock() >= self._reset_at:
            return 0
        return self._calls

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    def retry_after(self) -> Optional[int]:
        """Seconds until the window resets, or None when calls are available."""
        if self.remaining > 0:
            return None
        return max(int(self._reset_at - self.clock()), 0)

    def reset(self) -> None:
        self._calls = 0
        self._reset_at = 0.0
        self._lock = None
        self._lock_loop = None


class QuotaRegistry:
    """Registry of quotas keyed by source name."""

    def __init__(self):
        self._quotas: dict[str, DailyQuota] = {}

    def get(self, source: str, limit: int) -> DailyQuota:
        """Get or create the quota for a source (limit updates in place)."""
        quota = self._quotas.get(source)
        if quota is None:
            quota = DailyQuota(limit=limit)
            self._quotas[source] = quota
        elif quota.limit != limit:
            quota.limit = limit
        return quota

    def reset(self, source: str) -> None:
        if source in self._quotas:
            self._quotas[source].reset()

    def reset_all(self) -> None:
        for quota in self._quotas.values():
            quota.reset()

    def snapshot(self) -> dict[str, dict[str, int]]:
        return {
            name: {"limit": q.limit, "used": q.used, "remaining": q.remaining}
            for name, q in self._quotas.items()
        }


# Global registry instance
_registry = QuotaRegistry()


def get_daily_quota(source: str, limit: int) -> DailyQuota:
    """Get the quota for a source from the global registry."""
    return _registry.get(source, limit)


def get_registry() -> QuotaRegistry:
    return _registry
