"""Base class for trust sources (external reputation lookups)."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional

from .. import __version__
from ..analyzer.models import SourceResult
from ..analyzer.tables import DEFAULT_TABLES, HeuristicTables
from ..constants import SourceLabel
from ..errors import (
    AuthenticationError,
    ConfigurationError,
    NetworkError,
    QuotaExceededError,
    SourceError,
)
from ..utils.domains import extract_hostname, matches_any
from .rate_limiter import DailyQuota

logger = logging.getLogger(__name__)

USER_AGENT = f"Legitly/{__version__}"

ALLOWLIST_SCORE_CEILING = 0.1
ALLOWLIST_CONFIDENCE = 0.95


def is_legitimate_host(host: str, tables: HeuristicTables = DEFAULT_TABLES) -> bool:
    """Host on the legitimate-domain table or under a public-sector suffix."""
    host = (host or "").lower().strip(".")
    if not host:
        return False
    if matches_any(host, tables.legitimate_domains):
        return True
    return any(host.endswith(suffix) for suffix in tables.legitimate_suffixes)


class BaseTrustSource(ABC):
    """
    Abstract base class for all trust sources.

    ``lookup()`` wraps ``_query()`` with the shared contract:
    - missing credentials -> unavailable, "not configured"
    - spent daily budget -> unavailable, "rate limit exceeded" (no call made)
    - any ``SourceError`` -> unavailable with the error's message/retryability
    - allowlisted hosts -> score capped at 0.1, confidence 0.95, safe
    """

    name: str = "unknown"
    display_name: str = "Unknown source"
    requires_api_key: bool = True

    def __init__(
        self,
        api_key: Optional[str] = None,
        quota: Optional[DailyQuota] = None,
        tables: HeuristicTables = DEFAULT_TABLES,
        timeout_seconds: float = 10.0,
    ):
        self.api_key = api_key or ""
        self.quota = quota
        self.tables = tables
        self.timeout_seconds = timeout_seconds

    def is_configured(self) -> bool:
        return bool(self.api_key) or not self.requires_api_key

    async def lookup(self, url: str) -> SourceResult:
        """Query this source for a URL. Never raises."""
        try:
            if not self.is_configured():
                raise ConfigurationError()
            if self.quota is not None and not await self.quota.acquire():
                raise QuotaExceededError(retry_after=self.quota.retry_after())
            result = await self._query(url)
        except (QuotaExceededError, AuthenticationError) as e:
            logger.warning(f"{self.display_name} unavailable: {e.message}")
            return self.unavailable(e.message, retryable=e.retryable)
        except asyncio.TimeoutError:
            logger.debug(f"{self.display_name} timeout for {url}")
            return self.unavailable(NetworkError("timeout").message, retryable=True)
        except SourceError as e:
            logger.debug(f"{self.display_name} error for {url}: {e.message}")
            return self.unavailable(e.message, retryable=e.retryable)
        except Exception as e:
            logger.exception(f"{self.display_name} lookup failed for {url}: {e}")
            return self.unavailable(f"lookup failed: {e}")

        return self.apply_allowlist(url, result)

    @abstractmethod
    async def _query(self, url: str) -> SourceResult:
        """
        Perform the actual lookup.

        Raise ``SourceError`` subclasses for anything that prevents a verdict.
        """
        raise NotImplementedError

    def apply_allowlist(self, url: str, result: SourceResult) -> SourceResult:
        """Known-legitimate hosts override the remote verdict."""
        if not result.usable or not is_legitimate_host(extract_hostname(url), self.tables):
            return result
        return replace(
            result,
            score=min(result.score, ALLOWLIST_SCORE_CEILING),
            confidence=ALLOWLIST_CONFIDENCE,
            is_safe=True,
            label=SourceLabel.LEGITIMATE,
            details={**result.details, "allowlisted": True},
        )

    def result(
        self,
        score: float,
        confidence: float,
        is_safe: Optional[bool],
        **details,
    ) -> SourceResult:
        if is_safe is None:
            label = SourceLabel.UNKNOWN
        else:
            label = SourceLabel.LEGITIMATE if is_safe else SourceLabel.PHISHING
        return SourceResult(
            name=self.name,
            available=True,
            score=min(max(float(score), 0.0), 1.0),
            confidence=confidence,
            label=label,
            is_safe=is_safe,
            details={"service": self.display_name, **details},
        )

    def unavailable(self, error: str, *, retryable: bool = False) -> SourceResult:
        result = SourceResult.unavailable(self.name, error, retryable=retryable)
        result.details["service"] = self.display_name
        return result
