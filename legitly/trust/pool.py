"""Trust source pool: the fixed set of reputation lookups."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Collection, Iterable, Optional

from ..analyzer.models import SourceResult
from .base import BaseTrustSource
from .phishtank import PhishTankSource
from .rate_limiter import QuotaRegistry, get_registry
from .reputation import DomainReputationSource
from .safebrowsing import SafeBrowsingSource
from .virustotal import VirusTotalSource

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

TRUST_SOURCE_NAMES: tuple[str, ...] = (
    SafeBrowsingSource.name,
    VirusTotalSource.name,
    PhishTankSource.name,
    DomainReputationSource.name,
)


def build_trust_sources(config: "Config", registry: Optional[QuotaRegistry] = None) -> list[BaseTrustSource]:
    """Instantiate every trust source with its credential and daily budget."""
    registry = registry or get_registry()
    tables = config.tables()
    timeout = config.timeout_ms / 1000

    return [
        SafeBrowsingSource(
            api_key=config.google_safe_browsing_api_key,
            quota=registry.get(SafeBrowsingSource.name, config.safe_browsing_daily_quota),
            tables=tables,
            timeout_seconds=timeout,
        ),
        VirusTotalSource(
            api_key=config.virustotal_api_key,
            quota=registry.get(VirusTotalSource.name, config.virustotal_daily_quota),
            tables=tables,
            timeout_seconds=timeout,
            submit_unknown=config.virustotal_submit_unknown,
        ),
        PhishTankSource(
            api_key=config.phishtank_api_key,
            quota=registry.get(PhishTankSource.name, config.phishtank_daily_quota),
            tables=tables,
            timeout_seconds=timeout,
        ),
        DomainReputationSource(tables=tables, timeout_seconds=timeout),
    ]


class TrustSourcePool:
    """Runs enabled trust sources side by side with settle-all semantics."""

    def __init__(self, sources: Iterable[BaseTrustSource]):
        self.sources: dict[str, BaseTrustSource] = {s.name: s for s in sources}

    @classmethod
    def from_config(cls, config: "Config", registry: Optional[QuotaRegistry] = None) -> "TrustSourcePool":
        return cls(build_trust_sources(config, registry))

    @property
    def names(self) -> list[str]:
        return list(self.sources)

    def get(self, name: str) -> Optional[BaseTrustSource]:
        return self.sources.get(name)

    async def _run_one(self, source: BaseTrustSource, url: str, timeout: Optional[float]) -> SourceResult:
        try:
            if timeout is None:
                return await source.lookup(url)
            return await asyncio.wait_for(source.lookup(url), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug(f"{source.display_name} exceeded {timeout}s for {url}")
            return source.unavailable("timeout", retryable=True)

    async def lookup_all(
        self,
        url: str,
        *,
        enabled: Optional[Collection[str]] = None,
        timeout: Optional[float] = None,
    ) -> list[SourceResult]:
        """Query every enabled source; one failure never affects another."""
        selected = [s for name, s in self.sources.items() if enabled is None or name in enabled]
        if not selected:
            return []
        return list(await asyncio.gather(*(self._run_one(s, url, timeout) for s in selected)))
