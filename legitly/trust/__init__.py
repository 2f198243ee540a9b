"""Trust sources: external and offline reputation lookups."""

from .base import BaseTrustSource, is_legitimate_host
from .phishtank import PhishTankSource
from .pool import TRUST_SOURCE_NAMES, TrustSourcePool, build_trust_sources
from .rate_limiter import DailyQuota, QuotaRegistry, get_daily_quota
from .reputation import DomainReputationSource, analyze_domain
from .safebrowsing import SafeBrowsingSource
from .virustotal import VirusTotalSource

__all__ = [
    "BaseTrustSource",
    "DailyQuota",
    "DomainReputationSource",
    "PhishTankSource",
    "QuotaRegistry",
    "SafeBrowsingSource",
    "TRUST_SOURCE_NAMES",
    "TrustSourcePool",
    "VirusTotalSource",
    "analyze_domain",
    "build_trust_sources",
    "get_daily_quota",
    "is_legitimate_host",
]
