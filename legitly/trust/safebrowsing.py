"""Google Safe Browsing threat-match lookup."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from .. import __version__
from ..analyzer.models import SourceResult
from ..errors import APIError, NetworkError, error_for_status
from .base import BaseTrustSource

logger = logging.getLogger(__name__)

THREAT_TYPES = [
    "MALWARE",
    "SOCIAL_ENGINEERING",
    "UNWANTED_SOFTWARE",
    "POTENTIALLY_HARMFUL_APPLICATION",
]


class SafeBrowsingSource(BaseTrustSource):
    """
    Google Safe Browsing v4 ``threatMatches:find``.

    Binary verdict: any match scores 0.9, no match scores 0.1; both carry
    confidence 0.95.
    """

    name = "google_safe_browsing"
    display_name = "Google Safe Browsing"
    requires_api_key = True

    API_URL = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
    CLIENT_ID = "legitly"

    MATCH_SCORE = 0.9
    CLEAN_SCORE = 0.1
    CONFIDENCE = 0.95

    def build_payload(self, url: str) -> dict[str, Any]:
        return {
            "client": {"clientId": self.CLIENT_ID, "clientVersion": __version__},
            "threatInfo": {
                "threatTypes": THREAT_TYPES,
                "platformTypes": ["ANY_PLATFORM"],
                "threatEntryTypes": ["URL"],
                "threatEntries": [{"url": url}],
            },
        }

    async def _query(self, url: str) -> SourceResult:
        endpoint = f"{self.API_URL}?key={self.api_key}"
        headers = {"Content-Type": "application/json"}
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    endpoint,
                    headers=headers,
                    json=self.build_payload(url),
                    timeout=timeout,
                ) as resp:
                    if resp.status != 200:
                        raise error_for_status(resp.status, await resp.text())
                    data = await resp.json()
        except aiohttp.ClientError as e:
            raise NetworkError(f"network error: {e}") from e

        if not isinstance(data, dict):
            raise APIError(200, "malformed response")

        matches = data.get("matches") or []
        threat_types = sorted({m.get("threatType", "") for m in matches if isinstance(m, dict)} - {""})
        if matches:
            logger.debug(f"Safe Browsing: {url} matched {threat_types}")
            return self.result(self.MATCH_SCORE, self.CONFIDENCE, False, threat_types=threat_types)
        return self.result(self.CLEAN_SCORE, self.CONFIDENCE, True, threat_types=[])
