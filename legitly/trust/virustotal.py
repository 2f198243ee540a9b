"""VirusTotal v3 URL report lookup."""

from __future__ import annotations

import base64
import logging
from typing import Any

import aiohttp

from ..analyzer.models import SourceResult
from ..errors import APIError, NetworkError, error_for_status
from .base import BaseTrustSource

logger = logging.getLogger(__name__)


def url_id(url: str) -> str:
    """VirusTotal URL identifier: url-safe base64 without padding."""
    return base64.urlsafe_b64encode(url.encode()).decode().rstrip("=")


class VirusTotalSource(BaseTrustSource):
    """
    Multi-engine scan verdicts.

    404 means VirusTotal has never seen the URL: neutral score with low
    confidence (optionally queueing a scan). Otherwise the score is the share
    of engines flagging the URL as malicious or suspicious.
    """

    name = "virustotal"
    display_name = "VirusTotal"
    requires_api_key = True

    API_URL = "https://www.virustotal.com/api/v3/urls"

    UNKNOWN_SCORE = 0.5
    UNKNOWN_CONFIDENCE = 0.3
    SAFE_RATIO = 0.1
    MIN_ENGINES_FOR_HIGH_CONFIDENCE = 10

    def __init__(self, *args, submit_unknown: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.submit_unknown = submit_unknown

    async def _submit(self, session: aiohttp.ClientSession, url: str) -> bool:
        """Queue a scan for an unknown URL (best effort)."""
        try:
            async with session.post(
                self.API_URL,
                headers={"x-apikey": self.api_key},
                data={"url": url},
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as resp:
                if resp.status in (200, 201):
                    logger.debug(f"VirusTotal: submitted {url} for scanning")
                    return True
                logger.debug(f"VirusTotal: submission for {url} returned {resp.status}")
        except aiohttp.ClientError as e:
            logger.debug(f"VirusTotal submission error for {url}: {e}")
        return False

    async def _query(self, url: str) -> SourceResult:
        endpoint = f"{self.API_URL}/{url_id(url)}"
        headers = {"x-apikey": self.api_key}
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(endpoint, headers=headers, timeout=timeout) as resp:
                    if resp.status == 404:
                        submitted = await self._submit(session, url) if self.submit_unknown else False
                        return self.result(
                            self.UNKNOWN_SCORE,
                            self.UNKNOWN_CONFIDENCE,
                            None,
                            status="not_found",
                            submitted=submitted,
                        )
                    if resp.status != 200:
                        raise error_for_status(resp.status, await resp.text())
                    data = await resp.json()
        except aiohttp.ClientError as e:
            raise NetworkError(f"network error: {e}") from e

        return self.parse_report(data)

    def parse_report(self, data: Any) -> SourceResult:
        try:
            stats = data["data"]["attributes"]["last_analysis_stats"]
            counts = {
                key: int(stats.get(key, 0) or 0)
                for key in ("harmless", "malicious", "suspicious", "undetected")
            }
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise APIError(200, "malformed response") from e

        total = sum(counts.values())
        flagged = counts["malicious"] + counts["suspicious"]
        ratio = flagged / total if total > 0 else 0.0
        confidence = 0.9 if total > self.MIN_ENGINES_FOR_HIGH_CONFIDENCE else 0.6

        return self.result(ratio, confidence, ratio < self.SAFE_RATIO, total=total, **counts)
