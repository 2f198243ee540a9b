"""PhishTank database lookup."""

from __future__ import annotations

import logging

import httpx

from ..analyzer.models import SourceResult
from ..errors import APIError, NetworkError, error_for_status
from .base import USER_AGENT, BaseTrustSource

logger = logging.getLogger(__name__)


class PhishTankSource(BaseTrustSource):
    """
    PhishTank community phishing database.

    An app key is optional (it only raises PhishTank's rate limits), so this
    source is usable without credentials.
    """

    name = "phishtank"
    display_name = "PhishTank"
    requires_api_key = False

    CHECK_URL = "https://checkurl.phishtank.com/checkurl/"

    VERIFIED_SCORE = 0.95
    UNVERIFIED_SCORE = 0.7
    NOT_FOUND_SCORE = 0.2
    CONFIDENCE = 0.8

    async def _query(self, url: str) -> SourceResult:
        data = {"url": url, "format": "json"}
        if self.api_key:
            data["app_key"] = self.api_key

        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            try:
                resp = await client.post(
                    self.CHECK_URL,
                    data=data,
                    headers={"User-Agent": USER_AGENT},
                )
            except httpx.TimeoutException as e:
                raise NetworkError("timeout") from e
            except httpx.HTTPError as e:
                raise NetworkError(f"network error: {e}") from e

        if resp.status_code != 200:
            raise error_for_status(resp.status_code, resp.text)

        try:
            results = resp.json().get("results") or {}
        except (ValueError, AttributeError) as e:
            raise APIError(200, "malformed response") from e

        in_database = bool(results.get("in_database"))
        verified = bool(results.get("verified"))
        if in_database and verified:
            logger.debug(f"PhishTank: {url} is a verified phish")
            return self.result(self.VERIFIED_SCORE, self.CONFIDENCE, False, in_database=True, verified=True)
        if in_database:
            return self.result(self.UNVERIFIED_SCORE, self.CONFIDENCE, None, in_database=True, verified=False)
        return self.result(self.NOT_FOUND_SCORE, self.CONFIDENCE, True, in_database=False, verified=False)
