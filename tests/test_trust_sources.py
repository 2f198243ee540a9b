"""Tests for trust sources."""

import asyncio

import aiohttp
import httpx
import pytest

from legitly.analyzer.models import SourceResult
from legitly.config import Config
from legitly.constants import SourceLabel
from legitly.trust.base import BaseTrustSource, is_legitimate_host
from legitly.trust.phishtank import PhishTankSource
from legitly.trust.pool import TRUST_SOURCE_NAMES, TrustSourcePool, build_trust_sources
from legitly.trust.rate_limiter import DailyQuota, QuotaRegistry
from legitly.trust.reputation import (
    DomainReputationSource,
    analyze_domain,
    find_impersonated_brand,
    reputation_category,
)
from legitly.trust.safebrowsing import SafeBrowsingSource
from legitly.trust.virustotal import VirusTotalSource, url_id


class _FakeResponse:
    def __init__(self, status: int, payload: dict | str):
        self.status = status
        self._payload = payload

    async def json(self):
        if not isinstance(self._payload, dict):
            raise TypeError("Response payload is not JSON")
        return self._payload

    async def text(self):
        if isinstance(self._payload, str):
            return self._payload
        return ""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _FakeSession:
    def __init__(self, *, get_response=None, post_response=None, error: Exception | None = None):
        self._get_response = get_response or (200, {})
        self._post_response = post_response or (200, {})
        self._error = error
        self.get_calls: list[tuple[str, dict]] = []
        self.post_calls: list[tuple[str, dict]] = []

    def get(self, url, headers=None, timeout=None):
        if self._error:
            raise self._error
        self.get_calls.append((url, headers or {}))
        return _FakeResponse(*self._get_response)

    def post(self, url, headers=None, json=None, data=None, timeout=None):
        if self._error:
            raise self._error
        self.post_calls.append((url, json if json is not None else data))
        return _FakeResponse(*self._post_response)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class _FakeHttpxResponse:
    def __init__(self, *, status_code: int = 200, json_data: object = None, text: str = ""):
        self.status_code = status_code
        self.text = text
        self._json_data = json_data

    def json(self):
        if self._json_data is None:
            raise ValueError("No JSON configured for fake response")
        return self._json_data


class _FakeAsyncClient:
    def __init__(self, response=None, error: Exception | None = None):
        self._response = response or _FakeHttpxResponse(json_data={})
        self._error = error
        self.post_calls: list[tuple[str, dict, dict]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url: str, data=None, headers=None, **kwargs):
        if self._error:
            raise self._error
        self.post_calls.append((url, data or {}, headers or {}))
        return self._response


def _patch_session(monkeypatch, session):
    monkeypatch.setattr(aiohttp, "ClientSession", lambda *args, **kwargs: session)


def _patch_client(monkeypatch, client):
    monkeypatch.setattr(httpx, "AsyncClient", lambda *args, **kwargs: client)


class TestBaseContract:
    @pytest.mark.asyncio
    async def test_missing_credentials_short_circuit(self, monkeypatch):
        session = _FakeSession()
        _patch_session(monkeypatch, session)

        result = await SafeBrowsingSource(api_key="").lookup("https://example.com/")
        assert result.available is False
        assert result.error == "not configured"
        assert not result.retryable
        assert session.post_calls == []

    @pytest.mark.asyncio
    async def test_spent_quota_short_circuits_without_calling(self, monkeypatch):
        session = _FakeSession(post_response=(200, {}))
        _patch_session(monkeypatch, session)
        source = SafeBrowsingSource(api_key="key", quota=DailyQuota(limit=1))

        first = await source.lookup("https://example.com/")
        second = await source.lookup("https://example.com/")

        assert first.usable
        assert second.available is False
        assert second.error == "rate limit exceeded"
        assert second.retryable
        assert len(session.post_calls) == 1

    @pytest.mark.asyncio
    async def test_auth_failure_is_terminal(self, monkeypatch):
        _patch_session(monkeypatch, _FakeSession(post_response=(403, "forbidden")))
        result = await SafeBrowsingSource(api_key="bad").lookup("https://example.com/")
        assert result.error == "invalid API key"
        assert not result.retryable

    @pytest.mark.asyncio
    async def test_remote_quota_is_retryable(self, monkeypatch):
        _patch_session(monkeypatch, _FakeSession(post_response=(429, "slow down")))
        result = await SafeBrowsingSource(api_key="key").lookup("https://example.com/")
        assert result.error == "remote quota exceeded"
        assert result.retryable

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,retryable", [(500, True), (503, True), (400, False)])
    async def test_server_errors(self, monkeypatch, status, retryable):
        _patch_session(monkeypatch, _FakeSession(post_response=(status, "oops")))
        result = await SafeBrowsingSource(api_key="key").lookup("https://example.com/")
        assert result.error == f"API error {status}"
        assert result.retryable is retryable

    @pytest.mark.asyncio
    async def test_network_failure(self, monkeypatch):
        _patch_session(monkeypatch, _FakeSession(error=aiohttp.ClientConnectionError("refused")))
        result = await SafeBrowsingSource(api_key="key").lookup("https://example.com/")
        assert result.available is False
        assert result.error.startswith("network error")
        assert result.retryable

    @pytest.mark.asyncio
    async def test_allowlist_overrides_remote_verdict(self, monkeypatch):
        _patch_session(monkeypatch, _FakeSession(post_response=(200, {"matches": [{"threatType": "MALWARE"}]})))
        result = await SafeBrowsingSource(api_key="key").lookup("https://www.irs.gov/refund")
        assert result.score == pytest.approx(0.1)
        assert result.confidence == pytest.approx(0.95)
        assert result.is_safe is True
        assert result.label == SourceLabel.LEGITIMATE
        assert result.details["allowlisted"] is True

    def test_legitimate_hosts(self):
        assert is_legitimate_host("login.chase.com")
        assert is_legitimate_host("digital.nhs.uk")
        assert is_legitimate_host("army.mil")
        assert not is_legitimate_host("chase.com.evil.tk")
        assert not is_legitimate_host("")

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_unavailable(self):
        class _Exploding(BaseTrustSource):
            name = "exploding"
            requires_api_key = False

            async def _query(self, url):
                raise KeyError("surprise")

        result = await _Exploding().lookup("https://example.com/")
        assert result.available is False
        assert result.error.startswith("lookup failed")


class TestSafeBrowsing:
    @pytest.mark.asyncio
    async def test_match_is_unsafe(self, monkeypatch):
        session = _FakeSession(post_response=(200, {"matches": [{"threatType": "SOCIAL_ENGINEERING"}]}))
        _patch_session(monkeypatch, session)

        result = await SafeBrowsingSource(api_key="key").lookup("http://paypal-login.tk/")

        assert result.score == pytest.approx(0.9)
        assert result.confidence == pytest.approx(0.95)
        assert result.is_safe is False
        assert result.details["threat_types"] == ["SOCIAL_ENGINEERING"]
        url, payload = session.post_calls[0]
        assert url.endswith("threatMatches:find?key=key")
        assert payload["threatInfo"]["threatEntries"] == [{"url": "http://paypal-login.tk/"}]
        assert "POTENTIALLY_HARMFUL_APPLICATION" in payload["threatInfo"]["threatTypes"]
        assert payload["client"]["clientId"] == "legitly"

    @pytest.mark.asyncio
    async def test_no_match_is_safe(self, monkeypatch):
        _patch_session(monkeypatch, _FakeSession(post_response=(200, {})))
        result = await SafeBrowsingSource(api_key="key").lookup("http://example.net/")
        assert result.score == pytest.approx(0.1)
        assert result.is_safe is True


class TestVirusTotal:
    def test_url_id_has_no_padding(self):
        assert url_id("http://a.b/") == "aHR0cDovL2EuYi8"

    @pytest.mark.asyncio
    async def test_report_ratio(self, monkeypatch):
        stats = {"harmless": 60, "malicious": 6, "suspicious": 2, "undetected": 12}
        session = _FakeSession(get_response=(200, {"data": {"attributes": {"last_analysis_stats": stats}}}))
        _patch_session(monkeypatch, session)

        result = await VirusTotalSource(api_key="key").lookup("http://example.net/")

        assert result.score == pytest.approx(8 / 80)
        assert result.confidence == pytest.approx(0.9)
        assert result.is_safe is False
        url, headers = session.get_calls[0]
        assert url.endswith("/" + url_id("http://example.net/"))
        assert headers == {"x-apikey": "key"}

    @pytest.mark.asyncio
    async def test_few_engines_lower_confidence(self, monkeypatch):
        stats = {"harmless": 5, "malicious": 0, "suspicious": 0, "undetected": 2}
        _patch_session(monkeypatch, _FakeSession(get_response=(200, {"data": {"attributes": {"last_analysis_stats": stats}}})))
        result = await VirusTotalSource(api_key="key").lookup("http://example.net/")
        assert result.score == 0
        assert result.confidence == pytest.approx(0.6)
        assert result.is_safe is True

    @pytest.mark.asyncio
    async def test_unknown_url(self, monkeypatch):
        session = _FakeSession(get_response=(404, "not found"))
        _patch_session(monkeypatch, session)

        result = await VirusTotalSource(api_key="key").lookup("http://new.example/")

        assert result.score == pytest.approx(0.5)
        assert result.confidence == pytest.approx(0.3)
        assert result.is_safe is None
        assert result.label == SourceLabel.UNKNOWN
        assert result.details["submitted"] is False
        assert session.post_calls == []

    @pytest.mark.asyncio
    async def test_unknown_url_submitted_when_enabled(self, monkeypatch):
        session = _FakeSession(get_response=(404, "not found"), post_response=(200, {}))
        _patch_session(monkeypatch, session)

        result = await VirusTotalSource(api_key="key", submit_unknown=True).lookup("http://new.example/")

        assert result.details["submitted"] is True
        assert session.post_calls == [("https://www.virustotal.com/api/v3/urls", {"url": "http://new.example/"})]

    @pytest.mark.asyncio
    async def test_malformed_report(self, monkeypatch):
        _patch_session(monkeypatch, _FakeSession(get_response=(200, {"data": {}})))
        result = await VirusTotalSource(api_key="key").lookup("http://example.net/")
        assert result.available is False
        assert result.error == "API error 200: malformed response"


class TestPhishTank:
    @pytest.mark.asyncio
    async def test_verified_phish(self, monkeypatch):
        client = _FakeAsyncClient(
            _FakeHttpxResponse(json_data={"results": {"in_database": True, "verified": True}})
        )
        _patch_client(monkeypatch, client)

        result = await PhishTankSource(api_key="app").lookup("http://bad.example/")

        assert result.score == pytest.approx(0.95)
        assert result.is_safe is False
        _, data, headers = client.post_calls[0]
        assert data == {"url": "http://bad.example/", "format": "json", "app_key": "app"}
        assert headers["User-Agent"].startswith("Legitly/")

    @pytest.mark.asyncio
    async def test_works_without_key(self, monkeypatch):
        client = _FakeAsyncClient(_FakeHttpxResponse(json_data={"results": {"in_database": False}}))
        _patch_client(monkeypatch, client)

        result = await PhishTankSource().lookup("http://fine.example/")

        assert result.score == pytest.approx(0.2)
        assert result.confidence == pytest.approx(0.8)
        assert result.is_safe is True
        assert "app_key" not in client.post_calls[0][1]

    @pytest.mark.asyncio
    async def test_unverified_entry(self, monkeypatch):
        client = _FakeAsyncClient(
            _FakeHttpxResponse(json_data={"results": {"in_database": True, "verified": False}})
        )
        _patch_client(monkeypatch, client)
        result = await PhishTankSource().lookup("http://maybe.example/")
        assert result.score == pytest.approx(0.7)
        assert result.is_safe is None

    @pytest.mark.asyncio
    async def test_timeout(self, monkeypatch):
        _patch_client(monkeypatch, _FakeAsyncClient(error=httpx.ReadTimeout("slow")))
        result = await PhishTankSource().lookup("http://slow.example/")
        assert result.error == "timeout"
        assert result.retryable


class TestDomainReputation:
    def test_categories(self):
        assert reputation_category(0.1) == "TRUSTED"
        assert reputation_category(0.3) == "GOOD"
        assert reputation_category(0.5) == "NEUTRAL"
        assert reputation_category(0.7) == "SUSPICIOUS"
        assert reputation_category(0.9) == "HIGH_RISK"

    def test_neutral_start(self):
        report = analyze_domain("example.net")
        assert report.score == pytest.approx(0.5)
        assert report.reasons == []

    def test_legitimate_domain(self):
        report = analyze_domain("www.wellsfargo.com")
        assert report.legitimate
        assert report.score == pytest.approx(0.1)

    def test_signals_accumulate(self):
        report = analyze_domain("login--12345.xyz")
        assert "Suspicious TLD" in report.reasons
        assert "Excessive numbers in domain" in report.reasons
        assert "Multiple special characters" in report.reasons
        assert report.score == pytest.approx(0.8)

    def test_brand_impersonation_floor(self):
        report = analyze_domain("paypal-secure.net")
        assert report.impersonated_brand == "PAYPAL"
        assert report.score == pytest.approx(0.8)

    def test_fuzzy_lookalike(self):
        assert find_impersonated_brand("paypall.net", "paypall") == "PAYPAL"
        assert find_impersonated_brand("example.net", "example") is None

    def test_real_brand_is_not_impersonation(self):
        assert find_impersonated_brand("paypal.com", "paypal") is None

    @pytest.mark.asyncio
    async def test_source_result(self):
        result = await DomainReputationSource().lookup("http://paypal-secure.tk/login")
        assert result.available
        assert result.confidence == pytest.approx(0.8)
        assert result.is_safe is False
        assert result.details["reputation"] == "HIGH_RISK"
        assert result.details["impersonation"] == "PAYPAL"

    @pytest.mark.asyncio
    async def test_no_credentials_or_quota_needed(self):
        source = DomainReputationSource()
        assert source.is_configured()
        assert source.quota is None


class _StaticSource(BaseTrustSource):
    requires_api_key = False

    def __init__(self, name, delay=0.0):
        super().__init__()
        self.name = name
        self.delay = delay

    async def _query(self, url):
        await asyncio.sleep(self.delay)
        return self.result(0.2, 0.9, True)


class TestTrustSourcePool:
    def test_build_from_config(self, tmp_path):
        config = Config(config_dir=tmp_path, virustotal_api_key="vt", virustotal_daily_quota=7)
        registry = QuotaRegistry()
        sources = build_trust_sources(config, registry)

        assert [s.name for s in sources] == list(TRUST_SOURCE_NAMES)
        virustotal = next(s for s in sources if s.name == "virustotal")
        assert virustotal.is_configured()
        assert virustotal.quota.limit == 7
        assert virustotal.timeout_seconds == pytest.approx(10.0)
        assert not sources[0].is_configured()

    @pytest.mark.asyncio
    async def test_lookup_all_settles_every_source(self):
        pool = TrustSourcePool([_StaticSource("fast"), _StaticSource("slow", delay=5)])
        results = {r.name: r for r in await pool.lookup_all("https://example.com/", timeout=0.05)}

        assert results["fast"].usable
        assert results["slow"].available is False
        assert results["slow"].error == "timeout"

    @pytest.mark.asyncio
    async def test_enabled_filter(self):
        pool = TrustSourcePool([_StaticSource("a"), _StaticSource("b")])
        results = await pool.lookup_all("https://example.com/", enabled={"b"})
        assert [r.name for r in results] == ["b"]
        assert await pool.lookup_all("https://example.com/", enabled=set()) == []

    def test_source_result_type(self):
        assert isinstance(_StaticSource("x").unavailable("x"), SourceResult)
