import pytest

from legitly.analyzer.ensemble import NO_TRUST_SOURCES_NOTE
from legitly.analyzer.heuristics import score_url
from legitly.cache import ResultCache
from legitly.config import Config
from legitly.constants import Recommendation
from legitly.errors import ParseError
from legitly.pipeline import PhishingAnalyzer, fallback_result
from legitly.pipeline import analysis as analysis_module
from legitly.predictors.base import BasePredictor
from legitly.predictors.pool import PredictorPool
from legitly.trust.base import BaseTrustSource
from legitly.trust.pool import TrustSourcePool


class DummyPredictor(BasePredictor):
    def __init__(self, name: str, score: float, confidence: float = 0.8):
        self.name = name
        self.display_name = name
        self.score = score
        self.confidence = confidence
        self.calls = 0

    async def _do_predict(self, features):
        self.calls += 1
        return self.result(self.score, self.confidence)


class DummySource(BaseTrustSource):
    requires_api_key = False

    def __init__(self, name: str, score: float, is_safe: bool):
        super().__init__()
        self.name = name
        self.display_name = name
        self.score = score
        self.is_safe = is_safe
        self.calls = 0

    async def _query(self, url):
        self.calls += 1
        return self.result(self.score, 0.9, self.is_safe)


def _build(tmp_path, score=0.9, is_safe=False, **config_overrides):
    config = Config(config_dir=tmp_path, trust_sources=None, **config_overrides)
    predictors = [DummyPredictor("heuristic", score), DummyPredictor("kaggle", score)]
    sources = [DummySource("google_safe_browsing", score, is_safe), DummySource("virustotal", score, is_safe)]
    analyzer = PhishingAnalyzer(
        config,
        cache=ResultCache(),
        predictor_pool=PredictorPool(predictors),
        trust_pool=TrustSourcePool(sources),
    )
    return analyzer, predictors, sources


def _calls(members):
    return sum(m.calls for m in members)


@pytest.mark.asyncio
async def test_full_analysis_combines_both_pools(tmp_path):
    analyzer, predictors, sources = _build(tmp_path)

    result = await analyzer.analyze("http://paypal-verify.tk/login")

    assert _calls(predictors) == 2
    assert _calls(sources) == 2
    # both pools at 0.9 with confidences 0.8 and 0.9, then the agreement boost
    combined = 0.9 * 0.6 * 0.8 / 1.7 + 0.9 * 0.4 * 0.9 / 1.7
    assert result.raw_aggregates["final_score"] == pytest.approx(combined * 1.2)
    assert result.risk_percentage == 53
    assert result.recommendation == Recommendation.SUSPICIOUS
    assert "heuristic" in result.raw_aggregates
    assert result.factors[0].startswith("google_safe_browsing: flagged as unsafe")
    assert not result.fallback


@pytest.mark.asyncio
async def test_trusted_host_skips_pools(tmp_path):
    analyzer, predictors, sources = _build(tmp_path)

    result = await analyzer.analyze("https://github.com/login")

    assert _calls(predictors) == 0
    assert _calls(sources) == 0
    assert result.recommendation == Recommendation.SAFE
    assert result.risk_percentage == 2
    assert result.raw_aggregates["final_score"] == pytest.approx(0.02)


@pytest.mark.asyncio
async def test_allowlisted_host_is_trusted(tmp_path):
    (tmp_path / "allowlist.txt").write_text("intranet.corp.example\n")
    analyzer, predictors, _ = _build(tmp_path)

    result = await analyzer.analyze("http://intranet.corp.example/login")

    assert _calls(predictors) == 0
    assert result.recommendation == Recommendation.SAFE


@pytest.mark.asyncio
@pytest.mark.parametrize("url", ["", "   ", "ftp://example.com/", "not a url"])
async def test_invalid_urls_raise(tmp_path, url):
    analyzer, predictors, _ = _build(tmp_path)

    with pytest.raises(ParseError):
        await analyzer.analyze(url)
    assert _calls(predictors) == 0


@pytest.mark.asyncio
async def test_second_analysis_is_served_from_cache(tmp_path):
    analyzer, predictors, sources = _build(tmp_path)
    url = "http://paypal-verify.tk/login"

    first = await analyzer.analyze(url)
    second = await analyzer.analyze(url)

    assert second == first
    assert _calls(predictors) == 2
    assert _calls(sources) == 2
    assert len(analyzer.cache) == 1


@pytest.mark.asyncio
async def test_use_cache_false_bypasses_cache(tmp_path):
    analyzer, predictors, _ = _build(tmp_path)
    url = "http://paypal-verify.tk/login"

    await analyzer.analyze(url, use_cache=False)
    await analyzer.analyze(url, use_cache=False)

    assert _calls(predictors) == 4
    assert len(analyzer.cache) == 0


@pytest.mark.asyncio
async def test_unexpected_failure_returns_uncached_fallback(tmp_path, monkeypatch):
    analyzer, _, _ = _build(tmp_path)

    def broken(*args, **kwargs):
        raise RuntimeError("ensemble exploded")

    monkeypatch.setattr(analysis_module, "decide", broken)
    result = await analyzer.analyze("http://paypal-verify.tk/login")

    assert result.fallback
    assert result.recommendation == Recommendation.UNKNOWN
    assert result.risk_percentage == 50
    assert result.confidence == pytest.approx(0.1)
    assert result.factors == ["Error analyzing URL"]
    assert len(analyzer.cache) == 0


@pytest.mark.asyncio
async def test_enabled_filters_limit_pool_members(tmp_path):
    analyzer, predictors, sources = _build(tmp_path, models=["heuristic"])
    analyzer.config.trust_sources = ["virustotal"]

    result = await analyzer.analyze("http://paypal-verify.tk/login")

    assert [p.calls for p in predictors] == [1, 0]
    assert [s.calls for s in sources] == [0, 1]
    assert result.raw_aggregates["models"]["sources_used"] == 1
    assert result.raw_aggregates["trust"]["sources_used"] == 1


@pytest.mark.asyncio
async def test_disabled_extension_falls_back_to_heuristics(tmp_path):
    analyzer, predictors, sources = _build(tmp_path, enabled=False)
    url = "http://paypal-verify.tk/login"

    result = await analyzer.analyze(url)

    heuristic = score_url(url)
    assert _calls(predictors) == 0
    assert _calls(sources) == 0
    assert result.risk_percentage == heuristic.risk_percentage
    assert result.recommendation == heuristic.recommendation
    assert result.factors[-1] == NO_TRUST_SOURCES_NOTE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url,recommendation",
    [
        ("http://192.168.1.1/login", Recommendation.PHISHING),
        ("http://example.org/", Recommendation.LOW_RISK),
        ("https://example.org/", Recommendation.SAFE),
    ],
)
async def test_heuristics_only_mode_keeps_four_bands(tmp_path, url, recommendation):
    analyzer, predictors, sources = _build(tmp_path, models_enabled=False, trust_sources_enabled=False)

    result = await analyzer.analyze(url)

    assert _calls(predictors) == 0
    assert _calls(sources) == 0
    assert result.recommendation == recommendation
    assert result.risk_percentage == score_url(url).risk_percentage
    assert result.raw_aggregates["final_score"] == pytest.approx(result.risk_percentage / 100)
    assert not result.fallback


@pytest.mark.asyncio
async def test_ip_login_page_is_phishing_without_pools(tmp_path):
    analyzer, _, _ = _build(tmp_path, models_enabled=False, trust_sources_enabled=False)

    result = await analyzer.analyze("http://192.168.1.1/login")

    assert result.risk_percentage >= 90
    assert "IP address used instead of domain name" in result.factors


@pytest.mark.asyncio
async def test_reconfigure_clears_cache(tmp_path):
    analyzer, _, sources = _build(tmp_path)
    await analyzer.analyze("http://paypal-verify.tk/login")
    assert len(analyzer.cache) == 1

    new_config = Config(config_dir=tmp_path, risk_threshold=95, trust_sources=None)
    analyzer.reconfigure(new_config, trust_pool=TrustSourcePool(sources))

    assert len(analyzer.cache) == 0
    assert analyzer.config.risk_threshold == 95


@pytest.mark.asyncio
async def test_safe_signals_stay_safe(tmp_path):
    analyzer, _, _ = _build(tmp_path, score=0.05, is_safe=True)

    result = await analyzer.analyze("https://shop.example.org/products")

    assert result.recommendation == Recommendation.SAFE
    assert result.risk_percentage < 30


def test_fallback_result_shape():
    result = fallback_result("https://example.org/")
    assert result.fallback
    assert result.to_dict()["recommendation"] == "UNKNOWN"
