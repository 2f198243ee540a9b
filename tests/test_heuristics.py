"""Tests for the heuristic scorer."""

from dataclasses import replace

import pytest

from legitly.analyzer import heuristics
from legitly.analyzer.features import extract_features
from legitly.analyzer.heuristics import (
    ERROR_FACTOR,
    NO_FACTORS_MESSAGE,
    HeuristicResult,
    accumulate,
    score_features,
    score_url,
)
from legitly.analyzer.tables import DEFAULT_TABLES
from legitly.constants import Recommendation


class TestTrustedShortCircuit:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/torvalds/linux",
            "https://accounts.google.com/evil-verify-login",
            "http://mail.google.com/update/verify/confirm",
        ],
    )
    def test_trusted_hosts_are_safe(self, url):
        result = score_url(url)
        assert result.trusted
        assert result.score <= 0.02
        assert result.risk_percentage == 2
        assert result.confidence == pytest.approx(0.99)
        assert result.recommendation == Recommendation.SAFE
        assert len(result.factors) == 1

    def test_configured_allowlist_extends_trust(self):
        tables = DEFAULT_TABLES.with_overrides(extra_trusted={"intranet.example"})
        result = score_url("http://login.intranet.example/verify", tables)
        assert result.trusted
        assert result.factors == ["Trusted domain: login.intranet.example"]


class TestLadder:
    def test_ip_literal_is_phishing(self):
        result = score_url("http://192.168.1.1/login")
        assert result.score >= 0.90
        assert result.confidence >= 0.95
        assert result.recommendation == Recommendation.PHISHING
        assert "IP address used instead of domain name" in result.factors

    def test_paypal_example(self):
        result = score_url("http://paypal-verify-account-security.tk/login?confirm=1")
        assert result.recommendation == Recommendation.PHISHING
        assert result.score >= 0.85
        assert any(f.startswith("Possible brand impersonation: PAYPAL") for f in result.factors)
        assert "Suspicious top-level domain: .tk" in result.factors
        assert any(f.startswith("Multiple phishing keywords") for f in result.factors)

    def test_score_never_exceeds_heuristic_ceiling(self):
        result = score_url("http://paypal-amazon-verify-confirm-security.tk/login/update/secure")
        assert result.risk_percentage == 95
        assert result.score == pytest.approx(0.95)

    def test_clean_https_url(self):
        result = score_url("https://example.org/")
        assert result.risk_percentage == 0
        assert result.recommendation == Recommendation.SAFE
        assert result.factors == [NO_FACTORS_MESSAGE]

    def test_missing_https_alone_is_low_risk(self):
        result = score_url("http://example.org/")
        assert result.risk_percentage == 25
        assert result.recommendation == Recommendation.LOW_RISK
        assert result.confidence == pytest.approx(0.70)
        assert result.factors == ["No HTTPS encryption"]

    def test_keyword_tiers_are_exclusive(self):
        _, _, one = accumulate(extract_features("https://example.org/?a=verify"))
        _, _, many = accumulate(extract_features("https://example.org/?a=verify-confirm-update"))
        assert one == ["Phishing keywords: verify"]
        assert many[0].startswith("Multiple phishing keywords")
        assert not any(f.startswith("Phishing keywords") for f in many)

    def test_suspicious_band(self):
        result = score_url("http://example.org/?q=verify")
        assert result.risk_percentage == 45
        assert result.recommendation == Recommendation.SUSPICIOUS
        assert result.confidence == pytest.approx(0.75)


class TestPostProcessing:
    def test_many_weak_signals_capped(self, monkeypatch):
        monkeypatch.setattr(heuristics, "accumulate", lambda f: (0.48, 0.7, ["a", "b", "c"]))
        result = score_features(extract_features("https://example.org/"))
        assert result.risk_percentage == 45

    def test_cap_needs_three_factors(self, monkeypatch):
        monkeypatch.setattr(heuristics, "accumulate", lambda f: (0.48, 0.7, ["a", "b"]))
        result = score_features(extract_features("https://example.org/"))
        assert result.risk_percentage == 48

    def test_internal_fault_returns_fallback(self, monkeypatch):
        def explode(features):
            raise RuntimeError("boom")

        monkeypatch.setattr(heuristics, "accumulate", explode)
        result = score_features(extract_features("https://example.org/"))
        assert result.error
        assert result.risk_percentage == 50
        assert result.confidence == pytest.approx(0.1)
        assert result.recommendation == Recommendation.UNKNOWN
        assert result.factors == [ERROR_FACTOR]

    def test_fallback_shape(self):
        fallback = HeuristicResult.fallback()
        assert fallback.score == 0.5
        assert fallback.factors == ["Error analyzing URL"]


class TestMonotonicity:
    @pytest.mark.parametrize(
        "change",
        [
            {"has_https": False},
            {"is_shortener": True},
            {"homograph": True},
            {"url_length": 201},
            {"keywords": ("verify",)},
            {"is_ip_address": True},
            {"suspicious_tld": True},
        ],
    )
    def test_extra_factor_never_lowers_raw_score(self, change):
        base = extract_features("https://example.org/")
        before, _, before_factors = accumulate(base)
        after, _, after_factors = accumulate(replace(base, **change))
        assert after >= before
        assert len(after_factors) == len(before_factors) + 1


def test_scoring_is_deterministic():
    url = "http://secure-login.paypal-update.tk/account/verify"
    first = score_url(url)
    second = score_url(url)
    assert first == second
