"""Numeric feature vectors for the model predictors.

Every feature is derived from the URL alone. Features that would need page
content, WHOIS or behavioural telemetry are zero-filled so that the same URL
always produces the same vector.
"""

from __future__ import annotations

import math
import re
from collections import Counter
from typing import Sequence, Union
from urllib.parse import urlsplit

from ..analyzer.features import FeatureSet
from ..utils.domains import is_ip_literal

VECTOR_LENGTH = 10

FeatureValue = Union[float, list[float]]

SUSPICIOUS_WORDS: tuple[str, ...] = (
    "paypal", "amazon", "apple", "microsoft", "google", "facebook",
    "bank", "secure", "verify", "confirm", "update", "suspend",
    "login", "signin", "account", "billing", "payment",
)

TRUSTED_TLDS = frozenset({"com", "org", "net", "edu", "gov"})
ABUSED_TLDS = frozenset({"tk", "ml", "ga", "cf"})

_DIGIT_RE = re.compile(r"[0-9]")
_UPPER_RE = re.compile(r"[A-Z]")
_LOWER_RE = re.compile(r"[a-z]")
_SPECIAL_RE = re.compile(r"[!@#$%^&*()]")
_QUERY_CHARS_RE = re.compile(r"[&=?]")


def shannon_entropy(text: str) -> float:
    """Shannon entropy in bits per character."""
    if not text:
        return 0.0
    length = len(text)
    return -sum((n / length) * math.log2(n / length) for n in Counter(text).values())


def count_suspicious_words(url: str) -> int:
    lowered = url.lower()
    return sum(1 for word in SUSPICIOUS_WORDS if word in lowered)


def tld_type(host: str) -> float:
    """+1 for established TLDs, -1 for abused free TLDs, 0 otherwise."""
    tld = host.rsplit(".", 1)[-1]
    if tld in TRUSTED_TLDS:
        return 1.0
    if tld in ABUSED_TLDS:
        return -1.0
    return 0.0


def _ratio(pattern: re.Pattern[str], text: str) -> float:
    return len(pattern.findall(text)) / len(text) if text else 0.0


def feature_table(features: FeatureSet) -> dict[str, FeatureValue]:
    """Every named scalar and vector feature for one URL."""
    url = features.url
    host = features.host
    parts = urlsplit(url)
    labels = len(host.split("."))
    is_ip = 1.0 if is_ip_literal(host) else 0.0
    shortener = 1.0 if features.is_shortener else 0.0
    entropy = shannon_entropy(url)
    words = float(count_suspicious_words(url))
    subdomains = float(features.num_subdomains)

    return {
        "url_length": float(len(url)),
        "num_dots": float(url.count(".")),
        "num_subdomains": subdomains,
        "has_https": 1.0 if features.has_https else 0.0,
        "domain_age": 0.0,
        "url_entropy": entropy,
        "tld_type": tld_type(host),
        "subdomain_count": subdomains,
        "path_depth": float(features.path.count("/")),
        "suspicious_words": words,
        "ip_address": is_ip,
        "shortening_service": shortener,
        "prefix_suffix": 1.0 if len(host.split("-")) > 2 else 0.0,
        "having_sub_domain": 1.0 if subdomains > 0 else 0.0,
        "url_features": [
            len(url) / 100,
            _ratio(_DIGIT_RE, url),
            _ratio(_UPPER_RE, url),
            float(len(_SPECIAL_RE.findall(url))),
        ],
        "domain_features": [float(len(host)), float(labels), shannon_entropy(host), is_ip],
        "page_features": [0.0, 0.0, 0.0],
        "whois_features": [0.0, 0.0],
        "lexical_features": [float(len(url)), entropy, words, float(len(_DIGIT_RE.findall(url)))],
        "host_features": [float(len(host)), float(labels), is_ip, shortener],
        "content_features": [0.0, 0.0, 0.0],
        "statistical_features": [float(len(url)), entropy, _ratio(_LOWER_RE, url), _ratio(_UPPER_RE, url)],
        "structural_features": [
            float(len((parts.path or "/").split("/"))),
            float(len(features.query)),
            float(len(f"#{parts.fragment}") if parts.fragment else 0),
            float(len(_QUERY_CHARS_RE.findall(url))),
        ],
        "behavioral_features": [0.0, 0.0],
        "url_analysis": [len(url) / 100, entropy / 10, words / 5],
        "domain_analysis": [len(host) / 50, labels / 5, is_ip],
        "content_analysis": [0.0, 0.0, 0.0],
        "network_analysis": [is_ip, shortener],
    }


def build_vector(
    table: dict[str, FeatureValue],
    names: Sequence[str],
    length: int = VECTOR_LENGTH,
) -> list[float]:
    """Flatten the requested features, then zero-pad or truncate to ``length``."""
    values: list[float] = []
    for name in names:
        value = table.get(name, 0.0)
        if isinstance(value, list):
            values.extend(value)
        else:
            values.append(float(value))
    values.extend([0.0] * (length - len(values)))
    return values[:length]
