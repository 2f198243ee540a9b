"""Static lookup tables for URL heuristics.

Loaded once at import time and never mutated. ``HeuristicTables`` bundles
them into a single immutable value so configuration can hand the extractor
an extended copy (extra trusted domains, different TLD set) without touching
the module-level defaults.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterable, Pattern

# Hosts treated as a priori legitimate by the heuristic scorer
# (exact match or any subdomain).
TRUSTED_DOMAINS: tuple[str, ...] = (
    # Google services
    "google.com", "www.google.com", "gmail.com", "youtube.com", "drive.google.com",
    "maps.google.com", "docs.google.com", "photos.google.com", "play.google.com",
    "accounts.google.com", "myaccount.google.com", "support.google.com",
    # E-commerce
    "amazon.com", "www.amazon.com", "smile.amazon.com", "aws.amazon.com",
    "ebay.com", "www.ebay.com", "etsy.com", "www.etsy.com",
    # Financial services
    "paypal.com", "www.paypal.com", "stripe.com", "square.com",
    # Tech companies
    "microsoft.com", "www.microsoft.com", "outlook.com", "office.com", "live.com",
    "apple.com", "www.apple.com", "icloud.com", "developer.apple.com",
    "facebook.com", "www.facebook.com", "instagram.com", "whatsapp.com", "meta.com",
    # Developer sites
    "github.com", "www.github.com", "gitlab.com", "stackoverflow.com",
    "stackexchange.com", "npmjs.com", "docker.com", "aws.com",
    # News and social
    "reddit.com", "www.reddit.com", "twitter.com", "x.com", "linkedin.com",
    "cnn.com", "bbc.com", "nytimes.com", "washingtonpost.com",
    # Reference
    "wikipedia.org", "mozilla.org", "w3.org", "ietf.org",
    # CDN and infrastructure
    "cloudflare.com", "jsdelivr.net", "unpkg.com", "cdnjs.cloudflare.com",
)

# Registrable domains the trust sources consider legitimate regardless of
# third-party verdicts.
LEGITIMATE_DOMAINS: frozenset[str] = frozenset({
    # Government
    "fbi.gov", "irs.gov", "usa.gov", "whitehouse.gov", "senate.gov", "house.gov",
    "ed.gov", "nasa.gov", "cia.gov", "justice.gov", "defense.gov", "treasury.gov",
    # Major tech companies
    "google.com", "microsoft.com", "apple.com", "amazon.com", "facebook.com",
    "twitter.com", "linkedin.com", "github.com", "youtube.com", "instagram.com",
    # Banks and payments
    "chase.com", "bankofamerica.com", "wellsfargo.com", "citibank.com", "usbank.com",
    "paypal.com", "visa.com", "mastercard.com", "americanexpress.com",
    # Education
    "harvard.edu", "mit.edu", "stanford.edu", "berkeley.edu", "yale.edu",
    # News
    "cnn.com", "nytimes.com", "wsj.com", "reuters.com", "bloomberg.com",
    "apnews.com", "bbc.com", "bbc.co.uk",
    # E-commerce
    "walmart.com", "target.com", "bestbuy.com", "ebay.com",
    # Other services
    "dropbox.com", "slack.com", "zoom.us", "adobe.com", "salesforce.com",
    "office.com", "outlook.com", "live.com",
})

# Public-sector suffixes that are never sold to the public.
LEGITIMATE_SUFFIXES: tuple[str, ...] = (
    ".gov", ".mil", ".edu",
    ".gov.uk", ".nhs.uk", ".police.uk",
    ".gc.ca", ".gouv.fr", ".gov.au",
)

# Brand -> spellings seen in impersonation hosts.
BRAND_VARIANTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("paypal", ("paypal", "pay-pal", "paipal", "payp4l")),
    ("amazon", ("amazon", "amaz0n", "amazom", "amaozn")),
    ("apple", ("apple", "app1e", "appl3", "aple")),
    ("microsoft", ("microsoft", "microsft", "micr0soft", "mircosoft")),
    ("google", ("google", "g00gle", "googl3", "goog1e")),
    ("facebook", ("facebook", "faceb00k", "facebok", "fb")),
    ("bank", ("bank", "banking", "b4nk", "bankimg")),
)

PHISHING_KEYWORDS: tuple[str, ...] = (
    "verify", "confirm", "update", "suspend", "urgent", "expire", "limited", "act-now",
    "click-here", "security", "alert", "warning", "blocked", "restricted", "locked",
    "validation", "authentication", "login-verification", "account-verification",
    "billing", "payment", "invoice", "refund", "prize", "winner", "congratulations",
)

SUSPICIOUS_TLDS: frozenset[str] = frozenset({
    "tk", "ml", "ga", "cf", "top", "click", "download", "stream", "zip",
})

SHORTENERS: frozenset[str] = frozenset({
    "bit.ly", "tinyurl.com", "t.co", "goo.gl", "ow.ly", "short.link", "is.gd", "v.gd", "x.co",
})

SUSPICIOUS_PATH_PATTERNS: tuple[Pattern[str], ...] = (
    re.compile(r"login|signin|auth|verify|confirm"),
    re.compile(r"update|upgrade|renew"),
    re.compile(r"security|secure|protection"),
    re.compile(r"billing|payment|invoice"),
    re.compile(r"account|profile|settings"),
)

SUSPICIOUS_SUBDOMAIN_LABELS: tuple[str, ...] = (
    "secure", "login", "account", "verify", "auth", "www-", "mail-", "web-",
)

# Country second-level registrations that look like double extensions.
COUNTRY_SECOND_LEVEL: frozenset[str] = frozenset({"com.br", "co.uk", "com.au"})

# Cyrillic, Greek and accented Latin blocks.
HOMOGRAPH_RE: Pattern[str] = re.compile(r"[\u00c0-\u024f\u0370-\u03ff\u0400-\u04ff]")


@dataclass(frozen=True)
class HeuristicTables:
    """Immutable bundle of every table the extractor consults."""

    trusted_domains: tuple[str, ...] = TRUSTED_DOMAINS
    brand_variants: tuple[tuple[str, tuple[str, ...]], ...] = BRAND_VARIANTS
    phishing_keywords: tuple[str, ...] = PHISHING_KEYWORDS
    suspicious_tlds: frozenset[str] = SUSPICIOUS_TLDS
    shorteners: frozenset[str] = SHORTENERS
    path_patterns: tuple[Pattern[str], ...] = SUSPICIOUS_PATH_PATTERNS
    subdomain_labels: tuple[str, ...] = SUSPICIOUS_SUBDOMAIN_LABELS
    legitimate_domains: frozenset[str] = LEGITIMATE_DOMAINS
    legitimate_suffixes: tuple[str, ...] = LEGITIMATE_SUFFIXES

    def with_overrides(
        self,
        extra_trusted: Iterable[str] | None = None,
        suspicious_tlds: Iterable[str] | None = None,
    ) -> "HeuristicTables":
        """Return a copy extended with configured domains/TLDs."""
        trusted = self.trusted_domains
        if extra_trusted:
            additions = tuple(
                d.lower().strip(".") for d in sorted(set(extra_trusted)) if d and d.lower() not in trusted
            )
            trusted = trusted + additions
        tlds = self.suspicious_tlds
        if suspicious_tlds:
            tlds = frozenset(t.lower().lstrip(".") for t in suspicious_tlds if t)
        return replace(self, trusted_domains=trusted, suspicious_tlds=tlds)


DEFAULT_TABLES = HeuristicTables()
