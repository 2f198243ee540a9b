"""Domain normalization utilities."""

from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import urlparse

import idna
import tldextract

# Offline extractor: bundled public-suffix snapshot only, never fetched at runtime.
_extract = tldextract.TLDExtract(suffix_list_urls=())

IPV4_RE = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)


def extract_hostname(value: str) -> str:
    """Return the lowercase hostname of a URL or bare host (no port)."""
    raw = (value or "").strip()
    if not raw:
        return ""
    candidate = raw if "://" in raw else f"https://{raw}"
    try:
        parsed = urlparse(candidate)
        host = parsed.hostname or ""
    except ValueError:
        return ""
    return host.strip().lower().strip(".")


def decode_idna(host: str) -> str:
    """Best-effort punycode decode (``xn--`` labels) to Unicode."""
    if "xn--" not in host:
        return host
    try:
        decoded = idna.decode(host)
    except (idna.IDNAError, UnicodeError):
        return host
    return decoded or host


def is_ip_literal(host: str) -> bool:
    """Exact dotted-quad IPv4 match."""
    return bool(IPV4_RE.match(host or ""))


def top_level_label(host: str) -> str:
    """Final dot-separated label of a host ('' for empty hosts)."""
    if not host:
        return ""
    return host.rsplit(".", 1)[-1]


def registered_domain(value: str) -> str:
    """Return the registrable domain for a host or URL (best-effort)."""
    host = extract_hostname(value)
    if not host:
        return ""
    if is_ip_literal(host):
        return host
    extracted = _extract(host)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower()
    return host


def domain_label(value: str) -> str:
    """Registrable label without suffix (``paypal`` for ``www.paypal.co.uk``)."""
    host = extract_hostname(value)
    if not host or is_ip_literal(host):
        return ""
    return _extract(host).domain.lower()


def subdomain_labels(value: str) -> list[str]:
    """Labels left of the registrable domain (``[]`` for ``bbc.co.uk``)."""
    host = extract_hostname(value)
    if not host or is_ip_literal(host):
        return []
    subdomain = _extract(host).subdomain.lower()
    return [label for label in subdomain.split(".") if label]


def matches_domain(host: str, domain: str) -> bool:
    """True if host is exactly ``domain`` or one of its subdomains."""
    host = (host or "").lower().strip(".")
    domain = (domain or "").lower().strip(".")
    if not host or not domain:
        return False
    return host == domain or host.endswith("." + domain)


def matches_any(host: str, domains: Iterable[str]) -> bool:
    """True if host matches any entry of ``domains`` (exact or subdomain)."""
    return any(matches_domain(host, d) for d in domains)
