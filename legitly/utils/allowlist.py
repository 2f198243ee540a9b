"""Allowlist file helpers."""

from __future__ import annotations

from pathlib import Path

from .domains import extract_hostname


def read_allowlist(path: Path) -> set[str]:
    """Read allowlist entries from disk (normalized hosts)."""
    if not path.exists():
        return set()

    entries: set[str] = set()
    for line in path.read_text().splitlines():
        value = line.strip()
        if not value or value.startswith("#"):
            continue
        host = extract_hostname(value)
        if host:
            entries.add(host)
    return entries
