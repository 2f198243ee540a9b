"""Centralized constants for Legitly.

Enums shared by the scorer, the ensemble engine and the result consumers.
"""

from enum import Enum


class Recommendation(str, Enum):
    """Categorical verdict attached to every result."""

    SAFE = "SAFE"
    LOW_RISK = "LOW_RISK"
    SUSPICIOUS = "SUSPICIOUS"
    PHISHING = "PHISHING"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_string(cls, value: str | None) -> "Recommendation":
        """Convert a string to the enum, defaulting to UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


class SourceLabel(str, Enum):
    """Per-source classification label."""

    PHISHING = "phishing"
    LEGITIMATE = "legitimate"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str | None) -> "SourceLabel":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


class BadgeLevel(str, Enum):
    """Coarse risk band shown on the toolbar badge."""

    HIGH = "HIGH"
    MED = "MED"
    LOW = "LOW"
    SAFE = "SAFE"


class AlertAction(str, Enum):
    """What the host environment should do with a result."""

    NONE = "none"
    NOTIFY = "notify"
    BLOCK = "block"


# Badge colors keyed by band
BADGE_COLORS = {
    BadgeLevel.HIGH: "#FF0000",
    BadgeLevel.MED: "#FF8C00",
    BadgeLevel.LOW: "#FFD700",
    BadgeLevel.SAFE: "#00AA00",
}

# Neutral values used whenever no signal is available
NEUTRAL_SCORE = 0.5
NEUTRAL_CONFIDENCE = 0.1
