"""Turns an analysis result into what the host environment shows or does."""

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from .analyzer.models import EnsembleResult
from .constants import BADGE_COLORS, AlertAction, BadgeLevel
from .utils.domains import extract_hostname

if TYPE_CHECKING:
    from .config import Config

NOTIFICATION_TITLE = "Legitly Warning"
DEFAULT_WARNING_PAGE = "legitly://warning"

# Lower bound of each badge band, highest first
BADGE_BANDS = (
    (80, BadgeLevel.HIGH),
    (50, BadgeLevel.MED),
    (20, BadgeLevel.LOW),
)


@dataclass(frozen=True)
class Badge:
    """Toolbar badge text and background color."""

    level: BadgeLevel
    color: str

    @property
    def text(self) -> str:
        return self.level.value


def badge_for(risk_percentage: int) -> Badge:
    """Badge for a 0..100 risk percentage."""
    for floor, level in BADGE_BANDS:
        if risk_percentage >= floor:
            return Badge(level, BADGE_COLORS[level])
    return Badge(BadgeLevel.SAFE, BADGE_COLORS[BadgeLevel.SAFE])


def notification_message(url: str, result: EnsembleResult) -> str:
    host = extract_hostname(url) or url
    return f"Suspicious website detected: {host}\nRisk: {result.risk_percentage}%"


def warning_redirect_url(base: str, url: str, risk: int) -> str:
    """Warning page address carrying the blocked URL and its risk."""
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{urlencode({'url': url, 'risk': risk})}"


def alert_action(result: EnsembleResult, config: "Config") -> AlertAction:
    """Blocking wins over notifying; both need the risk threshold to be met."""
    if result.risk_percentage < config.risk_threshold:
        return AlertAction.NONE
    if config.auto_block:
        return AlertAction.BLOCK
    if config.show_notifications:
        return AlertAction.NOTIFY
    return AlertAction.NONE
