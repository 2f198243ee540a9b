"""Pipeline modules for Legitly."""

from .analysis import PhishingAnalyzer, fallback_result

__all__ = ["PhishingAnalyzer", "fallback_result"]
