"""Legitly: ensemble phishing-risk scoring for URLs."""

__version__ = "1.0.0"
