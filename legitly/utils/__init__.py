"""Shared helpers for Legitly."""
