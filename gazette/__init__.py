"""Gazette: AI-written changelogs from recently merged GitHub pull requests."""

__version__ = "0.1.0"
