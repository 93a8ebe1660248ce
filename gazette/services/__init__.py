"""Changelog generation services."""

from .changelog_service import ChangelogService
from .jira_enricher import JiraEnricher, extract_ticket_keys

__all__ = ["ChangelogService", "JiraEnricher", "extract_ticket_keys"]
