"""Data models for Gazette."""

from .config import Settings, load_settings
from .subscription import AIProvider, GazetteConfig, PeriodType, Repository, TimePeriod
from .changelog import GenerationResult, JiraTicket, PullRequest, PullRequestContext

__all__ = [
    "Settings",
    "load_settings",
    "AIProvider",
    "GazetteConfig",
    "PeriodType",
    "Repository",
    "TimePeriod",
    "GenerationResult",
    "JiraTicket",
    "PullRequest",
    "PullRequestContext",
]
