"""Integration modules for external APIs."""

from .github_client import GitHubClient
from .jira_client import JiraClient
from .llm_client import LLMClient, create_llm_client

__all__ = ["GitHubClient", "JiraClient", "LLMClient", "create_llm_client"]
