"""
Pytest fixtures shared by the Gazette tests.

HTTP is stubbed with ``httpx.MockTransport``; async code is driven with
``asyncio.run`` inside plain test functions.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import httpx
import pytest

from gazette.models.config import Settings

NOW = datetime(2024, 5, 20, 12, 0, tzinfo=timezone.utc)


def iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings() -> Settings:
    """Settings with test credentials, ignoring any real ``.env``."""
    return Settings(
        _env_file=None,
        github_token="ghp_test",
        gemini_api_key="gemini-test",
        openai_api_key="openai-test",
        anthropic_api_key="anthropic-test",
        openrouter_api_key="openrouter-test",
        jira_base_url=None,
        jira_email=None,
        jira_api_token=None,
    )


@pytest.fixture
def pr_payload() -> Callable[..., Dict[str, Any]]:
    """Factory for one item of ``GET /repos/{owner}/{repo}/pulls``."""

    def make(
        number: int,
        title: str = "Change",
        merged_at: Optional[datetime] = NOW - timedelta(hours=1),
        updated_at: Optional[datetime] = None,
        body: Optional[str] = None,
        owner: str = "acme",
        name: str = "backend",
        login: str = "octocat",
    ) -> Dict[str, Any]:
        updated = updated_at or merged_at or NOW - timedelta(hours=1)
        return {
            "number": number,
            "title": title,
            "body": body,
            "state": "closed",
            "merged_at": iso(merged_at) if merged_at else None,
            "updated_at": iso(updated),
            "html_url": f"https://github.com/{owner}/{name}/pull/{number}",
            "user": {"login": login},
        }

    return make
