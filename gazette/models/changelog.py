"""Transient models used while generating a changelog."""

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from gazette.models.subscription import Repository


class PullRequest(BaseModel):
    """A merged pull request as returned by the GitHub API."""

    number: int = Field(..., description="PR number")
    title: str = Field(..., description="PR title")
    body: Optional[str] = Field(None, description="PR description")
    merged_at: datetime = Field(..., description="Merge timestamp (UTC)")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp (UTC)")
    html_url: str = Field(..., description="Web URL of the PR")
    author: Optional[str] = Field(None, description="Login of the PR author")

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PullRequest":
        """Build from one item of ``GET /repos/{owner}/{repo}/pulls``."""
        user = data.get("user") or {}
        return cls(
            number=data["number"],
            title=data.get("title") or "",
            body=data.get("body"),
            merged_at=data["merged_at"],
            updated_at=data.get("updated_at"),
            html_url=data["html_url"],
            author=user.get("login"),
        )

    @property
    def text(self) -> str:
        """Title and body joined, used for ticket key extraction."""
        return f"{self.title}\n{self.body or ''}"


class JiraTicket(BaseModel):
    """Ticket metadata fetched from Jira."""

    key: str = Field(..., description="Ticket key (e.g., PROJ-123)")
    summary: str = Field(..., description="Ticket summary")
    status: Optional[str] = Field(None, description="Workflow status name")
    issue_type: Optional[str] = Field(None, description="Issue type name")
    description: Optional[str] = Field(None, description="Plain-text description")
    url: Optional[str] = Field(None, description="Browse URL of the ticket")


class PullRequestContext(BaseModel):
    """A pull request together with the tickets it references."""

    pull_request: PullRequest
    tickets: List[JiraTicket] = Field(default_factory=list)


class GenerationResult(BaseModel):
    """Outcome of generating a changelog for one repository."""

    repo: Repository
    success: bool = Field(..., description="Whether the changelog was written")
    path: Optional[Path] = Field(None, description="Path of the written changelog")
    pr_count: int = Field(default=0, description="Number of PRs included")
    error_message: Optional[str] = Field(None, description="Error message if generation failed")

    @property
    def formatted_response(self) -> str:
        """One-line summary for the terminal."""
        if self.success and self.path:
            return f"Changelog for {self.repo.full_name} saved to {self.path} ({self.pr_count} PRs)"
        if self.error_message:
            return f"{self.repo.full_name}: {self.error_message}"
        return f"{self.repo.full_name}: Unknown error occurred"
