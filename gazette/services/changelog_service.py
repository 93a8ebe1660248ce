"""Changelog generation: fetch merged PRs, add Jira context, ask the LLM, save Markdown."""

import asyncio
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Union

from gazette.exceptions import AuthError, GazetteError, GenerationError, NetworkError, NoMergedPullRequests
from gazette.integrations.github_client import GitHubClient
from gazette.integrations.jira_client import JiraClient
from gazette.integrations.llm_client import LLMClient, create_llm_client
from gazette.models.changelog import GenerationResult, PullRequest, PullRequestContext
from gazette.models.config import Settings
from gazette.models.subscription import GazetteConfig, Repository, TimePeriod
from gazette.services.jira_enricher import JiraEnricher
from gazette.utils.logger import get_structured_logger

logger = get_structured_logger(__name__)

TICKET_DESCRIPTION_LIMIT = 500
OTHER_CHANGES_HEADING = "## Other Changes"


def format_pr_context(contexts: List[PullRequestContext]) -> str:
    """Render enriched pull requests as the text block embedded in the prompt."""
    output: List[str] = []
    for ctx in contexts:
        pr = ctx.pull_request
        output.append(f"## PR #{pr.number}: {pr.title}")
        output.append(f"URL: {pr.html_url}")
        output.append(f"Merged at: {pr.merged_at.astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}")
        if pr.author:
            output.append(f"Author: {pr.author}")
        if pr.body and pr.body.strip():
            output.append(f"Description:\n{pr.body.strip()}")

        if ctx.tickets:
            output.append("\nJira Context:")
            for ticket in ctx.tickets:
                if ticket.url:
                    output.append(f"- {ticket.key} ({ticket.url}): {ticket.summary}")
                else:
                    output.append(f"- {ticket.key}: {ticket.summary}")
                if ticket.status:
                    output.append(f"  Status: {ticket.status}")
                if ticket.description:
                    output.append(f"  Details: {ticket.description[:TICKET_DESCRIPTION_LIMIT]}")

        output.append("\n---\n")
    return "\n".join(output)


def ensure_pr_links(markdown: str, pull_requests: List[PullRequest]) -> str:
    """Append an "Other Changes" section linking every PR the model left out."""
    missing = [pr for pr in pull_requests if not re.search(rf"{re.escape(pr.html_url)}(?!\d)", markdown)]
    if not missing:
        return markdown
    bullets = "\n".join(f"- [#{pr.number}]({pr.html_url}) {pr.title}" for pr in missing)
    return f"{markdown.rstrip()}\n\n{OTHER_CHANGES_HEADING}\n\n{bullets}\n"


def changelog_path(output_dir: Path, repo: Repository, day: date) -> Path:
    """
    Pick the output file, never reusing an existing one.

    ``changelog_<name>_<date>.md`` first, then ``_2``, ``_3``, ...
    """
    stem = f"changelog_{repo.name}_{day.isoformat()}"
    candidate = output_dir / f"{stem}.md"
    index = 2
    while candidate.exists():
        candidate = output_dir / f"{stem}_{index}.md"
        index += 1
    return candidate


class ChangelogService:
    """Service responsible for generating changelogs."""

    def __init__(
        self,
        github: GitHubClient,
        llm: LLMClient,
        enricher: Optional[JiraEnricher] = None,
        output_dir: Union[str, Path] = ".",
        max_retries: int = 1,
        retry_delay: float = 2.0,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Args:
            github: GitHub client
            llm: Client of the configured LLM provider
            enricher: Jira enricher; None disables ticket context
            output_dir: Directory the Markdown files are written to
            max_retries: Extra attempts after an LLM network failure
            retry_delay: Base delay in seconds between attempts
            clock: Returns the current time; used for the cutoff and file date
        """
        self.github = github
        self.llm = llm
        self.enricher = enricher or JiraEnricher(None)
        self.output_dir = Path(output_dir)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(cls, settings: Settings, config: GazetteConfig, output_dir: Union[str, Path] = ".") -> "ChangelogService":
        """
        Build the service and its clients from settings and config.

        Jira is optional: without complete credentials ticket context is skipped.

        Raises:
            AuthError: If the GitHub token or the provider key is missing
        """
        if not settings.github_token:
            raise AuthError("GITHUB_TOKEN is not configured")
        llm = create_llm_client(config.ai_provider, config.get_ai_model(), settings)
        github = GitHubClient(settings.github_token, base_url=settings.github_api_url, timeout=settings.http_timeout)

        jira = None
        if settings.has_jira_credentials:
            jira = JiraClient(
                settings.jira_base_url,
                settings.jira_email,
                settings.jira_api_token,
                timeout=settings.http_timeout,
            )
        enricher = JiraEnricher(jira, key_pattern=settings.jira_key_pattern)
        return cls(github, llm, enricher, output_dir=output_dir, max_retries=settings.llm_max_retries)

    async def close(self):
        """Close every HTTP client."""
        await self.github.close()
        await self.llm.close()
        if self.enricher.jira_client is not None:
            await self.enricher.jira_client.close()

    async def generate_for_repo(self, repo: Repository, period: TimePeriod) -> GenerationResult:
        """
        Generate and save the changelog of one repository.

        Returns:
            Successful result with the written path

        Raises:
            NoMergedPullRequests: If nothing was merged in the window
            GenerationError: If the LLM fails or answers with nothing
            AuthError, RateLimited, NotFound, NetworkError: From the APIs
        """
        log = logger.with_context(repo=repo.full_name)
        now = self.clock()
        cutoff = now - period.to_timedelta()

        log.info(f"Fetching PRs merged in the {period.description()}")
        prs = await self.github.get_merged_pull_requests(repo, cutoff)
        if not prs:
            raise NoMergedPullRequests(f"No PRs merged in the {period.description()}")

        contexts = await self.enricher.enrich(prs)
        context_text = format_pr_context(contexts)

        changelog = await self._generate_with_retry(repo, context_text, period)
        changelog = ensure_pr_links(changelog, prs)

        path = self._save_changelog(repo, changelog, now.astimezone().date())
        log.info(f"Saved changelog with {len(prs)} PRs to {path}")
        return GenerationResult(repo=repo, success=True, path=path, pr_count=len(prs))

    async def generate_for_all(
        self,
        repos: List[Repository],
        period: TimePeriod,
        on_result: Optional[Callable[[GenerationResult], None]] = None
    ) -> List[GenerationResult]:
        """
        Generate changelogs for each repository in turn.

        A failure is recorded in that repository's result and the run moves on.

        Args:
            repos: Repositories in subscription order
            period: Lookback window
            on_result: Called after each repository, for progress output
        """
        results: List[GenerationResult] = []
        for repo in repos:
            try:
                result = await self.generate_for_repo(repo, period)
            except GazetteError as e:
                logger.with_context(repo=repo.full_name).warning(f"Changelog generation failed: {e}")
                result = GenerationResult(repo=repo, success=False, error_message=str(e))
            except Exception as e:
                logger.with_context(repo=repo.full_name).exception(f"Unexpected error generating changelog: {e}")
                result = GenerationResult(repo=repo, success=False, error_message=f"Unexpected error: {e}")
            results.append(result)
            if on_result:
                on_result(result)

        succeeded = sum(1 for result in results if result.success)
        logger.info(f"Generated {succeeded}/{len(results)} changelogs")
        return results

    async def _generate_with_retry(self, repo: Repository, context_text: str, period: TimePeriod) -> str:
        attempt = 0
        while True:
            try:
                return await self.llm.generate_changelog(repo.full_name, context_text, period.description())
            except NetworkError as e:
                if attempt >= self.max_retries:
                    raise
                attempt += 1
                delay = self.retry_delay * attempt
                logger.with_context(repo=repo.full_name).warning(
                    f"LLM request failed ({e}); retrying in {delay:.0f}s (attempt {attempt + 1}/{self.max_retries + 1})"
                )
                await asyncio.sleep(delay)

    def _save_changelog(self, repo: Repository, content: str, day: date) -> Path:
        """Save the changelog to a new file and return its path."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = changelog_path(self.output_dir, repo, day)
        try:
            path.write_text(content if content.endswith("\n") else content + "\n", encoding="utf-8")
        except OSError as e:
            raise GenerationError(f"Failed to write changelog file {path}: {e}") from e
        return path
