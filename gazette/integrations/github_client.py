"""GitHub REST client for fetching merged pull requests."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from gazette.exceptions import APIError, AuthError, NetworkError, NotFound, RateLimited
from gazette.models.changelog import PullRequest
from gazette.models.subscription import Repository
from gazette.utils.logger import get_logger

logger = get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
USER_AGENT = "gazette-cli"


def normalize_datetime(value: datetime) -> datetime:
    """Normalize a datetime to timezone-aware UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_github_datetime(value: str) -> datetime:
    return normalize_datetime(datetime.fromisoformat(value.replace("Z", "+00:00")))


def _format_wait(seconds: int) -> str:
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}m {secs}s" if minutes else f"{secs}s"


class GitHubClient:
    """Client for the GitHub REST API authenticated with a personal access token."""

    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        per_page: int = 100,
        client: Optional[httpx.AsyncClient] = None
    ):
        if not token:
            raise AuthError("GITHUB_TOKEN is not configured")
        self.base_url = base_url.rstrip("/")
        self.per_page = per_page
        self.headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": USER_AGENT,
        }
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def get_merged_pull_requests(self, repo: Repository, since: datetime) -> List[PullRequest]:
        """
        Fetch pull requests of ``repo`` merged at or after ``since``.

        Closed PRs are listed by last update, newest first. Paging stops
        at the last page or at the first page whose oldest entry was
        updated before ``since``: a PR cannot be merged after its last update.

        Args:
            repo: Repository to query
            since: Cutoff timestamp

        Returns:
            Merged pull requests, newest merge first

        Raises:
            AuthError, RateLimited, NotFound, NetworkError, APIError
        """
        since = normalize_datetime(since)
        path = f"/repos/{repo.owner}/{repo.name}/pulls"
        context = f"fetching PRs for {repo.full_name}"
        merged: List[PullRequest] = []
        page = 1

        while True:
            params = {
                "state": "closed",
                "sort": "updated",
                "direction": "desc",
                "per_page": self.per_page,
                "page": page,
            }
            items = await self._get_json(path, params=params, context=context)
            if not isinstance(items, list):
                raise APIError(f"Unexpected GitHub response while {context}: expected a list")

            for item in items:
                if not item.get("merged_at"):
                    continue
                pr = PullRequest.from_api(item)
                if normalize_datetime(pr.merged_at) >= since:
                    merged.append(pr)

            logger.debug(f"{repo.full_name}: page {page} returned {len(items)} PRs, {len(merged)} merged in window so far")

            if len(items) < self.per_page:
                break
            oldest_update = items[-1].get("updated_at")
            if oldest_update and parse_github_datetime(oldest_update) < since:
                break
            page += 1

        merged.sort(key=lambda pr: pr.merged_at, reverse=True)
        logger.info(f"Fetched {len(merged)} merged PRs for {repo.full_name} since {since.isoformat()}")
        return merged

    async def get_authenticated_user(self) -> Dict[str, Any]:
        """Return the user owning the token (``GET /user``)."""
        return await self._get_json("/user", context="verifying GitHub token")

    async def get_rate_limit(self) -> Dict[str, Any]:
        """Return the core rate-limit resource (``GET /rate_limit``)."""
        data = await self._get_json("/rate_limit", context="reading rate limit")
        return (data.get("resources") or {}).get("core") or data.get("rate") or {}

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None, context: str = "") -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.get(url, params=params, headers=self.headers)
        except httpx.TimeoutException as e:
            raise NetworkError(f"GitHub request timed out while {context}. Please try again.") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Network error while {context}: {e}") from e

        self._raise_for_status(response, context)
        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"Invalid JSON from GitHub while {context}: {e}", status_code=response.status_code) from e

    def _raise_for_status(self, response: httpx.Response, context: str) -> None:
        """Translate a non-2xx response into the matching exception."""
        status = response.status_code
        if 200 <= status < 300:
            return

        text = response.text[:500]
        rate_limited = status == 429 or (
            status == 403
            and (response.headers.get("X-RateLimit-Remaining") == "0" or "Retry-After" in response.headers)
        )
        if rate_limited:
            raise self._rate_limited(response, context)
        if status == 401:
            raise AuthError(
                "GitHub authentication failed. The token is invalid or expired; update it from the credentials menu.",
                status_code=status,
                response_text=text,
            )
        if status == 403:
            raise AuthError(
                f"GitHub denied access while {context}. Check the token's permissions.",
                status_code=status,
                response_text=text,
            )
        if status == 404:
            raise NotFound(
                f"Not found while {context}. Check that the repository exists and the token can access it.",
                status_code=status,
                response_text=text,
            )
        if status >= 500:
            raise NetworkError(f"GitHub returned {status} while {context}. Please try again.", status_code=status, response_text=text)
        raise APIError(f"GitHub API error ({status}) while {context}: {text}", status_code=status, response_text=text)

    def _rate_limited(self, response: httpx.Response, context: str) -> RateLimited:
        reset_at = None
        retry_after = None
        reset_header = response.headers.get("X-RateLimit-Reset")
        if reset_header and reset_header.isdigit():
            reset_at = datetime.fromtimestamp(int(reset_header), tz=timezone.utc)
        retry_header = response.headers.get("Retry-After")
        if retry_header and retry_header.isdigit():
            retry_after = int(retry_header)

        error = RateLimited(
            f"GitHub API rate limit exceeded while {context}",
            reset_at=reset_at,
            retry_after=retry_after,
            status_code=response.status_code,
        )
        wait = error.seconds_until_reset()
        if wait is not None:
            error.args = (f"{error.args[0]}; resets in {_format_wait(wait)}",)
        logger.warning(str(error))
        return error
