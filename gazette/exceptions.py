"""Exception hierarchy shared by the Gazette integrations and services."""

from datetime import datetime, timezone
from typing import Optional


class GazetteError(Exception):
    """Base class for every error Gazette reports to the user."""


class ConfigError(GazetteError):
    """A configuration or credential file could not be read, parsed or written."""


class APIError(GazetteError):
    """An external API answered with an unexpected status or payload."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_text: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


class AuthError(APIError):
    """Missing, invalid or expired credentials."""


class NotFound(APIError):
    """The requested resource does not exist or is not accessible."""


class NetworkError(APIError):
    """Timeout, connection failure or server-side (5xx) error. Retryable."""


class RateLimited(APIError):
    """The API quota is exhausted."""

    def __init__(
        self,
        message: str,
        reset_at: Optional[datetime] = None,
        retry_after: Optional[int] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, status_code=status_code)
        self.reset_at = reset_at
        self.retry_after = retry_after

    def seconds_until_reset(self, now: Optional[datetime] = None) -> Optional[int]:
        """Seconds left before the quota resets, if known."""
        if self.retry_after is not None:
            return self.retry_after
        if self.reset_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        return max(int((self.reset_at - now).total_seconds()), 0)


class GenerationError(GazetteError):
    """The LLM provider failed or returned an empty changelog."""


class NoMergedPullRequests(GazetteError):
    """No pull request was merged inside the configured time window."""
