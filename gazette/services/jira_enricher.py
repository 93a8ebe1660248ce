"""Attach Jira ticket context to pull requests."""

import re
from typing import Dict, List, Optional

from gazette.exceptions import AuthError, GazetteError
from gazette.integrations.jira_client import JiraClient
from gazette.models.changelog import JiraTicket, PullRequest, PullRequestContext
from gazette.models.config import DEFAULT_JIRA_KEY_PATTERN
from gazette.utils.logger import get_logger

logger = get_logger(__name__)


def extract_ticket_keys(text: str, pattern: str = DEFAULT_JIRA_KEY_PATTERN) -> List[str]:
    """
    Find ticket keys such as ``PROJ-123`` in free text.

    Args:
        text: PR title and/or body
        pattern: Regex matching one key

    Returns:
        Unique keys in order of first appearance
    """
    if not text:
        return []
    return list(dict.fromkeys(re.findall(pattern, text)))


class JiraEnricher:
    """Looks up the tickets referenced by each pull request."""

    def __init__(self, jira_client: Optional[JiraClient], key_pattern: str = DEFAULT_JIRA_KEY_PATTERN):
        """
        Args:
            jira_client: Configured client, or None when Jira is not set up
            key_pattern: Regex matching one ticket key
        """
        self.jira_client = jira_client
        self.key_pattern = key_pattern

    @property
    def enabled(self) -> bool:
        return self.jira_client is not None

    async def enrich(self, pull_requests: List[PullRequest]) -> List[PullRequestContext]:
        """
        Pair each pull request with the tickets it mentions.

        Tickets that do not exist or fail to load are left out. If Jira
        rejects the credentials, enrichment stops for the rest of the run.
        Each distinct key is fetched at most once.
        """
        if not self.enabled:
            logger.info("Jira credentials not configured, skipping ticket enrichment")
            return [PullRequestContext(pull_request=pr) for pr in pull_requests]

        cache: Dict[str, Optional[JiraTicket]] = {}
        contexts: List[PullRequestContext] = []
        disabled = False

        for pr in pull_requests:
            tickets: List[JiraTicket] = []
            for key in extract_ticket_keys(pr.text, self.key_pattern):
                if disabled:
                    break
                if key not in cache:
                    try:
                        cache[key] = await self.jira_client.get_issue(key)
                    except AuthError as e:
                        logger.warning(f"Jira authentication failed, continuing without ticket context: {e}")
                        disabled = True
                        break
                    except GazetteError as e:
                        logger.warning(f"Skipping Jira ticket {key}: {e}")
                        cache[key] = None
                if cache[key] is not None:
                    tickets.append(cache[key])
            contexts.append(PullRequestContext(pull_request=pr, tickets=tickets))

        found = sum(1 for ticket in cache.values() if ticket is not None)
        logger.info(f"Jira enrichment: {len(cache)} keys looked up, {found} tickets found")
        return contexts
