"""Jira REST client for reading ticket metadata with API-token authentication."""

from typing import Any, Dict, List, Optional

import httpx

from gazette.exceptions import APIError, AuthError, NetworkError
from gazette.models.changelog import JiraTicket
from gazette.utils.logger import get_logger

logger = get_logger(__name__)

ISSUE_FIELDS = "summary,status,issuetype,description"


def adf_to_text(node: Any) -> str:
    """
    Flatten an Atlassian Document Format node into plain text.

    Block-level nodes are separated by newlines; Data Center plain-text
    descriptions are returned unchanged.
    """
    if node is None:
        return ""
    if isinstance(node, str):
        return node
    if not isinstance(node, dict):
        return ""

    if node.get("type") == "text":
        return node.get("text", "")
    if node.get("type") == "hardBreak":
        return "\n"

    children: List[Dict[str, Any]] = node.get("content") or []
    inline = all(child.get("type") in ("text", "hardBreak", "mention", "emoji") for child in children)
    separator = "" if inline else "\n"
    return separator.join(part for part in (adf_to_text(child) for child in children) if part)


class JiraClient:
    """Client for Jira Cloud or Data Center with email + API token basic auth."""

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        if not (base_url and email and api_token):
            raise AuthError("Jira base URL, email and API token are all required")
        self.base_url = base_url.rstrip("/")
        self.auth = httpx.BasicAuth(email, api_token)

        # Cloud instances have .atlassian.net domain, Data Center instances don't
        self.is_cloud = self.base_url.endswith(".atlassian.net")
        api_version = "3" if self.is_cloud else "2"
        self.api_base = f"{self.base_url}/rest/api/{api_version}"
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    def browse_url(self, key: str) -> str:
        return f"{self.base_url}/browse/{key}"

    async def _make_authenticated_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        """
        Make an authenticated request to the Jira API.

        Args:
            method: HTTP method
            endpoint: API endpoint (relative to api_base)
            params: Query parameters

        Returns:
            HTTP response

        Raises:
            NetworkError: On timeouts and connection failures
        """
        url = f"{self.api_base}/{endpoint.lstrip('/')}"
        try:
            return await self.client.request(
                method=method,
                url=url,
                params=params,
                auth=self.auth,
                headers={"Accept": "application/json"}
            )
        except httpx.TimeoutException as e:
            raise NetworkError(f"Jira request to {url} timed out") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Jira request to {url} failed: {e}") from e

    def _raise_for_status(self, response: httpx.Response, context: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        text = response.text[:500]
        if status in (401, 403):
            raise AuthError(f"Jira rejected the credentials while {context}", status_code=status, response_text=text)
        if status >= 500:
            raise NetworkError(f"Jira returned {status} while {context}", status_code=status, response_text=text)
        raise APIError(f"Jira API error ({status}) while {context}: {text}", status_code=status, response_text=text)

    async def get_issue(self, key: str) -> Optional[JiraTicket]:
        """
        Fetch a ticket by key.

        Args:
            key: Ticket key (e.g., PROJ-123)

        Returns:
            The ticket, or None if it does not exist

        Raises:
            AuthError, NetworkError, APIError
        """
        response = await self._make_authenticated_request(
            method="GET",
            endpoint=f"/issue/{key}",
            params={"fields": ISSUE_FIELDS}
        )

        if response.status_code == 404:
            logger.info(f"Jira ticket {key} not found")
            return None

        self._raise_for_status(response, f"fetching {key}")

        try:
            data = response.json()
        except ValueError as e:
            raise APIError(f"Invalid JSON from Jira for {key}: {e}", status_code=response.status_code) from e

        fields = data.get("fields") or {}
        description = adf_to_text(fields.get("description")).strip() or None
        ticket = JiraTicket(
            key=data.get("key", key),
            summary=fields.get("summary") or "",
            status=(fields.get("status") or {}).get("name"),
            issue_type=(fields.get("issuetype") or {}).get("name"),
            description=description,
            url=self.browse_url(data.get("key", key)),
        )
        logger.debug(f"Fetched Jira ticket {ticket.key}: {ticket.summary}")
        return ticket

    async def get_myself(self) -> Dict[str, Any]:
        """Return the authenticated Jira user, used to verify credentials."""
        response = await self._make_authenticated_request(method="GET", endpoint="/myself")
        self._raise_for_status(response, "verifying Jira credentials")
        return response.json()
