"""Connection checks for GitHub, Jira and the configured AI provider."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from gazette.exceptions import GazetteError
from gazette.integrations.github_client import GitHubClient
from gazette.integrations.jira_client import JiraClient
from gazette.models.config import Settings
from gazette.models.subscription import AIProvider, GazetteConfig
from gazette.utils.logger import get_logger

logger = get_logger(__name__)

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"
NOT_CONFIGURED = "not_configured"


class HealthChecker:
    """Verifies that each external dependency is reachable with the stored credentials."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            settings: Application settings holding the credentials
            client: Shared HTTP client, mainly for tests
        """
        self.settings = settings
        self.client = client

    async def check_github(self) -> Dict[str, Any]:
        """Check the GitHub token and report the remaining core quota."""
        if not self.settings.github_token:
            return {"status": NOT_CONFIGURED, "error": "GITHUB_TOKEN is not set"}

        github = GitHubClient(
            self.settings.github_token,
            base_url=self.settings.github_api_url,
            timeout=10.0,
            client=self.client,
        )
        try:
            user = await github.get_authenticated_user()
            rate = await github.get_rate_limit()
            return {
                "status": HEALTHY,
                "user": user.get("login"),
                "rate_limit_remaining": rate.get("remaining"),
            }
        except GazetteError as e:
            logger.error(f"GitHub health check failed: {e}")
            return {"status": UNHEALTHY, "error": str(e)}
        finally:
            if self.client is None:
                await github.close()

    async def check_jira(self) -> Dict[str, Any]:
        """Check the Jira credentials against ``/myself``."""
        if not self.settings.has_jira_credentials:
            return {"status": NOT_CONFIGURED, "error": "Jira credentials are not set"}

        jira = JiraClient(
            self.settings.jira_base_url,
            self.settings.jira_email,
            self.settings.jira_api_token,
            timeout=10.0,
            client=self.client,
        )
        try:
            user = await jira.get_myself()
            return {
                "status": HEALTHY,
                "user": user.get("displayName") or user.get("emailAddress"),
                "deployment": "cloud" if jira.is_cloud else "data_center",
            }
        except GazetteError as e:
            logger.error(f"Jira health check failed: {e}")
            return {"status": UNHEALTHY, "error": str(e)}
        finally:
            if self.client is None:
                await jira.close()

    async def check_llm(self, provider: AIProvider) -> Dict[str, Any]:
        """Check that the provider's model listing endpoint accepts the key."""
        api_key = self.settings.api_key_for(provider)
        if provider != AIProvider.OLLAMA and not api_key:
            return {"status": NOT_CONFIGURED, "error": f"{provider.api_key_env_var} is not set"}

        url, headers = self._llm_endpoint(provider, api_key)
        client = self.client or httpx.AsyncClient(timeout=10.0)
        try:
            response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"{provider.display_name} health check failed: {e}")
            return {"status": UNHEALTHY, "error": str(e)}
        finally:
            if self.client is None:
                await client.aclose()

        if response.status_code == 200:
            return {"status": HEALTHY, "provider": provider.display_name}
        if response.status_code in (401, 403):
            return {"status": UNHEALTHY, "error": f"{provider.display_name} rejected the API key"}
        return {
            "status": UNHEALTHY,
            "error": f"API returned status {response.status_code}",
            "response": response.text[:200],
        }

    def _llm_endpoint(self, provider: AIProvider, api_key: Optional[str]):
        if provider == AIProvider.GEMINI:
            return "https://generativelanguage.googleapis.com/v1beta/models", {"x-goog-api-key": api_key}
        if provider == AIProvider.OPENAI:
            return "https://api.openai.com/v1/models", {"Authorization": f"Bearer {api_key}"}
        if provider == AIProvider.ANTHROPIC:
            return "https://api.anthropic.com/v1/models", {
                "x-api-key": api_key,
                "anthropic-version": "2023-06-01",
            }
        if provider == AIProvider.OPENROUTER:
            return "https://openrouter.ai/api/v1/auth/key", {"Authorization": f"Bearer {api_key}"}
        return f"{self.settings.ollama_host.rstrip('/')}/api/tags", {}

    async def comprehensive_health_check(self, config: GazetteConfig) -> Dict[str, Any]:
        """Run every check, one request at a time."""
        start_time = datetime.now(timezone.utc)

        runners = {
            "github": self.check_github,
            "jira": self.check_jira,
            "llm": lambda: self.check_llm(config.ai_provider),
        }
        checks: Dict[str, Dict[str, Any]] = {}
        for name, check in runners.items():
            try:
                checks[name] = await check()
            except Exception as e:
                logger.error(f"{name} health check raised: {e}")
                checks[name] = {"status": UNHEALTHY, "error": str(e)}

        all_healthy = all(check.get("status") in (HEALTHY, NOT_CONFIGURED) for check in checks.values())
        # GitHub is required; Jira is optional
        if checks["github"].get("status") != HEALTHY or checks["llm"].get("status") != HEALTHY:
            all_healthy = False

        return {
            "overall_status": HEALTHY if all_healthy else UNHEALTHY,
            "timestamp": start_time.isoformat(),
            "services": checks,
        }
