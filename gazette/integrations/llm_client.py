"""LLM provider clients used to write changelogs."""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Dict, Optional

import httpx

from gazette.exceptions import AuthError, GenerationError, NetworkError
from gazette.models.config import Settings
from gazette.models.subscription import AIProvider
from gazette.utils.logger import get_logger

logger = get_logger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"
OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
OPENROUTER_API_URL = "https://openrouter.ai/api/v1"


def build_changelog_prompt(repo_name: str, prs_context: str, time_period: str, today: Optional[date] = None) -> str:
    """Create the prompt asking the model for a categorized Markdown changelog."""
    today = today or date.today()
    return f"""You are a technical writer. Generate a concise markdown changelog for the repository "{repo_name}" based on the following Pull Request information merged in the {time_period}.

The changelog should:
- Start with a level-1 header containing the repository name and today's date ({today.isoformat()})
- Group changes under level-2 headings by category (Features, Bug Fixes, Improvements, Documentation, Maintenance, etc.); omit empty categories
- Use one bullet per pull request, with a short explanation of the change
- Include each PR number as a clickable markdown link using the provided URL (e.g., [#123](url))
- If Jira context is available, include the Jira ticket ID as a clickable markdown link using the provided Jira URL (e.g., [PROJ-1234](jira_url))

PR Information:
{prs_context}

Generate only the markdown content."""


class LLMClient(ABC):
    """Common interface of every provider."""

    provider: AIProvider

    def __init__(self, model: str, timeout: float = 120.0, client: Optional[httpx.AsyncClient] = None):
        self.model = model
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Send ``prompt`` and return the generated text (possibly empty)."""

    async def generate_changelog(self, repo_name: str, prs_context: str, time_period: str) -> str:
        """
        Generate a Markdown changelog from formatted PR context.

        Raises:
            GenerationError: On provider errors or an empty response
            NetworkError: On timeouts and connection failures
        """
        prompt = build_changelog_prompt(repo_name, prs_context, time_period)
        logger.info(f"Requesting changelog for {repo_name} from {self.provider.value} ({self.model}), prompt {len(prompt)} chars")
        text = (await self.generate(prompt)).strip()
        if not text:
            raise GenerationError(
                f"{self.provider.display_name} returned an empty changelog; try again or check the AI provider configuration"
            )
        return text

    async def _post_json(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        name = self.provider.display_name
        try:
            response = await self.client.post(url, json=payload, headers=headers, params=params)
        except httpx.TimeoutException as e:
            raise NetworkError(f"{name} request timed out") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to send request to {name}: {e}") from e

        if response.status_code != 200:
            error_msg = f"{name} API error: {response.status_code} - {response.text[:500]}"
            logger.error(error_msg)
            raise GenerationError(error_msg)

        try:
            return response.json()
        except ValueError as e:
            raise GenerationError(f"Failed to parse {name} response: {e}") from e


class GeminiClient(LLMClient):
    """Google Gemini ``generateContent`` API."""

    provider = AIProvider.GEMINI

    def __init__(self, api_key: str, model: str, **kwargs):
        if not api_key:
            raise AuthError("GEMINI_API_KEY is not configured")
        super().__init__(model, **kwargs)
        self.api_key = api_key

    async def generate(self, prompt: str) -> str:
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        data = await self._post_json(
            f"{GEMINI_API_URL}/{self.model}:generateContent",
            payload,
            headers={"x-goog-api-key": self.api_key},
        )
        candidates = data.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)


class OpenAIClient(LLMClient):
    """OpenAI chat completions API."""

    provider = AIProvider.OPENAI
    api_url = OPENAI_API_URL

    def __init__(self, api_key: str, model: str, **kwargs):
        if not api_key:
            raise AuthError(f"{self.provider.api_key_env_var} is not configured")
        super().__init__(model, **kwargs)
        self.api_key = api_key

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def generate(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.3,
        }
        data = await self._post_json(self.api_url, payload, headers=self._headers())
        if data.get("error"):
            raise GenerationError(f"{self.provider.display_name} error: {data['error'].get('message', data['error'])}")
        choices = data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("message") or {}).get("content") or ""


class OpenRouterClient(OpenAIClient):
    """OpenRouter, an OpenAI-compatible gateway to many models."""

    provider = AIProvider.OPENROUTER

    def __init__(self, api_key: str, model: str, base_url: str = OPENROUTER_API_URL, **kwargs):
        super().__init__(api_key, model, **kwargs)
        self.api_url = f"{base_url.rstrip('/')}/chat/completions"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["HTTP-Referer"] = "https://github.com/gazette-cli"
        headers["X-Title"] = "Gazette"
        return headers


class AnthropicClient(LLMClient):
    """Anthropic messages API."""

    provider = AIProvider.ANTHROPIC

    def __init__(self, api_key: str, model: str, max_tokens: int = 4096, **kwargs):
        if not api_key:
            raise AuthError("ANTHROPIC_API_KEY is not configured")
        super().__init__(model, **kwargs)
        self.api_key = api_key
        self.max_tokens = max_tokens

    async def generate(self, prompt: str) -> str:
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }
        data = await self._post_json(ANTHROPIC_API_URL, payload, headers=headers)
        if data.get("error"):
            raise GenerationError(f"Anthropic API error: {data['error'].get('message', data['error'])}")
        blocks = data.get("content") or []
        return "".join(block.get("text") or "" for block in blocks if block.get("type") == "text")


class OllamaClient(LLMClient):
    """Local Ollama server."""

    provider = AIProvider.OLLAMA

    def __init__(self, model: str, host: str = "http://localhost:11434", **kwargs):
        super().__init__(model, **kwargs)
        self.host = host.rstrip("/")

    async def generate(self, prompt: str) -> str:
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        try:
            data = await self._post_json(f"{self.host}/api/generate", payload)
        except NetworkError as e:
            raise NetworkError(f"{e}. Is Ollama running at {self.host}?") from e
        if data.get("error"):
            raise GenerationError(f"Ollama error: {data['error']}")
        return data.get("response") or ""


def create_llm_client(
    provider: AIProvider,
    model: str,
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None
) -> LLMClient:
    """
    Create the client for the configured provider.

    Raises:
        AuthError: If the provider's API key is missing
    """
    kwargs = {"timeout": settings.llm_timeout, "client": client}
    if provider == AIProvider.GEMINI:
        return GeminiClient(settings.gemini_api_key, model, **kwargs)
    if provider == AIProvider.OPENAI:
        return OpenAIClient(settings.openai_api_key, model, **kwargs)
    if provider == AIProvider.ANTHROPIC:
        return AnthropicClient(settings.anthropic_api_key, model, **kwargs)
    if provider == AIProvider.OLLAMA:
        return OllamaClient(model, host=settings.ollama_host, **kwargs)
    if provider == AIProvider.OPENROUTER:
        return OpenRouterClient(settings.openrouter_api_key, model, **kwargs)
    raise ValueError(f"Unsupported AI provider: {provider}")
