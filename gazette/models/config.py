"""Configuration models for Gazette."""

from pathlib import Path
from typing import Optional, Union

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gazette.exceptions import ConfigError
from gazette.models.subscription import AIProvider

DEFAULT_JIRA_KEY_PATTERN = r"\b[A-Z][A-Z0-9]+-\d+\b"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and ``.env``."""

    # GitHub
    github_token: Optional[str] = Field(default=None, description="GITHUB_TOKEN")
    github_api_url: str = Field(default="https://api.github.com")

    # LLM providers
    gemini_api_key: Optional[str] = Field(default=None)
    openai_api_key: Optional[str] = Field(default=None)
    anthropic_api_key: Optional[str] = Field(default=None)
    openrouter_api_key: Optional[str] = Field(default=None)
    ollama_host: str = Field(default="http://localhost:11434")
    llm_timeout: float = Field(default=120.0)
    llm_max_retries: int = Field(default=1, ge=0)

    # Jira (optional)
    jira_base_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("jira_base_url", "jira_url"),
    )
    jira_email: Optional[str] = Field(default=None)
    jira_api_token: Optional[str] = Field(default=None)
    jira_key_pattern: str = Field(default=DEFAULT_JIRA_KEY_PATTERN)

    # Application
    http_timeout: float = Field(default=30.0)
    log_level: str = Field(default="INFO")
    logs_dir: Path = Field(default=Path("logs"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator(
        "github_token",
        "gemini_api_key",
        "openai_api_key",
        "anthropic_api_key",
        "openrouter_api_key",
        "jira_base_url",
        "jira_email",
        "jira_api_token",
        mode="before",
    )
    @classmethod
    def _blank_as_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @property
    def has_jira_credentials(self) -> bool:
        """Jira enrichment is enabled only when all three values are present."""
        return bool(self.jira_base_url and self.jira_email and self.jira_api_token)

    def api_key_for(self, provider: AIProvider) -> Optional[str]:
        """Return the configured API key for ``provider`` (None for Ollama)."""
        return {
            AIProvider.GEMINI: self.gemini_api_key,
            AIProvider.OPENAI: self.openai_api_key,
            AIProvider.ANTHROPIC: self.anthropic_api_key,
            AIProvider.OLLAMA: None,
            AIProvider.OPENROUTER: self.openrouter_api_key,
        }[provider]


def load_settings(env_file: Union[str, Path, None] = ".env") -> Settings:
    """
    Load settings from the environment and ``env_file``.

    Raises:
        ConfigError: If a value is invalid or the file cannot be read
    """
    try:
        return Settings(_env_file=env_file)
    except (ValidationError, OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Invalid settings in the environment or {env_file}: {e}") from e
