"""Persisted configuration models: subscriptions, time period and AI provider."""

import re
from datetime import timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

REPO_PART_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class Repository(BaseModel):
    """A subscribed GitHub repository."""

    owner: str = Field(..., description="Repository owner (user or organization)")
    name: str = Field(..., description="Repository name")

    @field_validator("owner", "name")
    @classmethod
    def _validate_part(cls, value: str) -> str:
        value = value.strip()
        if not REPO_PART_PATTERN.match(value):
            raise ValueError(f"Invalid repository component: {value!r}")
        return value

    @classmethod
    def from_full_name(cls, full_name: str) -> "Repository":
        """
        Parse an ``owner/name`` string.

        Args:
            full_name: Text entered by the user, e.g. ``rust-lang/rust``

        Returns:
            Repository instance

        Raises:
            ValueError: If the text is not exactly two non-empty parts
        """
        parts = (full_name or "").strip().split("/")
        if len(parts) != 2 or not all(part.strip() for part in parts):
            raise ValueError("Invalid format. Use 'owner/name' (e.g., rust-lang/rust)")
        return cls(owner=parts[0], name=parts[1])

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


class PeriodType(str, Enum):
    """Lookback windows selectable from the menu."""
    LAST_HOUR = "LastHour"
    LAST_6_HOURS = "Last6Hours"
    LAST_12_HOURS = "Last12Hours"
    LAST_24_HOURS = "Last24Hours"
    CUSTOM = "Custom"


PRESET_HOURS = {
    PeriodType.LAST_HOUR: 1,
    PeriodType.LAST_6_HOURS: 6,
    PeriodType.LAST_12_HOURS: 12,
    PeriodType.LAST_24_HOURS: 24,
}


class CustomPeriod(BaseModel):
    """Payload of a custom time period."""

    seconds: int = Field(..., gt=0, description="Window length in seconds")


def format_hms(seconds: int) -> str:
    """Render a number of seconds as ``HH:MM:SS``."""
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class TimePeriod(BaseModel):
    """
    The active lookback window.

    Serialized as ``{"type": "Last24Hours"}`` for presets and
    ``{"type": "Custom", "value": {"seconds": 5400}}`` for custom windows.
    """

    type: PeriodType = Field(default=PeriodType.LAST_24_HOURS)
    value: Optional[CustomPeriod] = Field(default=None)

    @model_validator(mode="after")
    def _check_value(self) -> "TimePeriod":
        if self.type == PeriodType.CUSTOM and self.value is None:
            raise ValueError("Custom time period requires a value")
        if self.type != PeriodType.CUSTOM and self.value is not None:
            raise ValueError(f"{self.type.value} does not take a value")
        return self

    @classmethod
    def preset(cls, period_type: PeriodType) -> "TimePeriod":
        return cls(type=period_type)

    @classmethod
    def custom(cls, seconds: int) -> "TimePeriod":
        return cls(type=PeriodType.CUSTOM, value=CustomPeriod(seconds=seconds))

    @classmethod
    def parse_hms(cls, text: str) -> "TimePeriod":
        """
        Build a custom period from ``HH:MM:SS``.

        Minutes and seconds must be below 60 and the total must be positive.

        Raises:
            ValueError: On malformed input
        """
        parts = (text or "").strip().split(":")
        if len(parts) != 3 or not all(part.isdigit() for part in parts):
            raise ValueError("Invalid format. Use HH:MM:SS (e.g., 01:30:00)")
        hours, minutes, secs = (int(part) for part in parts)
        if minutes >= 60 or secs >= 60:
            raise ValueError("Minutes and seconds must be between 00 and 59")
        total = hours * 3600 + minutes * 60 + secs
        if total <= 0:
            raise ValueError("Time period must be greater than 0")
        return cls.custom(total)

    def to_timedelta(self) -> timedelta:
        if self.type == PeriodType.CUSTOM:
            return timedelta(seconds=self.value.seconds)
        return timedelta(hours=PRESET_HOURS[self.type])

    def description(self) -> str:
        """Lower-case phrase used in prompts and messages, e.g. ``last 6 hours``."""
        if self.type == PeriodType.CUSTOM:
            return f"last {format_hms(self.value.seconds)}"
        hours = PRESET_HOURS[self.type]
        return "last hour" if hours == 1 else f"last {hours} hours"

    def __str__(self) -> str:
        if self.type == PeriodType.CUSTOM:
            return f"Custom ({format_hms(self.value.seconds)})"
        hours = PRESET_HOURS[self.type]
        return "Last hour" if hours == 1 else f"Last {hours} hours"


class AIProvider(str, Enum):
    """Supported LLM providers."""
    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"
    OPENROUTER = "openrouter"

    @property
    def display_name(self) -> str:
        return {
            AIProvider.GEMINI: "Google Gemini",
            AIProvider.OPENAI: "OpenAI",
            AIProvider.ANTHROPIC: "Anthropic",
            AIProvider.OLLAMA: "Ollama (local)",
            AIProvider.OPENROUTER: "OpenRouter",
        }[self]

    @property
    def default_model(self) -> str:
        return {
            AIProvider.GEMINI: "gemini-2.5-flash",
            AIProvider.OPENAI: "gpt-4o-mini",
            AIProvider.ANTHROPIC: "claude-sonnet-4-5",
            AIProvider.OLLAMA: "llama3.2",
            AIProvider.OPENROUTER: "google/gemini-2.5-flash",
        }[self]

    @property
    def api_key_env_var(self) -> Optional[str]:
        """Name of the credential this provider needs; Ollama runs locally without one."""
        return {
            AIProvider.GEMINI: "GEMINI_API_KEY",
            AIProvider.OPENAI: "OPENAI_API_KEY",
            AIProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
            AIProvider.OLLAMA: None,
            AIProvider.OPENROUTER: "OPENROUTER_API_KEY",
        }[self]


class GazetteConfig(BaseModel):
    """Contents of ``config.json``."""

    repos: List[Repository] = Field(default_factory=list)
    time_period: TimePeriod = Field(default_factory=TimePeriod)
    ai_provider: AIProvider = Field(default=AIProvider.GEMINI)
    ai_model: Optional[str] = Field(default=None, description="Overrides the provider's default model")

    @field_validator("repos")
    @classmethod
    def _drop_duplicates(cls, repos: List[Repository]) -> List[Repository]:
        unique: List[Repository] = []
        for repo in repos:
            if repo not in unique:
                unique.append(repo)
        return unique

    def is_subscribed(self, repo: Repository) -> bool:
        return repo in self.repos

    def subscribe(self, repo: Repository) -> bool:
        """Append ``repo``; returns False if it was already subscribed."""
        if self.is_subscribed(repo):
            return False
        self.repos.append(repo)
        return True

    def unsubscribe(self, repo: Repository) -> bool:
        """Remove ``repo``; returns False (and changes nothing) if it was not subscribed."""
        if not self.is_subscribed(repo):
            return False
        self.repos = [r for r in self.repos if r != repo]
        return True

    def get_ai_model(self) -> str:
        return self.ai_model or self.ai_provider.default_model
