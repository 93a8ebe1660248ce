"""Tests for settings loaded from the environment and .env."""

import pytest

from gazette.exceptions import ConfigError
from gazette.models.config import load_settings
from gazette.models.subscription import AIProvider

ENV_KEYS = [
    "GITHUB_TOKEN",
    "GEMINI_API_KEY",
    "JIRA_BASE_URL",
    "JIRA_URL",
    "JIRA_EMAIL",
    "JIRA_API_TOKEN",
    "LLM_MAX_RETRIES",
    "HTTP_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_reads_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "GITHUB_TOKEN=ghp_file\nGEMINI_API_KEY=gem\nJIRA_URL=https://acme.atlassian.net/\n"
        "JIRA_EMAIL=dev@acme.io\nJIRA_API_TOKEN=tok\nUNRELATED=1\n",
        encoding="utf-8",
    )

    settings = load_settings(env_file)

    assert settings.github_token == "ghp_file"
    assert settings.api_key_for(AIProvider.GEMINI) == "gem"
    assert settings.api_key_for(AIProvider.OLLAMA) is None
    assert settings.jira_base_url == "https://acme.atlassian.net/"
    assert settings.has_jira_credentials


def test_environment_overrides_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("GITHUB_TOKEN=ghp_file\n", encoding="utf-8")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")

    assert load_settings(env_file).github_token == "ghp_env"


def test_defaults_and_blank_secrets(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("GITHUB_TOKEN=\nJIRA_BASE_URL=https://jira.acme.io\n", encoding="utf-8")

    settings = load_settings(env_file)

    assert settings.github_token is None
    assert settings.llm_max_retries == 1
    assert settings.http_timeout == 30.0
    assert not settings.has_jira_credentials
    assert settings.jira_base_url == "https://jira.acme.io"


def test_invalid_value_raises_config_error(tmp_path, monkeypatch):
    monkeypatch.setenv("LLM_MAX_RETRIES", "many")

    with pytest.raises(ConfigError):
        load_settings(tmp_path / "missing.env")
