"""Tests for the interactive menu with scripted prompt answers."""

import io
import json

import pytest
from rich.console import Console
from rich.prompt import Confirm, Prompt

from gazette.cli.menu import GazetteMenu
from gazette.exceptions import ConfigError, RateLimited
from gazette.models.config import load_settings
from gazette.models.subscription import AIProvider, GazetteConfig, PeriodType, Repository
from gazette.utils.config_store import ConfigStore
from gazette.utils.credential_store import CredentialStore


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def menu(tmp_path, output, settings):
    return GazetteMenu(
        config_store=ConfigStore(tmp_path / "config.json"),
        credentials=CredentialStore(tmp_path / ".env", environ={}),
        output_dir=tmp_path / "out",
        console=Console(file=output, width=120),
        settings_factory=lambda: settings,
    )


@pytest.fixture
def answers(monkeypatch):
    """Queue answers for ``Prompt.ask``."""
    queue = []
    monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: queue.pop(0))
    return queue


@pytest.fixture
def confirms(monkeypatch):
    """Queue answers for ``Confirm.ask``."""
    queue = []
    monkeypatch.setattr(Confirm, "ask", lambda *args, **kwargs: queue.pop(0))
    return queue


def saved_config(menu):
    return json.loads(menu.config_store.config_path.read_text(encoding="utf-8"))


def test_subscribe_twice_reports_already_subscribed(menu, answers, output):
    answers.extend(["acme/backend", "acme/backend"])

    menu.subscribe()
    menu.subscribe()

    assert [r.full_name for r in menu.config.repos] == ["acme/backend"]
    assert saved_config(menu)["repos"] == [{"owner": "acme", "name": "backend"}]
    assert "Already subscribed to acme/backend" in output.getvalue()


def test_failed_save_leaves_config_unchanged(menu, answers, output, monkeypatch):
    def fail(config):
        raise ConfigError("Failed to write config.json: disk full")

    monkeypatch.setattr(menu.config_store, "save", fail)
    answers.extend(["acme/backend", "acme/backend", "gemini-2.5-pro"])

    menu.dispatch("1")
    menu.dispatch("1")
    menu.dispatch("6")

    text = output.getvalue()
    assert menu.config.repos == []
    assert menu.config.ai_model is None
    assert text.count("disk full") == 3
    assert "Already subscribed" not in text
    assert not menu.config_store.config_path.exists()


def test_subscribe_invalid_format(menu, answers, output):
    answers.append("acme")

    menu.subscribe()

    assert menu.config.repos == []
    assert "Invalid format. Use 'owner/name'" in output.getvalue()
    assert not menu.config_store.config_path.exists()


def test_unsubscribe_missing_repo_is_reported_noop(menu, answers, output):
    menu.config = GazetteConfig(repos=[Repository.from_full_name("acme/backend")])
    answers.append("acme/frontend")

    menu.unsubscribe()

    assert [r.full_name for r in menu.config.repos] == ["acme/backend"]
    assert "Not subscribed to acme/frontend" in output.getvalue()


def test_unsubscribe(menu, answers):
    menu.config = GazetteConfig(repos=[Repository.from_full_name("acme/backend"), Repository.from_full_name("acme/web")])
    answers.append("acme/backend")

    menu.unsubscribe()

    assert saved_config(menu)["repos"] == [{"owner": "acme", "name": "web"}]


def test_list_repositories(menu, output):
    menu.config = GazetteConfig(repos=[Repository.from_full_name("rust-lang/rust")])

    menu.list_repositories()

    assert "rust-lang/rust" in output.getvalue()


def test_configure_custom_period(menu, answers, output):
    answers.extend(["5", "01:30:00"])

    menu.configure_period()

    assert menu.config.time_period.type == PeriodType.CUSTOM
    assert saved_config(menu)["time_period"] == {"type": "Custom", "value": {"seconds": 5400}}
    assert "Custom (01:30:00)" in output.getvalue()


def test_configure_invalid_custom_period_keeps_previous(menu, answers, output):
    answers.extend(["5", "00:75:00"])

    menu.configure_period()

    assert menu.config.time_period.type == PeriodType.LAST_24_HOURS
    assert "Minutes and seconds must be between 00 and 59" in output.getvalue()


def test_configure_preset_period(menu, answers):
    answers.append("2")

    menu.configure_period()

    assert saved_config(menu)["time_period"] == {"type": "Last6Hours"}


def test_change_provider_prompts_for_missing_key(menu, answers):
    menu.config.ai_model = "gemini-pro"
    answers.extend(["3", "ant-key"])

    menu.change_provider()

    assert menu.config.ai_provider == AIProvider.ANTHROPIC
    assert menu.config.ai_model is None
    assert menu.credentials.load()["ANTHROPIC_API_KEY"] == "ant-key"
    assert saved_config(menu)["ai_provider"] == "anthropic"


def test_change_model_and_reset_to_default(menu, answers):
    answers.extend(["gemini-2.5-pro", ""])

    menu.change_model()
    assert menu.config.get_ai_model() == "gemini-2.5-pro"

    menu.change_model()
    assert menu.config.ai_model is None
    assert "ai_model" not in saved_config(menu)


def test_startup_prompts_for_credentials_once(menu, answers, confirms):
    answers.extend(["ghp_new", "gem_new"])
    confirms.append(False)

    assert menu.startup() is True

    values = menu.credentials.load()
    assert values["GITHUB_TOKEN"] == "ghp_new"
    assert values["GEMINI_API_KEY"] == "gem_new"
    assert answers == [] and confirms == []


def test_startup_configures_jira(menu, answers, confirms):
    menu.credentials.env_path.write_text("GITHUB_TOKEN=ghp\nGEMINI_API_KEY=gem\n", encoding="utf-8")
    answers.extend(["https://acme.atlassian.net", "dev@acme.io", "jira-token"])
    confirms.append(True)

    menu.startup()

    assert menu.credentials.has_jira_credentials()
    assert menu.credentials.load()["JIRA_BASE_URL"] == "https://acme.atlassian.net"


def test_startup_resets_broken_config(menu, answers, confirms, tmp_path):
    menu.config_store.config_path.write_text("{broken", encoding="utf-8")
    menu.credentials.env_path.write_text("GITHUB_TOKEN=ghp\nGEMINI_API_KEY=gem\n", encoding="utf-8")
    confirms.extend([True, False])

    assert menu.startup() is True

    assert (tmp_path / "config.json.bak").read_text(encoding="utf-8") == "{broken"
    assert saved_config(menu)["repos"] == []


def test_startup_declined_reset_exits(menu, confirms, output):
    menu.config_store.config_path.write_text("{broken", encoding="utf-8")
    confirms.append(False)

    assert menu.startup() is False
    assert "restart Gazette" in output.getvalue()


@pytest.fixture
def validating_menu(menu, monkeypatch):
    """Menu whose settings are built from its own .env, as in production."""
    monkeypatch.delenv("LLM_TIMEOUT", raising=False)
    menu.settings_factory = lambda: load_settings(menu.credentials.env_path)
    menu.credentials.env_path.write_text("GITHUB_TOKEN=ghp\nGEMINI_API_KEY=gem\nLLM_TIMEOUT=abc\n", encoding="utf-8")
    return menu


def test_startup_resets_env_with_invalid_value(validating_menu, answers, confirms, tmp_path):
    answers.extend(["ghp_new", "gem_new"])
    confirms.extend([True, False])

    assert validating_menu.startup() is True

    assert "LLM_TIMEOUT=abc" in (tmp_path / ".env.bak").read_text(encoding="utf-8")
    assert validating_menu.credentials.load() == {"GITHUB_TOKEN": "ghp_new", "GEMINI_API_KEY": "gem_new"}
    assert validating_menu.settings_factory().llm_timeout == 120.0


def test_startup_declined_env_reset_exits(validating_menu, confirms, output, tmp_path):
    confirms.append(False)

    assert validating_menu.startup() is False
    assert "restart Gazette" in output.getvalue()
    assert not (tmp_path / ".env.bak").exists()


def test_generate_without_subscriptions(menu, output):
    menu.generate_all()
    menu.generate_single()

    assert output.getvalue().count("No subscribed repositories") == 2


def test_dispatch_reports_errors_and_keeps_running(menu, output, monkeypatch):
    def fail():
        raise RateLimited("GitHub API rate limit exceeded; resets in 5m 0s")

    monkeypatch.setattr(menu, "generate_all", fail)

    menu.dispatch("8")

    text = output.getvalue()
    assert "rate limit exceeded" in text
    assert "Wait for the quota to reset" in text


def test_dispatch_reports_missing_token(menu, answers, output, settings):
    settings.github_token = None
    menu.config = GazetteConfig(repos=[Repository.from_full_name("acme/backend")])
    answers.append("1")

    menu.dispatch("7")

    assert "GITHUB_TOKEN is not configured" in output.getvalue()


def test_run_exits_on_zero(menu, answers, confirms, output):
    menu.credentials.env_path.write_text("GITHUB_TOKEN=ghp\nGEMINI_API_KEY=gem\n", encoding="utf-8")
    confirms.append(False)
    answers.extend(["3", "0"])

    assert menu.run() == 0
    assert "Goodbye!" in output.getvalue()
