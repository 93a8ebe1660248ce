"""Interactive terminal menu."""

import asyncio
from pathlib import Path
from typing import Callable, List, Optional, Union

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.table import Table

from gazette.exceptions import AuthError, ConfigError, GazetteError, NoMergedPullRequests, RateLimited
from gazette.models.changelog import GenerationResult
from gazette.models.config import Settings, load_settings
from gazette.models.subscription import AIProvider, GazetteConfig, PeriodType, Repository, TimePeriod
from gazette.services.changelog_service import ChangelogService
from gazette.utils.config_store import ConfigStore
from gazette.utils.credential_store import GITHUB_TOKEN, CredentialStore
from gazette.utils.health import HEALTHY, NOT_CONFIGURED, HealthChecker
from gazette.utils.logger import get_logger

logger = get_logger(__name__)

MENU_OPTIONS = [
    ("1", "Subscribe to a repository"),
    ("2", "Unsubscribe from a repository"),
    ("3", "List subscribed repositories"),
    ("4", "Configure time period"),
    ("5", "Change AI provider"),
    ("6", "Change AI model"),
    ("7", "Generate changelog for one repository"),
    ("8", "Generate changelogs for all repositories"),
    ("9", "Update credentials"),
    ("10", "Check connections"),
    ("0", "Exit"),
]

PERIOD_OPTIONS = [
    ("1", PeriodType.LAST_HOUR),
    ("2", PeriodType.LAST_6_HOURS),
    ("3", PeriodType.LAST_12_HOURS),
    ("4", PeriodType.LAST_24_HOURS),
    ("5", PeriodType.CUSTOM),
]

PROVIDER_OPTIONS = [(str(index), provider) for index, provider in enumerate(AIProvider, start=1)]


class GazetteMenu:
    """Main loop of the interactive CLI."""

    def __init__(
        self,
        config_store: ConfigStore,
        credentials: CredentialStore,
        output_dir: Union[str, Path] = ".",
        console: Optional[Console] = None,
        settings_factory: Optional[Callable[[], Settings]] = None
    ):
        """
        Args:
            config_store: Storage of ``config.json``
            credentials: Storage of the ``.env`` credentials
            output_dir: Where changelog files are written
            console: Rich console used for all output
            settings_factory: Builds fresh settings after credentials change
        """
        self.config_store = config_store
        self.credentials = credentials
        self.output_dir = Path(output_dir)
        self.console = console or Console()
        self.settings_factory = settings_factory or (lambda: load_settings(self.credentials.env_path))
        self.config = GazetteConfig()

    def run(self) -> int:
        """
        Load everything and serve the menu until the user exits.

        Returns:
            Process exit code
        """
        self.console.print("[bold cyan]Gazette[/bold cyan] [dim]AI changelogs from merged pull requests[/dim]\n")
        try:
            if not self.startup():
                return 1
        except (KeyboardInterrupt, EOFError):
            self.console.print("\nGoodbye!")
            return 0

        while True:
            try:
                self.show_menu()
                choice = Prompt.ask("Select an option", choices=[key for key, _ in MENU_OPTIONS], console=self.console)
                if choice == "0":
                    self.console.print("Goodbye!")
                    return 0
                self.dispatch(choice)
            except (KeyboardInterrupt, EOFError):
                self.console.print("\nGoodbye!")
                return 0

    def startup(self) -> bool:
        """
        Load config and credentials, prompting for whatever is missing.

        Returns:
            False if the user declined to repair a broken file
        """
        if not self._load_credentials() or not self._load_config():
            return False

        self.credentials.ensure(GITHUB_TOKEN, self._ask_secret)
        self._ensure_provider_key(self.config.ai_provider)

        if not self.credentials.has_jira_credentials():
            if Confirm.ask("Configure the optional Jira integration for ticket context?", default=False, console=self.console):
                self._ask_jira_credentials()
            else:
                self.console.print("[dim]Jira enrichment disabled. You can add credentials later from the menu.[/dim]")
        return True

    def show_menu(self) -> None:
        model = self.config.get_ai_model()
        self.console.print()
        self.console.print(
            f"[dim]Period: {self.config.time_period} | AI: {self.config.ai_provider.display_name} ({model}) | "
            f"Repositories: {len(self.config.repos)}[/dim]"
        )
        for key, label in MENU_OPTIONS:
            self.console.print(f"  [bold]{key:>2}[/bold]. {label}")

    def dispatch(self, choice: str) -> None:
        """Run one menu action, reporting any error without leaving the menu."""
        actions = {
            "1": self.subscribe,
            "2": self.unsubscribe,
            "3": self.list_repositories,
            "4": self.configure_period,
            "5": self.change_provider,
            "6": self.change_model,
            "7": self.generate_single,
            "8": self.generate_all,
            "9": self.update_credentials,
            "10": self.check_connections,
        }
        action = actions.get(choice)
        if action is None:
            self.console.print(f"[red]Unknown option: {choice}[/red]")
            return
        try:
            action()
        except GazetteError as e:
            logger.warning(f"Menu action {choice} failed: {e}")
            self.report_error(e)
        except (KeyboardInterrupt, EOFError):
            raise
        except Exception as e:
            logger.error(f"Unexpected error in menu action {choice}: {e}", exc_info=True)
            self.console.print(f"[red]Unexpected error: {escape(str(e))}[/red]")

    def report_error(self, error: GazetteError) -> None:
        if isinstance(error, NoMergedPullRequests):
            self.console.print(f"[yellow]{escape(str(error))}[/yellow]")
        elif isinstance(error, RateLimited):
            self.console.print(f"[red]{escape(str(error))}[/red]")
            self.console.print("[dim]Wait for the quota to reset, then try again.[/dim]")
        elif isinstance(error, AuthError):
            self.console.print(f"[red]{escape(str(error))}[/red]")
            self.console.print("[dim]Use 'Update credentials' to fix the token.[/dim]")
        else:
            self.console.print(f"[red]Error: {escape(str(error))}[/red]")

    # Subscriptions

    def subscribe(self) -> None:
        text = Prompt.ask("Repository (owner/name)", console=self.console)
        try:
            repo = Repository.from_full_name(text)
        except ValueError as e:
            self.console.print(f"[red]{escape(str(e))}[/red]")
            return

        updated = self.config.model_copy(deep=True)
        if not updated.subscribe(repo):
            self.console.print(f"[yellow]Already subscribed to {repo}[/yellow]")
            return
        self._save_config(updated)
        self.console.print(f"[green]Subscribed to {repo}[/green]")

    def unsubscribe(self) -> None:
        if not self.config.repos:
            self.console.print("[yellow]No subscribed repositories.[/yellow]")
            return
        self.list_repositories()
        text = Prompt.ask("Repository to remove (owner/name)", console=self.console)
        try:
            repo = Repository.from_full_name(text)
        except ValueError as e:
            self.console.print(f"[red]{escape(str(e))}[/red]")
            return

        updated = self.config.model_copy(deep=True)
        if not updated.unsubscribe(repo):
            self.console.print(f"[yellow]Not subscribed to {repo}; nothing to do.[/yellow]")
            return
        self._save_config(updated)
        self.console.print(f"[green]Unsubscribed from {repo}[/green]")

    def list_repositories(self) -> None:
        if not self.config.repos:
            self.console.print("[yellow]No subscribed repositories.[/yellow]")
            return
        table = Table(title="Subscribed repositories")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Repository", style="cyan")
        for index, repo in enumerate(self.config.repos, start=1):
            table.add_row(str(index), repo.full_name)
        self.console.print(table)

    # Settings

    def configure_period(self) -> None:
        self.console.print(f"Current period: [cyan]{self.config.time_period}[/cyan]")
        for key, period_type in PERIOD_OPTIONS:
            label = "Custom (HH:MM:SS)" if period_type == PeriodType.CUSTOM else str(TimePeriod.preset(period_type))
            self.console.print(f"  [bold]{key}[/bold]. {label}")
        choice = Prompt.ask("Select a period", choices=[key for key, _ in PERIOD_OPTIONS], console=self.console)
        period_type = dict(PERIOD_OPTIONS)[choice]

        if period_type == PeriodType.CUSTOM:
            text = Prompt.ask("Time period (HH:MM:SS)", console=self.console)
            try:
                period = TimePeriod.parse_hms(text)
            except ValueError as e:
                self.console.print(f"[red]{escape(str(e))}[/red]")
                return
        else:
            period = TimePeriod.preset(period_type)

        updated = self.config.model_copy(deep=True)
        updated.time_period = period
        self._save_config(updated)
        self.console.print(f"[green]Time period set to {period}[/green]")

    def change_provider(self) -> None:
        self.console.print(f"Current provider: [cyan]{self.config.ai_provider.display_name}[/cyan]")
        for key, provider in PROVIDER_OPTIONS:
            self.console.print(f"  [bold]{key}[/bold]. {provider.display_name} [dim](default model {provider.default_model})[/dim]")
        choice = Prompt.ask("Select a provider", choices=[key for key, _ in PROVIDER_OPTIONS], console=self.console)
        provider = dict(PROVIDER_OPTIONS)[choice]

        updated = self.config.model_copy(deep=True)
        if provider != updated.ai_provider:
            updated.ai_provider = provider
            updated.ai_model = None
        self._ensure_provider_key(provider)
        self._save_config(updated)
        self.console.print(f"[green]AI provider set to {provider.display_name} ({self.config.get_ai_model()})[/green]")

    def change_model(self) -> None:
        provider = self.config.ai_provider
        self.console.print(f"Current model: [cyan]{self.config.get_ai_model()}[/cyan]")
        text = Prompt.ask(
            f"Model name (leave empty for the default, {provider.default_model})",
            default="",
            show_default=False,
            console=self.console,
        ).strip()
        updated = self.config.model_copy(deep=True)
        updated.ai_model = text or None
        self._save_config(updated)
        self.console.print(f"[green]AI model set to {self.config.get_ai_model()}[/green]")

    # Generation

    def generate_single(self) -> None:
        if not self.config.repos:
            self.console.print("[yellow]No subscribed repositories. Subscribe to one first.[/yellow]")
            return
        self.list_repositories()
        choices = [str(index) for index in range(1, len(self.config.repos) + 1)]
        choice = Prompt.ask("Select a repository", choices=choices, console=self.console)
        repo = self.config.repos[int(choice) - 1]

        with self.console.status(f"Generating changelog for {repo} ({self.config.time_period.description()})..."):
            result = asyncio.run(self._generate([repo]))[0]
        self._print_result(result)

    def generate_all(self) -> None:
        if not self.config.repos:
            self.console.print("[yellow]No subscribed repositories. Subscribe to one first.[/yellow]")
            return
        self.console.print(f"Generating changelogs for {len(self.config.repos)} repositories ({self.config.time_period.description()})")
        results = asyncio.run(self._generate(self.config.repos, on_result=self._print_result))

        succeeded = sum(1 for result in results if result.success)
        style = "green" if succeeded == len(results) else "yellow"
        self.console.print(f"[{style}]{succeeded}/{len(results)} changelogs generated[/{style}]")

    async def _generate(
        self,
        repos: List[Repository],
        on_result: Optional[Callable[[GenerationResult], None]] = None
    ) -> List[GenerationResult]:
        """Run the generation for ``repos``; a single repository propagates its error."""
        service = ChangelogService.from_settings(self.settings_factory(), self.config, output_dir=self.output_dir)
        try:
            if len(repos) == 1 and on_result is None:
                return [await service.generate_for_repo(repos[0], self.config.time_period)]
            return await service.generate_for_all(repos, self.config.time_period, on_result=on_result)
        finally:
            await service.close()

    def _print_result(self, result: GenerationResult) -> None:
        if result.success:
            self.console.print(f"[green]✓[/green] {escape(result.formatted_response)}")
        else:
            self.console.print(f"[red]✗[/red] {escape(result.formatted_response)}")

    # Credentials

    def update_credentials(self) -> None:
        provider = self.config.ai_provider
        options = [("1", "GitHub token")]
        if provider.api_key_env_var:
            options.append(("2", f"{provider.display_name} API key"))
        options.append(("3", "Jira credentials"))
        options.append(("4", "Remove Jira credentials"))
        for key, label in options:
            self.console.print(f"  [bold]{key}[/bold]. {label}")
        choice = Prompt.ask("Select a credential", choices=[key for key, _ in options], console=self.console)

        if choice == "1":
            self.credentials.save(GITHUB_TOKEN, self._ask_secret(GITHUB_TOKEN))
            self.console.print("[green]GitHub token updated[/green]")
        elif choice == "2":
            key = provider.api_key_env_var
            self.credentials.save(key, self._ask_secret(key))
            self.console.print(f"[green]{key} updated[/green]")
        elif choice == "3":
            self._ask_jira_credentials()
        else:
            self.credentials.delete_jira_credentials()
            self.console.print("[green]Jira credentials removed; ticket enrichment disabled[/green]")

    def check_connections(self) -> None:
        checker = HealthChecker(self.settings_factory())
        with self.console.status("Checking connections..."):
            report = asyncio.run(checker.comprehensive_health_check(self.config))

        table = Table(title="Connections")
        table.add_column("Service")
        table.add_column("Status")
        table.add_column("Details")
        labels = {"github": "GitHub", "jira": "Jira", "llm": self.config.ai_provider.display_name}
        for name, check in report["services"].items():
            status = check.get("status")
            style = {HEALTHY: "green", NOT_CONFIGURED: "yellow"}.get(status, "red")
            details = check.get("error") or check.get("user") or check.get("provider") or ""
            if name == "github" and check.get("rate_limit_remaining") is not None:
                details = f"{details} ({check['rate_limit_remaining']} requests left)"
            table.add_row(labels[name], f"[{style}]{status}[/{style}]", str(details))
        self.console.print(table)

    def _ask_secret(self, key: str) -> str:
        while True:
            value = Prompt.ask(f"Enter {key}", password=True, console=self.console).strip()
            if value:
                return value
            self.console.print(f"[red]{key} cannot be empty[/red]")

    def _ensure_provider_key(self, provider: AIProvider) -> None:
        key = provider.api_key_env_var
        if key is None:
            self.console.print(f"[dim]{provider.display_name} needs no API key; make sure the server is running.[/dim]")
            return
        self.credentials.ensure(key, self._ask_secret)

    def _ask_jira_credentials(self) -> None:
        base_url = Prompt.ask("Jira base URL (e.g., https://your-company.atlassian.net)", console=self.console).strip()
        email = Prompt.ask("Jira account email", console=self.console).strip()
        api_token = self._ask_secret("JIRA_API_TOKEN")
        if not base_url.startswith(("http://", "https://")) or not email:
            self.console.print("[red]A full http(s) base URL and an email are required; Jira not configured.[/red]")
            return
        self.credentials.save_jira_credentials(base_url, email, api_token)
        self.console.print("[green]Jira credentials saved[/green]")

    # Loading

    def _save_config(self, updated: GazetteConfig) -> None:
        """Persist ``updated``; the in-memory config only changes once the write succeeded."""
        self.config_store.save(updated)
        self.config = updated

    def _load_config(self) -> bool:
        try:
            self.config = self.config_store.load()
            return True
        except ConfigError as e:
            logger.error(f"Config load failed: {e}")
            self.console.print(f"[red]{escape(str(e))}[/red]")
            if not Confirm.ask(f"Reset {self.config_store.config_path}? The broken file is kept as a .bak copy", default=True, console=self.console):
                self.console.print("Fix the file by hand and restart Gazette.")
                return False
            backup = self.config_store.reset()
            if backup:
                self.console.print(f"[dim]Moved broken config to {backup}[/dim]")
            self.config = GazetteConfig()
            self.config_store.save(self.config)
            return True

    def _load_credentials(self) -> bool:
        """Read ``.env`` and validate its values, offering a reset when either fails."""
        try:
            self.credentials.load()
            self.settings_factory()
            return True
        except ConfigError as e:
            logger.error(f"Credential load failed: {e}")
            self.console.print(f"[red]{escape(str(e))}[/red]")
            if not Confirm.ask(f"Reset {self.credentials.env_path}? The broken file is kept as a .bak copy", default=True, console=self.console):
                self.console.print("Fix the file by hand and restart Gazette.")
                return False
            backup = self.credentials.reset()
            if backup:
                self.console.print(f"[dim]Moved broken credentials to {backup}[/dim]")

        # Invalid values may also come from the process environment
        try:
            self.settings_factory()
        except ConfigError as e:
            logger.error(f"Settings still invalid after reset: {e}")
            self.console.print(f"[red]{escape(str(e))}[/red]")
            self.console.print("Fix the environment variable and restart Gazette.")
            return False
        return True
