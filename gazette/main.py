"""Command line entry point for Gazette."""

import sys
from pathlib import Path

import click

from gazette import __version__
from gazette.cli.menu import GazetteMenu
from gazette.exceptions import ConfigError
from gazette.models.config import load_settings
from gazette.utils.config_store import ConfigStore
from gazette.utils.credential_store import CredentialStore
from gazette.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.command()
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=".env",
    show_default=True,
    help="Credentials file.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default="config.json",
    show_default=True,
    help="Subscription config file.",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Directory for generated changelogs.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL.",
)
@click.version_option(version=__version__, prog_name="gazette")
def cli(env_file: Path, config_path: Path, output_dir: Path, log_level: str):
    """Generate AI changelogs from recently merged GitHub pull requests."""
    try:
        settings = load_settings(env_file)
        logs_dir = settings.logs_dir
        log_level = log_level or settings.log_level
    except ConfigError as e:
        # The menu offers to reset a broken .env; log with defaults until then
        logs_dir = Path("logs")
        click.echo(f"Warning: {e}", err=True)

    setup_logging(log_level=log_level, logs_dir=logs_dir)
    logger.info(f"Starting Gazette {__version__}")

    menu = GazetteMenu(
        config_store=ConfigStore(config_path),
        credentials=CredentialStore(env_file),
        output_dir=output_dir,
    )
    exit_code = menu.run()
    logger.info("Gazette stopped")
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
