"""File-based storage for ``config.json``."""

import json
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from gazette.exceptions import ConfigError
from gazette.models.subscription import GazetteConfig, Repository
from gazette.utils.logger import get_logger

logger = get_logger(__name__)

CONFIG_FILE = "config.json"
LEGACY_REPOS_FILE = "repos.json"


class ConfigStore:
    """Loads and saves the subscription configuration."""

    def __init__(self, config_path: Union[str, Path] = CONFIG_FILE, legacy_path: Optional[Union[str, Path]] = None):
        """
        Initialize config storage.

        Args:
            config_path: Path to ``config.json``
            legacy_path: Path to an old ``repos.json``; defaults to a sibling of ``config_path``
        """
        self.config_path = Path(config_path)
        self.legacy_path = Path(legacy_path) if legacy_path else self.config_path.with_name(LEGACY_REPOS_FILE)

    def load(self) -> GazetteConfig:
        """
        Load the configuration, migrating ``repos.json`` when needed.

        Returns:
            The stored configuration, or defaults if no file exists

        Raises:
            ConfigError: If the file cannot be read or is malformed
        """
        if not self.config_path.exists() and self.legacy_path.exists():
            return self._migrate_legacy()

        if not self.config_path.exists():
            logger.debug(f"No config at {self.config_path}, using defaults")
            return GazetteConfig()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return GazetteConfig.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ConfigError(f"Failed to parse {self.config_path}: {e}") from e

    def save(self, config: GazetteConfig) -> None:
        """
        Write the configuration to disk.

        Raises:
            ConfigError: If the file cannot be written
        """
        tmp_path = self.config_path.with_name(self.config_path.name + ".tmp")
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(config.model_dump(mode="json", exclude_none=True), f, indent=2)
                f.write("\n")
            tmp_path.replace(self.config_path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise ConfigError(f"Failed to write {self.config_path}: {e}") from e
        logger.info(f"Saved config with {len(config.repos)} repos to {self.config_path}")

    def reset(self) -> Optional[Path]:
        """Move a broken config aside to ``config.json.bak``; returns the backup path."""
        if not self.config_path.exists():
            return None
        backup = self.config_path.with_name(self.config_path.name + ".bak")
        try:
            self.config_path.replace(backup)
        except OSError as e:
            raise ConfigError(f"Could not move {self.config_path} aside: {e}") from e
        logger.warning(f"Moved unreadable config to {backup}")
        return backup

    def _migrate_legacy(self) -> GazetteConfig:
        """Convert a bare list of repositories into a full config file."""
        try:
            with open(self.legacy_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            repos = [Repository.model_validate(item) for item in data]
        except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
            raise ConfigError(f"Failed to parse {self.legacy_path}: {e}") from e

        config = GazetteConfig(repos=repos)
        self.save(config)
        try:
            self.legacy_path.unlink()
        except OSError as e:
            logger.warning(f"Could not remove {self.legacy_path} after migration: {e}")
        logger.info(f"Migrated {self.legacy_path} to {self.config_path}")
        return config
