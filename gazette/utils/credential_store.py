"""Credential storage backed by a local ``.env`` file."""

import os
from pathlib import Path
from typing import Callable, Dict, MutableMapping, Optional, Union

from dotenv import dotenv_values, set_key, unset_key

from gazette.exceptions import ConfigError
from gazette.utils.logger import get_logger

logger = get_logger(__name__)

GITHUB_TOKEN = "GITHUB_TOKEN"
JIRA_BASE_URL = "JIRA_BASE_URL"
JIRA_LEGACY_URL = "JIRA_URL"
JIRA_EMAIL = "JIRA_EMAIL"
JIRA_API_TOKEN = "JIRA_API_TOKEN"


class CredentialStore:
    """Plaintext ``KEY=value`` credential storage."""

    def __init__(self, env_path: Union[str, Path] = ".env", environ: Optional[MutableMapping[str, str]] = None):
        """
        Initialize credential storage.

        Args:
            env_path: Path to the ``.env`` file
            environ: Process environment to read and update (defaults to ``os.environ``)
        """
        self.env_path = Path(env_path)
        self.environ = os.environ if environ is None else environ

    def load(self) -> Dict[str, str]:
        """
        Load every credential stored in the file.

        Returns:
            Mapping of key to value; empty if the file does not exist

        Raises:
            ConfigError: If the file exists but cannot be read
        """
        if not self.env_path.exists():
            return {}
        try:
            values = dotenv_values(self.env_path, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Could not read credentials from {self.env_path}: {e}") from e
        return {key: value for key, value in values.items() if value is not None}

    def get(self, key: str) -> Optional[str]:
        """Return a credential, preferring the process environment over the file."""
        value = self.environ.get(key)
        if value and value.strip():
            return value.strip()
        value = self.load().get(key)
        if value and value.strip():
            return value.strip()
        return None

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def save(self, key: str, value: str) -> None:
        """
        Save one credential, replacing any existing line for ``key``.

        The value is also exported to the running process.

        Raises:
            ConfigError: If the file cannot be written
        """
        value = value.strip()
        if not value:
            raise ConfigError(f"{key} cannot be empty")
        try:
            self.env_path.parent.mkdir(parents=True, exist_ok=True)
            self.env_path.touch(exist_ok=True)
            set_key(str(self.env_path), key, value, quote_mode="never", encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Could not write {key} to {self.env_path}: {e}") from e

        self.environ[key] = value
        logger.info(f"Saved credential {key} to {self.env_path}")

    def delete(self, key: str) -> None:
        """Remove a credential from the file and the process environment."""
        self.environ.pop(key, None)
        if key not in self.load():
            logger.debug(f"No credential {key} to delete")
            return
        try:
            unset_key(str(self.env_path), key, encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Could not remove {key} from {self.env_path}: {e}") from e
        logger.info(f"Deleted credential {key}")

    def ensure(self, key: str, prompt_fn: Callable[[str], str]) -> str:
        """
        Return ``key``, asking the user for it (and saving it) when absent.

        Args:
            key: Credential name
            prompt_fn: Called with ``key``; returns the value typed by the user
        """
        value = self.get(key)
        if value:
            return value
        logger.info(f"Credential {key} missing, prompting user")
        value = prompt_fn(key)
        self.save(key, value)
        return value.strip()

    def jira_base_url(self) -> Optional[str]:
        return self.get(JIRA_BASE_URL) or self.get(JIRA_LEGACY_URL)

    def has_jira_credentials(self) -> bool:
        return bool(self.jira_base_url() and self.has(JIRA_EMAIL) and self.has(JIRA_API_TOKEN))

    def save_jira_credentials(self, base_url: str, email: str, api_token: str) -> None:
        self.save(JIRA_BASE_URL, base_url.rstrip("/"))
        self.save(JIRA_EMAIL, email)
        self.save(JIRA_API_TOKEN, api_token)

    def delete_jira_credentials(self) -> None:
        for key in (JIRA_BASE_URL, JIRA_LEGACY_URL, JIRA_EMAIL, JIRA_API_TOKEN):
            self.delete(key)

    def reset(self) -> Optional[Path]:
        """Move an unreadable file aside to ``<name>.bak``; returns the backup path."""
        if not self.env_path.exists():
            return None
        backup = self.env_path.with_name(self.env_path.name + ".bak")
        try:
            self.env_path.replace(backup)
        except OSError as e:
            raise ConfigError(f"Could not move {self.env_path} aside: {e}") from e
        logger.warning(f"Moved unreadable credentials file to {backup}")
        return backup
