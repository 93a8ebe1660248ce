"""Utility modules for Gazette."""

from .logger import setup_logging, get_logger, get_structured_logger
from .config_store import ConfigStore
from .credential_store import CredentialStore

__all__ = ["setup_logging", "get_logger", "get_structured_logger", "ConfigStore", "CredentialStore"]
