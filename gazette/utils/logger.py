"""Logging configuration and utilities."""

import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

DEFAULT_LOGGING_CONFIG = Path(__file__).resolve().parent.parent / "config" / "logging.yaml"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    config_path: Optional[Union[str, Path]] = None,
    log_level: Optional[str] = None,
    logs_dir: Union[str, Path] = "logs"
) -> None:
    """
    Setup logging configuration.

    File handlers in the YAML config are redirected into ``logs_dir``.

    Args:
        config_path: Path to logging configuration file
        log_level: Override log level
        logs_dir: Directory for log files
    """
    logs_dir = Path(logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    config_path = Path(config_path) if config_path else DEFAULT_LOGGING_CONFIG

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)

            for handler in config.get("handlers", {}).values():
                if "filename" in handler:
                    handler["filename"] = str(logs_dir / Path(handler["filename"]).name)

            if log_level:
                config["root"]["level"] = log_level.upper()
                for logger_name in config.get("loggers", {}):
                    config["loggers"][logger_name]["level"] = log_level.upper()

            logging.config.dictConfig(config)
            return
        except Exception as e:
            _basic_config(log_level, logs_dir)
            logging.warning(f"Failed to load logging config from {config_path}: {e}")
            return

    _basic_config(log_level, logs_dir)
    logging.warning(f"Logging config file not found at {config_path}, using basic configuration")


def _basic_config(log_level: Optional[str], logs_dir: Path) -> None:
    """Fallback: everything to the log file, warnings and above to the console."""
    console = logging.StreamHandler()
    console.setLevel(logging.WARNING)
    logging.basicConfig(
        level=getattr(logging, log_level.upper() if log_level else "INFO", logging.INFO),
        format=LOG_FORMAT,
        handlers=[console, logging.FileHandler(logs_dir / "gazette.log", encoding="utf-8")],
        force=True,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger that tags every message with ``key=value`` pairs.

    ``logger.with_context(repo="acme/backend").info("Saved")`` logs
    ``Saved [repo=acme/backend]``. Contexts stack; later keys win.
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, context or {})

    def with_context(self, **kwargs) -> "StructuredLogger":
        return StructuredLogger(self.logger, {**self.extra, **kwargs})

    def process(self, msg, kwargs):
        if not self.extra:
            return msg, kwargs
        tags = " ".join(f"{key}={value}" for key, value in self.extra.items())
        return f"{msg} [{tags}]", kwargs


def get_structured_logger(name: str) -> StructuredLogger:
    """Structured logger for a module, usually called with ``__name__``."""
    return StructuredLogger(get_logger(name))
