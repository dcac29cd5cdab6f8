"""Logging setup for the ingestion components.

Every module logs through get_ingest_logger(__name__), which hands out Prefect
loggers so that normalization and correlation work triggered from a Prefect
flow reports into the flow's handlers. Configuration is a logging dictConfig,
read from YAML when a path is configured.

Environment variables:
    INGEST_CORE_LOGGING_CONFIG: Path to a YAML dictConfig file
    PREFECT_LOGGING_SETTINGS_PATH: Fallback path, shared with Prefect
    INGEST_CORE_LOG_LEVEL: Level of the ``ingest_core`` logger in the built-in config
    PREFECT_LOGGING_LEVEL: Exported from the config's ``prefect`` logger when unset
"""

import logging.config
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from prefect.logging import get_logger

# Component loggers adjusted by setup_logging(level=...)
DEFAULT_LOG_LEVELS = {
    "ingest_core": "INFO",
    "ingest_core.otlp": "INFO",
    "ingest_core.error_tracking": "INFO",
    "ingest_core.correlation": "INFO",
}

CONFIG_PATH_ENV_VARS = ("INGEST_CORE_LOGGING_CONFIG", "PREFECT_LOGGING_SETTINGS_PATH")

_CONSOLE_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)-7s | %(name)s - %(message)s"
_DETAILED_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d - %(message)s"


def _config_path_from_env() -> Optional[Path]:
    for name in CONFIG_PATH_ENV_VARS:
        if value := os.environ.get(name):
            return Path(value)
    return None


def _builtin_config() -> Dict[str, Any]:
    """dictConfig used when no YAML file is available.

    Ingestion loggers write to stdout and do not propagate; everything else
    goes through the root logger at WARNING.
    """
    console = {"class": "logging.StreamHandler", "formatter": "console", "stream": "ext://sys.stdout"}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": _CONSOLE_FORMAT, "datefmt": "%H:%M:%S"},
            "detailed": {"format": _DETAILED_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": {"console": console},
        "loggers": {
            "ingest_core": {
                "level": os.environ.get("INGEST_CORE_LOG_LEVEL", DEFAULT_LOG_LEVELS["ingest_core"]),
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
    }


class LoggingConfig:
    """A logging dictConfig loaded from YAML or built in.

    The path is, in order: the ``config_path`` argument, then
    INGEST_CORE_LOGGING_CONFIG, then PREFECT_LOGGING_SETTINGS_PATH. A path that
    does not exist falls back to the built-in config. The loaded dict is kept,
    so edits to the file after the first load_config() are not seen.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or _config_path_from_env()
        self._config: Optional[Dict[str, Any]] = None

    def load_config(self) -> Dict[str, Any]:
        if self._config is not None:
            return self._config

        if self.config_path is not None and self.config_path.exists():
            self._config = yaml.safe_load(self.config_path.read_text()) or {}
        else:
            self._config = _builtin_config()
        return self._config

    def apply(self):
        """Install the config with logging.config.dictConfig.

        A ``prefect`` logger entry also exports its level as
        PREFECT_LOGGING_LEVEL unless that variable is already set.
        """
        config = self.load_config()
        logging.config.dictConfig(config)

        prefect_logger = config.get("loggers", {}).get("prefect")
        if prefect_logger is not None:
            os.environ.setdefault("PREFECT_LOGGING_LEVEL", prefect_logger.get("level", "INFO"))


_logging_config: Optional[LoggingConfig] = None


def setup_logging(config_path: Optional[Path] = None, level: Optional[str] = None):
    """Configure logging for all ingestion components.

    Args:
        config_path: YAML dictConfig to load instead of the environment lookup.
        level: Level forced onto every component logger and exported to Prefect.
    """
    global _logging_config

    _logging_config = LoggingConfig(config_path)
    _logging_config.apply()

    if not level:
        return

    for name in DEFAULT_LOG_LEVELS:
        get_logger(name).setLevel(level)
    os.environ["PREFECT_LOGGING_LEVEL"] = level


def get_ingest_logger(name: str):
    """Return the Prefect logger for a component, configuring logging on first use."""
    if _logging_config is None:
        setup_logging()
    return get_logger(name)
