"""Logging for the ingestion components.

Modules obtain their logger with ``get_ingest_logger(__name__)`` and never call
``logging.getLogger`` themselves, so the YAML or built-in configuration is
installed before the first message.

Example:
    >>> from ingest_core.logging import get_ingest_logger
    >>> logger = get_ingest_logger(__name__)
    >>> logger.info(f"Normalized {12} log records")
"""

from .logging_config import LoggingConfig, get_ingest_logger, setup_logging

__all__ = [
    "LoggingConfig",
    "get_ingest_logger",
    "setup_logging",
]
