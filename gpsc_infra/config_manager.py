"""
Logging configuration for the command-line entry points.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

import colorlog
import structlog

from .logging_config import configure_logging

logger = structlog.get_logger(__name__)

VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
CONSOLE_FORMAT = "%(log_color)s%(levelname)s:%(name)s:%(message)s"
FILE_FORMAT = "%(asctime)s - %(levelname)s:%(name)s:%(message)s"


@dataclass
class LoggingConfig:
    """Log level, format and destinations, read from ``GPSC_LOG_*``."""

    level: str = field(default_factory=lambda: os.getenv("GPSC_LOG_LEVEL", "WARNING"))
    format: str = field(
        default_factory=lambda: os.getenv("GPSC_LOG_FORMAT", CONSOLE_FORMAT)
    )
    file_output: Optional[str] = field(default_factory=lambda: os.getenv("GPSC_LOG_FILE"))
    json_output: bool = field(
        default_factory=lambda: os.getenv("GPSC_LOG_JSON", "false").lower() == "true"
    )

    def __post_init__(self) -> None:
        normalized = self.level.upper()
        if normalized not in VALID_LEVELS:
            raise ValueError(f"Log level must be one of: {VALID_LEVELS}")
        self.level = normalized

    def get_log_level(self) -> int:
        return int(getattr(logging, self.level))


def setup_logging(config: LoggingConfig) -> None:
    """Replace the root handlers with a colored console handler and an
    optional plain-text file handler, then configure structlog on top."""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(config.get_log_level())

    console = colorlog.StreamHandler()
    console.setFormatter(colorlog.ColoredFormatter(config.format))
    root.addHandler(console)

    if config.file_output:
        to_file = logging.FileHandler(config.file_output)
        to_file.setFormatter(logging.Formatter(FILE_FORMAT))
        root.addHandler(to_file)

    configure_logging(config.level, config.json_output)
    logger.debug(
        f"Logging configured: level={config.level}, file={config.file_output or 'console'}"
    )
