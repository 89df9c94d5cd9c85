"""
Centralized logging service.
"""

import logging
import sys
from pathlib import Path
from typing import Optional


class LoggingService:
    """Service for configuring logging."""

    DEFAULT_FORMAT = '[%(asctime)s - %(levelname)s - %(name)s] %(message)s'

    @staticmethod
    def setup_logging(
        log_level: int = logging.INFO,
        log_file: Optional[Path] = None,
        format_string: Optional[str] = None
    ) -> None:
        """
        Setup logging configuration.

        Args:
            log_level: Logging level (default: INFO)
            log_file: Optional log file path
            format_string: Optional custom format string
        """
        if format_string is None:
            format_string = LoggingService.DEFAULT_FORMAT

        formatter = logging.Formatter(format_string, datefmt='%Y-%m-%d %H:%M:%S')

        # Diagnostics go to stderr so converted documents can be piped from stdout
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        root_logger.addHandler(console_handler)

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        logging.debug(f"Logging configured (level: {logging.getLevelName(log_level)})")

    @staticmethod
    def parse_level(name: Optional[str], default: int = logging.INFO) -> int:
        """
        Resolve a level name such as "debug" or "WARNING".

        Args:
            name: Level name (case-insensitive) or None
            default: Level used for None or unknown names

        Returns:
            Numeric logging level
        """
        if not name:
            return default
        level = logging.getLevelName(name.upper())
        return level if isinstance(level, int) else default
