"""
Services for configuration and logging.
"""

from .config_service import AppConfig, ConfigService
from .logging_service import LoggingService

__all__ = ["AppConfig", "ConfigService", "LoggingService"]
