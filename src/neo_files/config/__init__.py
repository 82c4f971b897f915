"""Configuration module for neo-files.

Environment-driven settings (pydantic-settings) and logging setup.
"""

from .settings import UploadSettings, get_upload_settings
from .logging_config import (
    LoggingConfig,
    LogLevel,
    LogVerbosity,
    LogFormat,
    setup_logging,
    get_logger,
)

__all__ = [
    # Settings
    "UploadSettings",
    "get_upload_settings",
    
    # Logging
    "LoggingConfig",
    "LogLevel",
    "LogVerbosity",
    "LogFormat",
    "setup_logging",
    "get_logger",
]
