"""
Core module - Configuration, constants, exceptions, and logging

Provides:
- Settings/Config management
- Custom exceptions
- Logging
"""

from explain_doctor.core.config import Settings, get_settings, configure, reset_settings
from explain_doctor.core.constants import *
from explain_doctor.core.exceptions import *
from explain_doctor.core.logger import (
    get_logger,
    setup_logging,
    shutdown_logging,
    log_exception,
    LogContext,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "configure",
    "reset_settings",
    # Logging
    "get_logger",
    "setup_logging",
    "shutdown_logging",
    "log_exception",
    "LogContext",
]
