"""
Barrels - Shared module.

This module contains configuration, logging and the error taxonomy
used across the application.
"""

from shared.config import ErrorPolicy, Settings, get_settings
from shared.logging_config import configure_logging
from shared.errors import (
    ErrorCategory,
    ErrorLogger,
    SeedError,
    SeedErrorRecord,
    ValidationError,
    OrderingError,
    DependencyError,
    OutOfBoundsError,
    StoreError,
    ConfigurationError,
    get_error_logger,
)

__all__ = [
    # Core utilities
    "Settings",
    "get_settings",
    "ErrorPolicy",
    "configure_logging",
    # Error handling
    "ErrorCategory",
    "ErrorLogger",
    "get_error_logger",
    "SeedError",
    "SeedErrorRecord",
    "ValidationError",
    "OrderingError",
    "OutOfBoundsError",
    "DependencyError",
    "StoreError",
    "ConfigurationError",
]
