"""
Unified Error Handling System for fixture seeding.

This module provides the error taxonomy raised by the seeding engine,
a Pydantic record format used in run reports, and centralized error
logging with structured context.

Usage:
    from shared.errors import OrderingError, get_error_logger

    try:
        ...
    except SeedError as exc:
        log_ref = get_error_logger().log_error(exc)
"""

import logging
import uuid
from datetime import datetime, UTC
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """Categories of errors for proper handling and logging.

    DATA ERRORS (fixture authoring or caller bugs):
    - VALIDATION_ERROR: Missing/empty collection or malformed fixture values
    - ORDERING_ERROR: Target model not seeded yet in this run
    - OUT_OF_BOUNDS_ERROR: Position exceeds the target collection
    - DEPENDENCY_ERROR: Target model failed or was skipped earlier in the run

    SYSTEM ERRORS:
    - STORE_ERROR: Failure reported by the backing store
    - CONFIGURATION_ERROR: Missing or invalid configuration
    - UNEXPECTED_ERROR: Unknown/unhandled exceptions
    """
    # Data errors
    VALIDATION_ERROR = "validation_error"
    ORDERING_ERROR = "ordering_error"
    OUT_OF_BOUNDS_ERROR = "out_of_bounds_error"
    DEPENDENCY_ERROR = "dependency_error"

    # System errors
    STORE_ERROR = "store_error"
    CONFIGURATION_ERROR = "configuration_error"
    UNEXPECTED_ERROR = "unexpected_error"


class SeedErrorRecord(BaseModel):
    """Serializable view of a seeding error, as kept in run reports."""
    error_category: ErrorCategory = Field(description="Error category for classification")
    error_type: str = Field(description="Exception class name")
    message: str = Field(description="Human readable message")
    model: str | None = Field(default=None, description="Model being processed")
    position: int | None = Field(default=None, description="1-based fixture position")
    alias: str | None = Field(default=None, description="Association alias")
    log_ref: str | None = Field(default=None, description="Reference ID for log correlation")
    context: dict[str, Any] | None = Field(default=None, description="Additional context for debugging")


class SeedError(Exception):
    """Base class for every error raised while seeding.

    Carries enough context (model, position, alias) to locate the
    offending fixture without re-running.
    """

    category: ErrorCategory = ErrorCategory.UNEXPECTED_ERROR

    def __init__(
        self,
        message: str,
        *,
        model: str | None = None,
        position: int | None = None,
        alias: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.model = model
        self.position = position
        self.alias = alias
        self.context = context or {}

    def with_context(
        self,
        *,
        model: str | None = None,
        position: int | None = None,
        alias: str | None = None,
    ) -> "SeedError":
        """Fill in location fields that are still unknown and return self."""
        self.model = self.model or model
        self.position = self.position if self.position is not None else position
        self.alias = self.alias or alias
        return self

    def location(self) -> str:
        parts = []
        if self.model:
            parts.append(f"model={self.model}")
        if self.position is not None:
            parts.append(f"position={self.position}")
        if self.alias:
            parts.append(f"alias={self.alias}")
        return ", ".join(parts)

    def __str__(self) -> str:
        location = self.location()
        return f"{self.message} ({location})" if location else self.message

    def to_record(self, log_ref: str | None = None) -> SeedErrorRecord:
        return SeedErrorRecord(
            error_category=self.category,
            error_type=type(self).__name__,
            message=self.message,
            model=self.model,
            position=self.position,
            alias=self.alias,
            log_ref=log_ref,
            context=self.context or None,
        )


class ValidationError(SeedError):
    """A fixture collection is missing, empty or structurally invalid."""

    category = ErrorCategory.VALIDATION_ERROR


class OrderingError(SeedError):
    """A reference targets a model whose identity map does not exist yet.

    Always means the caller supplied a model order in which a dependency
    comes after its dependent.
    """

    category = ErrorCategory.ORDERING_ERROR


class OutOfBoundsError(OrderingError):
    """A positional reference exceeds the target collection length."""

    category = ErrorCategory.OUT_OF_BOUNDS_ERROR


class DependencyError(SeedError):
    """A reference targets a model that failed or was skipped in this run.

    Unlike OrderingError the caller's order was correct; the dependent
    model is failed under the error policy.
    """

    category = ErrorCategory.DEPENDENCY_ERROR


class StoreError(SeedError):
    """Any failure reported by the store capability."""

    category = ErrorCategory.STORE_ERROR


class ConfigurationError(SeedError):
    """Missing or invalid seeding configuration."""

    category = ErrorCategory.CONFIGURATION_ERROR


class ErrorLogger:
    """Centralized error logging with structured context.

    Every logged error gets a log_ref so that a report entry can be
    matched with its stack trace in the logs.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.ErrorLogger")

    def _generate_log_ref(self) -> str:
        """Generate unique reference ID for error correlation."""
        return f"err_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"

    def log_error(
        self,
        error: Exception,
        category: ErrorCategory | None = None,
        *,
        context: dict[str, Any] | None = None,
        exc_info: bool = True,
    ) -> str:
        """Log error with full structured context.

        Args:
            error: The exception that occurred
            category: Error category (derived from SeedError when omitted)
            context: Additional context data
            exc_info: Whether to include stack trace

        Returns:
            log_ref: Unique reference ID for this error instance
        """
        log_ref = self._generate_log_ref()

        if category is None:
            category = (
                error.category
                if isinstance(error, SeedError)
                else ErrorCategory.UNEXPECTED_ERROR
            )

        log_data: dict[str, Any] = {
            "log_ref": log_ref,
            "error_category": category.value,
        }
        if isinstance(error, SeedError):
            log_data["model"] = error.model
            log_data["position"] = error.position
            log_data["alias"] = error.alias
            context = {**error.context, **(context or {})}
        if context:
            log_data["context"] = context

        # Store/unexpected failures are system problems, the rest are data problems
        if category in (ErrorCategory.STORE_ERROR, ErrorCategory.UNEXPECTED_ERROR):
            self.logger.error(
                f"[{log_ref}] {category.value}: {error}",
                extra=log_data,
                exc_info=exc_info,
            )
        else:
            self.logger.warning(
                f"[{log_ref}] {category.value}: {error}",
                extra=log_data,
                exc_info=exc_info,
            )

        return log_ref


# Global error logger instance
_error_logger = ErrorLogger()


def get_error_logger() -> ErrorLogger:
    """Get the global error logger instance."""
    return _error_logger
