"""
Error handling utilities for the Ride Duel backend.

This module provides the exception hierarchy used across the aggregation
pipeline, plus a decorator for consistent error logging.
"""

import functools
import traceback
from typing import Any, Callable, Optional
from enum import Enum

from .logging_config import get_logger

logger = get_logger(__name__)


class ErrorSeverity(Enum):
    """Error severity levels for categorizing exceptions."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RideDuelError(Exception):
    """Base exception class for all application-specific errors."""

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        error_code: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        """
        Initialize the error.

        Args:
            message: Human-readable error message
            severity: Error severity level
            error_code: Optional error code for categorization
            original_error: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.error_code = error_code
        self.original_error = original_error

    def __str__(self) -> str:
        parts = [f"[{self.severity.value.upper()}]"]

        if self.error_code:
            parts.append(f"({self.error_code})")

        parts.append(self.message)

        if self.original_error:
            parts.append(f"Caused by: {str(self.original_error)}")

        return " ".join(parts)


class ConfigurationError(RideDuelError):
    """Raised when there are configuration-related issues."""

    def __init__(self, message: str, config_field: Optional[str] = None):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            error_code="CONFIG_ERROR"
        )
        self.config_field = config_field


class DatabaseError(RideDuelError):
    """Raised when credential store operations fail."""

    def __init__(self, message: str, operation: Optional[str] = None, original_error: Optional[Exception] = None):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            error_code="DB_ERROR",
            original_error=original_error
        )
        self.operation = operation


class APIError(RideDuelError):
    """Raised when Strava API operations fail."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        endpoint: Optional[str] = None,
        original_error: Optional[Exception] = None,
        error_code: str = "API_ERROR"
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            error_code=error_code,
            original_error=original_error
        )
        self.status_code = status_code
        self.endpoint = endpoint


class RateLimitError(APIError):
    """Raised when Strava rate limits are exceeded."""

    def __init__(self, message: str = "API rate limit exceeded", retry_after: Optional[int] = None):
        super().__init__(
            message,
            status_code=429,
            error_code="RATE_LIMIT"
        )
        self.retry_after = retry_after


class AuthenticationError(APIError):
    """Raised when Strava rejects our credentials."""

    def __init__(self, message: str = "Authentication failed", status_code: int = 401):
        super().__init__(
            message,
            status_code=status_code,
            error_code="AUTH_ERROR"
        )


class UnexpectedPayloadError(APIError):
    """Raised when a provider response lacks the fields we rely on."""

    def __init__(self, message: str, endpoint: Optional[str] = None):
        super().__init__(
            message,
            endpoint=endpoint,
            error_code="UNEXPECTED_PAYLOAD"
        )


class FetchPageFailedError(APIError):
    """Raised when a single activity page cannot be retrieved."""

    def __init__(self, page: int, original_error: Optional[Exception] = None):
        super().__init__(
            f"Failed to fetch activity page {page}",
            endpoint="/athlete/activities",
            original_error=original_error,
            error_code="FETCH_PAGE_FAILED"
        )
        self.page = page


class RefreshFailedError(RideDuelError):
    """Raised when an access token could not be refreshed."""

    def __init__(self, athlete_id: str, reason: str, original_error: Optional[Exception] = None):
        super().__init__(
            f"Token refresh failed for athlete {athlete_id}: {reason}",
            severity=ErrorSeverity.MEDIUM,
            error_code="REFRESH_FAILED",
            original_error=original_error
        )
        self.athlete_id = athlete_id
        self.reason = reason


class CredentialMissingError(RideDuelError):
    """Raised when a participant has no stored credential record."""

    def __init__(self, athlete_id: Optional[str]):
        super().__init__(
            f"No stored credentials for athlete {athlete_id}",
            severity=ErrorSeverity.LOW,
            error_code="CREDENTIAL_MISSING"
        )
        self.athlete_id = athlete_id


class ValidationError(RideDuelError):
    """Raised when data validation fails."""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[Any] = None):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            error_code="VALIDATION_ERROR"
        )
        self.field = field
        self.value = value


def _log_error(func_name: str, error: Exception) -> None:
    if isinstance(error, RideDuelError):
        if error.severity == ErrorSeverity.CRITICAL:
            logger.critical(f"Critical error in {func_name}: {error}")
        elif error.severity == ErrorSeverity.HIGH:
            logger.error(f"High severity error in {func_name}: {error}")
        elif error.severity == ErrorSeverity.MEDIUM:
            logger.warning(f"Medium severity error in {func_name}: {error}")
        else:
            logger.info(f"Low severity error in {func_name}: {error}")
    else:
        logger.error(f"Unexpected error in {func_name}: {error}")
        logger.debug(f"Traceback: {traceback.format_exc()}")


def handle_errors(
    default_return: Any = None,
    reraise: bool = False,
    log_errors: bool = True,
    error_types: Optional[tuple] = None
):
    """
    Decorator for comprehensive error handling.

    Args:
        default_return: Value to return if an error occurs
        reraise: Whether to reraise the exception after handling
        log_errors: Whether to log errors
        error_types: Tuple of exception types to catch (catches all if None)

    Returns:
        Decorated function with error handling
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if error_types and not isinstance(e, error_types):
                    raise

                if log_errors:
                    _log_error(func.__name__, e)

                if reraise:
                    raise

                return default_return

        return wrapper
    return decorator



def validate_required_fields(data: dict, required_fields: list, context: str = "data") -> None:
    """
    Validate that required fields are present in data.

    Args:
        data: Dictionary to validate
        required_fields: List of required field names
        context: Context description for error messages

    Raises:
        ValidationError: If any required fields are missing
    """
    if not isinstance(data, dict):
        raise ValidationError(f"Expected an object for {context}, got {type(data).__name__}")

    missing_fields = [field for field in required_fields if field not in data or data[field] is None]

    if missing_fields:
        raise ValidationError(
            f"Missing required fields in {context}: {', '.join(missing_fields)}",
            field=missing_fields[0] if len(missing_fields) == 1 else None
        )
