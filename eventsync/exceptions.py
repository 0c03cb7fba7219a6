"""
Custom exception classes for the event sync service.

This module provides specific exception types for the failure modes of the
remote store and the configuration layer, so callers can decide on recovery
by classification instead of by comparing error objects.
"""

from enum import Enum
from typing import Any


class EventSyncException(Exception):
    """Base exception for all event sync errors.

    All custom exceptions should inherit from this class to enable
    catching all application-specific errors while preserving exception
    hierarchy.
    """
    pass


class RepositoryErrorKind(Enum):
    """Classification of a failed remote write."""

    # Rejected before any state change; safe to retry with the same amount.
    RATE_LIMITED = "rate_limited"
    # Accepted remotely but the acknowledgment was lost; the write may or may
    # not have been applied and retrying can over-count.
    AMBIGUOUS_WRITE = "ambiguous_write"
    # Never reached the remote store; safe to retry with the same amount.
    REQUEST_FAILED = "request_failed"

    @property
    def retry_safe(self) -> bool:
        return self is not RepositoryErrorKind.AMBIGUOUS_WRITE


class RepositoryError(EventSyncException):
    """Exception raised when the remote store rejects or loses a write.

    Attributes:
        kind: Classification of the failure (RepositoryErrorKind)
        category: Event category the write was for
        amount: Amount the write tried to add
        original_error: The underlying exception that caused this error
    """

    def __init__(self, message: str, kind: RepositoryErrorKind, category: str = None,
                 amount: int = None, original_error: Exception = None):
        """Initialize RepositoryError.

        Args:
            message: Human-readable error message
            kind: Failure classification
            category: Event category (optional)
            amount: Attempted amount (optional)
            original_error: Underlying exception (optional)
        """
        super().__init__(message)
        self.kind = RepositoryErrorKind(kind)
        self.category = category
        self.amount = amount
        self.original_error = original_error

    @property
    def retry_safe(self) -> bool:
        """True when reissuing the same amount cannot double-count."""
        return self.kind.retry_safe


class UnknownCategoryError(EventSyncException, KeyError):
    """Exception raised for an event category outside the known set.

    Attributes:
        category: The rejected category
    """

    def __init__(self, category: Any):
        super().__init__(f"Unknown event category: {category!r}")
        self.category = category

    def __str__(self) -> str:
        return self.args[0]


class ConfigurationError(EventSyncException):
    """Exception raised for invalid configuration values.

    Attributes:
        setting_name: Name of the setting that is invalid
        setting_value: The invalid value
        expected: Description of expected value
    """

    def __init__(self, message: str, setting_name: str = None, setting_value: Any = None,
                 expected: str = None):
        """Initialize ConfigurationError.

        Args:
            message: Human-readable error message
            setting_name: Name of invalid setting (optional)
            setting_value: Invalid value (optional)
            expected: Expected value description (optional)
        """
        super().__init__(message)
        self.setting_name = setting_name
        self.setting_value = setting_value
        self.expected = expected
