"""
Custom exceptions for the sales ETL pipeline with structured error context.

Each exception carries a context dict for debugging and is logged through
``to_dict()`` so the log line keeps the source URL, period and nation that
were being processed.

Exception Hierarchy:
    ETLException (base)
    ├── ExtractionError
    │   ├── FetchError
    │   │   ├── NetworkError (retryable)
    │   │   └── SourceRejectedError (non-retryable)
    │   └── MarkupParseError
    ├── EmptyResultWarning
    ├── TransformationError
    │   ├── ValidationError
    │   └── ScoringError
    ├── LoadError
    │   ├── PersistenceError
    │   └── InvalidBatchError
    ├── EtlAlreadyRunningError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime


class ETLException(Exception):
    """
    Base exception for all ETL-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (url, period, nation, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(ETLException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)

    The retry budget itself belongs to the caller (DanawaExtractor settings).
    """
    pass


class NonRetryableError(ETLException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - The source refusing the client (HTTP 403)
    - Resource not found (HTTP 404)
    - A batch that violates the snapshot contract
    """
    pass


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for data extraction failures."""
    pass


class FetchError(ExtractionError):
    """
    Network or HTTP failure reaching the listing site.

    Aborts the whole run. Context should include:
        - url: The listing URL that failed
        - status_code: HTTP status code (if applicable)
        - retry_count: Number of attempts made
    """
    pass


class NetworkError(RetryableError, FetchError):
    """Timeouts, transport errors and 5xx/429 responses; retried with backoff."""
    pass


class SourceRejectedError(NonRetryableError, FetchError):
    """4xx responses other than 429; the request will not succeed on retry."""
    pass


class MarkupParseError(ExtractionError):
    """The fetched page could not be turned into a document at all."""
    pass


class EmptyResultWarning(ETLException):
    """
    A successful fetch produced zero parsable rows.

    Not an error: the orchestrator logs it and moves on to the next nation.
    Context should include year, month, nation and url.
    """
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ETLException):
    """Base exception for data transformation failures."""
    pass


class ValidationError(TransformationError):
    """
    Raised when input fails validation, for example malformed stats query
    parameters. The API turns it into a 400 response.

    Context should include:
        - field: Name of the field that failed validation
        - value: Value that failed validation
    """
    pass


class ScoringError(TransformationError):
    """Metric columns of one batch could not be scored together."""
    pass


# ============================================================================
# Load Errors
# ============================================================================

class LoadError(ETLException):
    """Base exception for data loading failures."""
    pass


class PersistenceError(LoadError):
    """
    The delete+insert transaction for a snapshot failed and was rolled back.

    Context should include:
        - operation: REPLACE
        - table_name: car_sales
        - year, month, nation: the snapshot key
        - records: number of records in the batch
    """
    pass


class InvalidBatchError(NonRetryableError, LoadError):
    """A batch handed to the snapshot store mixes several (year, month, nation) keys."""
    pass


# ============================================================================
# Orchestration Errors
# ============================================================================

class EtlAlreadyRunningError(ETLException):
    """A run was requested while another one is still in flight."""
    pass
