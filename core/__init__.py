"""
Core utilities and configuration for the car sales momentum ETL service.

This package provides foundational components used throughout the pipeline:

Modules:
    config: Application configuration and environment variable management
    database: Async engine and session factory
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration and utilities

Usage:
    from core.config import settings
    from core.database import async_session_maker
    from core.exceptions import FetchError, PersistenceError
    from core.logging import setup_logging

Example:
    # Initialize logging
    setup_logging()

    # Open a database session
    async with async_session_maker() as session:
        # Perform database operations
        pass
"""

__all__ = [
    "settings",
    "async_session_maker",
    "setup_logging",
    # Exceptions
    "ETLException",
    "ExtractionError",
    "FetchError",
    "NetworkError",
    "SourceRejectedError",
    "MarkupParseError",
    "EmptyResultWarning",
    "TransformationError",
    "ValidationError",
    "ScoringError",
    "LoadError",
    "PersistenceError",
    "InvalidBatchError",
    "EtlAlreadyRunningError",
    "RetryableError",
    "NonRetryableError",
]
