"""accelbatch core -- errors, logging and configuration shared by the engine.

Architecture::

    errors.py          Structured error hierarchy (AccelError, AggregateFailure)
    logging.py         Structured logging (structlog)
    config/            BatchSettings (pydantic-settings) + cached get_settings()
"""

from accelbatch.core.errors import (
    AccelError,
    AggregateFailure,
    BatchCancelledError,
    ConfigError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    PageFetchError,
    categorize_error,
    is_retryable,
)
from accelbatch.core.logging import (
    LogContext,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
)

__all__ = [
    "AccelError",
    "AggregateFailure",
    "BatchCancelledError",
    "ConfigError",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorContext",
    "InvalidConfigError",
    "PageFetchError",
    "categorize_error",
    "is_retryable",
    "LogContext",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
]
