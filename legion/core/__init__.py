"""Core module with logging, middleware, and exception handling."""

from legion.core.exceptions import (
    AllProvidersExhausted,
    InvalidRequest,
    LegionException,
    ProviderAttemptFailed,
    setup_exception_handlers,
)
from legion.core.logging import get_logger, setup_logging
from legion.core.middleware import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "AllProvidersExhausted",
    "InvalidRequest",
    "LegionException",
    "ProviderAttemptFailed",
    "RequestContextMiddleware",
    "RequestSizeLimitMiddleware",
    "SecurityHeadersMiddleware",
    "setup_exception_handlers",
]
