"""
CATTO Custom Exceptions

This module defines all custom exceptions used throughout the CATTO system.
Exceptions are organized by layer/responsibility.

Evidence invalidation is not an error: it is reported as a verification note.
"""

from typing import Any


class CATTOError(Exception):
    """Base exception for all CATTO errors."""

    # Hard failures surface to the user as a resubmission prompt
    retryable: bool = True

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(CATTOError):
    """Error in system configuration."""

    retryable = False


class MissingAPIKeyError(ConfigurationError):
    """Required API key is missing."""

    def __init__(self, key_name: str):
        super().__init__(f"Missing required API key: {key_name}", {"key_name": key_name})


# =============================================================================
# PARSING ERRORS
# =============================================================================


class ResponseParseError(CATTOError):
    """Model output contained no recoverable JSON object."""

    def __init__(self, message: str, excerpt: str | None = None):
        super().__init__(message, {"excerpt": excerpt} if excerpt else None)
        self.excerpt = excerpt


class QueryConstructionError(ResponseParseError):
    """Model output proposed no usable search blocks."""

    pass


# =============================================================================
# RETRIEVAL ERRORS
# =============================================================================


class RetrievalError(CATTOError):
    """Base error for retrieval operations."""

    pass


class SourceUnavailableError(RetrievalError):
    """The citation database could not serve a required request."""

    def __init__(self, message: str, source: str = "pubmed", status_code: int | None = None):
        super().__init__(message, {"source": source, "status_code": status_code})
        self.source = source
        self.status_code = status_code


# =============================================================================
# LLM ERRORS
# =============================================================================


class LLMError(CATTOError):
    """Base error for LLM operations."""

    pass


class LLMProviderError(LLMError):
    """Error from LLM provider."""

    def __init__(
        self, message: str, provider: str, status_code: int | None = None, retryable: bool = True
    ):
        super().__init__(
            message, {"provider": provider, "status_code": status_code, "retryable": retryable}
        )
        self.provider = provider
        self.retryable = retryable


class LLMRateLimitError(LLMProviderError):
    """Rate limit exceeded."""

    def __init__(self, provider: str, retry_after: float | None = None):
        super().__init__(f"Rate limit exceeded for {provider}", provider=provider, retryable=True)
        self.retry_after = retry_after


# =============================================================================
# ORCHESTRATION ERRORS
# =============================================================================


class OrchestrationError(CATTOError):
    """Base error for workflow orchestration."""

    pass
