"""
Domain exceptions.

Typed exceptions for explicit error handling.
Lower-level SDK errors are classified into these once, at the
infrastructure boundary; callers switch on type, never on message text.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class NutriDecodeError(Exception):
    """
    Base exception for all NutriDecode errors.

    Allows catching every classified error with a single except clause.
    """

    pass


# ═══════════════════════════════════════════════════════════
# STARTUP / INPUT EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ConfigurationError(NutriDecodeError):
    """
    Required configuration value missing.

    Fatal: raised at startup, never retried.

    Example:
        >>> raise ConfigurationError(
        ...     "Missing required environment variables: OPENAI_API_KEY"
        ... )
    """

    pass


class ValidationError(NutriDecodeError):
    """
    Input validation failed.

    Raised when:
    - Image is not a data URI, too large, or of an unsupported type
    - Preference update names unknown fields
    - Request estimate exceeds the whole token budget

    Recoverable by the user; never retried.
    """

    pass


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ServiceErrorKind(str, Enum):
    """Classification of a remote API failure."""

    AUTH = "AUTH"
    TIMEOUT = "TIMEOUT"
    RATE_LIMIT = "RATE_LIMIT"
    NETWORK = "NETWORK"
    UNKNOWN = "UNKNOWN"


_USER_MESSAGES = {
    ServiceErrorKind.AUTH: "Authentication failed. Please check your API key.",
    ServiceErrorKind.TIMEOUT: "Request timed out. Please try again.",
    ServiceErrorKind.RATE_LIMIT: "Too many requests. Please wait a moment and try again.",
    ServiceErrorKind.NETWORK: "Network error. Please check your connection and try again.",
    ServiceErrorKind.UNKNOWN: "The service failed unexpectedly. Please try again later.",
}


class ServiceError(NutriDecodeError):
    """
    Remote API call failed.

    Carries a ServiceErrorKind so retry policies can switch on type.
    Only RATE_LIMIT is retried by the dispatcher; the speech client
    additionally retries TIMEOUT and NETWORK.

    Example:
        >>> raise ServiceError("429 from OpenAI", kind=ServiceErrorKind.RATE_LIMIT)
    """

    def __init__(
        self,
        message: str,
        kind: ServiceErrorKind = ServiceErrorKind.UNKNOWN,
        service: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.service = service

    @property
    def user_message(self) -> str:
        """Classified message suitable for display."""
        return _USER_MESSAGES[self.kind]

    @property
    def is_rate_limit(self) -> bool:
        return self.kind is ServiceErrorKind.RATE_LIMIT


# ═══════════════════════════════════════════════════════════
# LLM RESPONSE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ParseError(NutriDecodeError):
    """
    LLM response was empty, not JSON, or not the expected shape.

    Not retried: a second LLM call does not guarantee a parseable result.
    """

    def __init__(self, message: str, content: Optional[str] = None) -> None:
        super().__init__(message)
        self.content = content


class ExtractionError(ParseError):
    """
    Label extraction response could not be turned into an AnalysisResult.

    Example:
        >>> raise ExtractionError("Failed to parse analysis results: Expecting value")
    """

    pass


class PreferencesMissingError(NutriDecodeError):
    """
    Enrichment requested for a user without available preferences.
    """

    pass


# ═══════════════════════════════════════════════════════════
# PERSISTENCE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class DuplicateSubmissionError(NutriDecodeError):
    """
    Business-rule rejection of a repeated submission.

    Raised when:
    - Same product saved by the same user within the duplicate window
    - Waitlist email already registered
    """

    pass


class OwnershipError(NutriDecodeError):
    """
    Record exists but belongs to another user.

    Surfaced as access denied.
    """

    pass


class NotFoundError(NutriDecodeError):
    """
    Resource not found.

    Example:
        >>> raise NotFoundError("Analysis abc123 not found")
    """

    pass


class DatabaseError(NutriDecodeError):
    """
    Database operation failed.

    Raised when:
    - Connection lost or query failed
    - A delete could not be verified
    """

    pass
