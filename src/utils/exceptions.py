"""Exception hierarchy for the research orchestration core.

Every error raised by provider callers, the retry executor and the
orchestrator inherits from ResearchError and carries an ErrorKind tag.
Classification is structural: the retry executor reads ``error.kind``
instead of inspecting message text.

    try:
        await executor.execute_with_retry("claude", operation)
    except ResearchError as e:
        logger.error("research_failed", kind=e.kind.value, error=str(e))
"""

import asyncio
from enum import Enum
from typing import List, Optional

import aiohttp


class ErrorKind(str, Enum):
    """Fixed error tag set shared by every component."""

    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    TEMPORARY_FAILURE = "temporary_failure"
    SECRET_MISSING = "secret_missing"
    INVALID_REQUEST = "invalid_request"
    EMPTY_RESPONSE = "empty_response"
    UNKNOWN_ERROR = "unknown_error"


RETRYABLE_ERROR_KINDS = frozenset(
    {
        ErrorKind.RATE_LIMIT_EXCEEDED,
        ErrorKind.TIMEOUT,
        ErrorKind.NETWORK_ERROR,
        ErrorKind.SERVICE_UNAVAILABLE,
        ErrorKind.TEMPORARY_FAILURE,
    }
)


class ResearchError(Exception):
    """Base exception for all research pipeline errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class RateLimitExceededError(ResearchError):
    """Provider or local rate limit exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying (if known)
    """

    kind = ErrorKind.RATE_LIMIT_EXCEEDED

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[float] = None,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, provider=provider, status_code=status_code)
        self.retry_after = retry_after


class ProviderTimeoutError(ResearchError):
    """Provider call did not complete within its timeout."""

    kind = ErrorKind.TIMEOUT


class NetworkError(ResearchError):
    """Transport-level failure (DNS, connection reset, TLS)."""

    kind = ErrorKind.NETWORK_ERROR


class ServiceUnavailableError(ResearchError):
    """Provider answered with a 5xx status."""

    kind = ErrorKind.SERVICE_UNAVAILABLE


class TemporaryFailureError(ResearchError):
    """Transient failure that is expected to clear on its own."""

    kind = ErrorKind.TEMPORARY_FAILURE


class SecretMissingError(ResearchError):
    """Provider credentials are not configured. Never retried.

    Attributes:
        checked_names: Every environment name that was looked up
    """

    kind = ErrorKind.SECRET_MISSING

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        checked_names: Optional[List[str]] = None,
    ) -> None:
        super().__init__(message, provider=provider)
        self.checked_names = checked_names or []


class InvalidRequestError(ResearchError):
    """Request rejected before dispatch (bad provider, missing fields, 4xx)."""

    kind = ErrorKind.INVALID_REQUEST


class EmptyResponseError(ResearchError):
    """Provider returned no usable content or a malformed payload."""

    kind = ErrorKind.EMPTY_RESPONSE


class ConfigValidationError(ResearchError):
    """Configuration file could not be read or validated."""

    kind = ErrorKind.INVALID_REQUEST


ERROR_TYPES = {
    ErrorKind.RATE_LIMIT_EXCEEDED: RateLimitExceededError,
    ErrorKind.TIMEOUT: ProviderTimeoutError,
    ErrorKind.NETWORK_ERROR: NetworkError,
    ErrorKind.SERVICE_UNAVAILABLE: ServiceUnavailableError,
    ErrorKind.TEMPORARY_FAILURE: TemporaryFailureError,
    ErrorKind.SECRET_MISSING: SecretMissingError,
    ErrorKind.INVALID_REQUEST: InvalidRequestError,
    ErrorKind.EMPTY_RESPONSE: EmptyResponseError,
    ErrorKind.UNKNOWN_ERROR: ResearchError,
}


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception to its ErrorKind.

    ResearchError subclasses carry their own tag. Bare timeouts and aiohttp
    transport errors raised by the operation itself are mapped by type.
    Anything else is ``unknown_error``.
    """
    if isinstance(error, ResearchError):
        return error.kind
    if isinstance(error, asyncio.TimeoutError):
        return ErrorKind.TIMEOUT
    if isinstance(error, aiohttp.ClientError):
        return ErrorKind.NETWORK_ERROR
    return ErrorKind.UNKNOWN_ERROR
