"""Error taxonomy for task execution.

Adapter errors are classified by `AdapterErrorCode`, never by class, so an
adapter may raise a bare `AdapterError` with any code and still be retried
(or not) correctly by the router.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence


class BrandpackError(Exception):
    """Base exception for brandpack task execution errors"""  # noqa: D415


class ConfigurationError(BrandpackError):
    """Raised when a configuration is structurally invalid or a call id is unknown"""  # noqa: D415

    def __init__(self, message: str, issues: Sequence[Any] = ()) -> None:
        """Initialize with a message and optional path-qualified issues."""
        super().__init__(message)
        self.issues = tuple(issues)


class ConfigFileError(ConfigurationError):
    """Raised when a configuration source cannot be read or parsed"""  # noqa: D415

    def __init__(self, source: str, message: str) -> None:
        """Initialize with the offending source identity."""
        self.source = source
        super().__init__(f"Config source error in {source}: {message}")


class PipelineParseError(BrandpackError):
    """Raised when a provider returned output that cannot be parsed"""  # noqa: D415

    def __init__(self, message: str, *, index: int | None = None) -> None:
        """Initialize with the index of the output that failed, if known."""
        super().__init__(message)
        self.index = index


class AdapterErrorCode(str, Enum):
    """Provider-neutral error codes."""

    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_REQUEST = "INVALID_REQUEST"
    MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    CONTENT_FILTER = "CONTENT_FILTER"
    NETWORK_ERROR = "NETWORK_ERROR"
    BUDGET_EXCEEDED = "BUDGET_EXCEEDED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


RETRYABLE_CODES: frozenset[AdapterErrorCode] = frozenset(
    {
        AdapterErrorCode.RATE_LIMITED,
        AdapterErrorCode.TIMEOUT,
        AdapterErrorCode.NETWORK_ERROR,
        AdapterErrorCode.UNKNOWN_ERROR,
    }
)


class AdapterError(BrandpackError):
    """Raised by provider adapters and the router"""  # noqa: D415

    default_code = AdapterErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        code: AdapterErrorCode | None = None,
        details: Any = None,
    ) -> None:
        """Initialize with provider id, error code and optional details."""
        super().__init__(message)
        self.provider = provider
        self.code = code or self.default_code
        self.details = details

    @property
    def retryable(self) -> bool:
        """Whether the router may retry (and later fall back) on this error."""
        return self.code in RETRYABLE_CODES

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, provider={self.provider!r}, code={self.code.value})"


class AdapterNotFoundError(AdapterError):
    """Raised when no adapter is registered for a provider id"""  # noqa: D415

    default_code = AdapterErrorCode.MODEL_NOT_FOUND


class InvalidRequestError(AdapterError):
    """Raised when a spec fails an adapter precondition"""  # noqa: D415

    default_code = AdapterErrorCode.INVALID_REQUEST


class AuthenticationFailedError(AdapterError):
    """Raised when provider credentials are missing or rejected"""  # noqa: D415

    default_code = AdapterErrorCode.AUTHENTICATION_FAILED


class ContentFilteredError(AdapterError):
    """Raised when a provider refused to produce content"""  # noqa: D415

    default_code = AdapterErrorCode.CONTENT_FILTER


class RateLimitedError(AdapterError):
    """Raised when a provider throttles the request"""  # noqa: D415

    default_code = AdapterErrorCode.RATE_LIMITED


class AdapterTimeoutError(AdapterError):
    """Raised when an adapter call exceeds its wall-clock timeout"""  # noqa: D415

    default_code = AdapterErrorCode.TIMEOUT


class NetworkError(AdapterError):
    """Raised when network issues occur"""  # noqa: D415

    default_code = AdapterErrorCode.NETWORK_ERROR


class UnknownAdapterError(AdapterError):
    """Raised for unclassified adapter failures"""  # noqa: D415

    default_code = AdapterErrorCode.UNKNOWN_ERROR


class BudgetExceededError(AdapterError):
    """Raised when a call's estimated cost exceeds its configured ceiling"""  # noqa: D415

    default_code = AdapterErrorCode.BUDGET_EXCEEDED
