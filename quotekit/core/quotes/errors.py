"""
Error Classification

Error types for the quote engine. Only NO_QUOTE and unexpected batch-level
failures reach the user; everything else is recovered locally.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Categories of quote errors for surfacing decisions."""

    VALIDATION = "validation"     # Missing/zero amount, missing currency
    PROVIDER = "provider"         # One provider failed; batch continues
    NO_QUOTE = "no_quote"         # Every provider abstained
    CANCELLED = "cancelled"       # Superseded or torn down
    RATE_LIMIT = "rate_limit"     # Auto-refresh ceiling reached
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Additional context about an error."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    user_visible: bool = False
    provider: Optional[str] = None
    quote_key: Optional[str] = None
    suggested_action: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


class QuoteError(Exception):
    """Base class for quote engine errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.context = context or ErrorContext(category=category)


class InvalidQuoteInputError(QuoteError):
    """Request cannot be quoted. Handled by clearing, never shown."""

    def __init__(self, reason: str = "Invalid quote input"):
        super().__init__(
            reason,
            category=ErrorCategory.VALIDATION,
            context=ErrorContext(category=ErrorCategory.VALIDATION, details={"reason": reason}),
        )
        self.reason = reason


class ProviderError(QuoteError):
    """A single provider failed to produce a trade."""

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if detail:
            details["detail"] = detail
        super().__init__(
            message,
            category=ErrorCategory.PROVIDER,
            context=ErrorContext(
                category=ErrorCategory.PROVIDER,
                provider=provider,
                details=details,
            ),
        )
        self.provider = provider
        self.status_code = status_code


class NoQuoteAvailableError(QuoteError):
    """The whole provider batch yielded zero usable results."""

    def __init__(
        self,
        message: str = "No quote available from any aggregator/bridge",
        quote_key: Optional[str] = None,
        failures: Optional[Dict[str, str]] = None,
    ):
        super().__init__(
            message,
            category=ErrorCategory.NO_QUOTE,
            context=ErrorContext(
                category=ErrorCategory.NO_QUOTE,
                user_visible=True,
                quote_key=quote_key,
                suggested_action="Adjust the amount or tokens and try again",
                details={"failures": dict(failures or {})},
            ),
        )


class QuoteCancelledError(QuoteError):
    """The fetch's cancellation token was cancelled."""

    def __init__(self, message: str = "Quote request cancelled"):
        super().__init__(message, category=ErrorCategory.CANCELLED)


class RefreshLimitReachedError(QuoteError):
    """Auto-refresh ran unattended for too long and was stopped."""

    def __init__(self, elapsed_seconds: float, ceiling_seconds: float):
        super().__init__(
            f"Auto-refresh stopped after {elapsed_seconds:.0f}s without user input",
            category=ErrorCategory.RATE_LIMIT,
            context=ErrorContext(
                category=ErrorCategory.RATE_LIMIT,
                suggested_action="Change the input or refresh manually to resume",
                details={"elapsed_seconds": elapsed_seconds, "ceiling_seconds": ceiling_seconds},
            ),
        )
        self.elapsed_seconds = elapsed_seconds
        self.ceiling_seconds = ceiling_seconds


def is_user_visible(error: BaseException) -> bool:
    """Whether an error from a fetch should be surfaced to the user."""
    if isinstance(error, QuoteError):
        return error.context.user_visible
    # Unexpected batch-level failures are surfaced as-is
    return True
