"""Quote orchestration components."""

from typing import TYPE_CHECKING

from .cancellation import CancellationController, CancellationToken
from .errors import (
    ErrorCategory,
    InvalidQuoteInputError,
    NoQuoteAvailableError,
    ProviderError,
    QuoteCancelledError,
    QuoteError,
    RefreshLimitReachedError,
)
from .keys import CalldataDigest, create_quote_key, keys_equal
from .models import (
    ActionCall,
    CallType,
    Currency,
    CurrencyAmount,
    LendingAction,
    PreparedTransaction,
    Quote,
    QuoteRequest,
    Trade,
)
from .store import QuoteStatus, quote_reducer

if TYPE_CHECKING:  # pragma: no cover
    from .engine import QuoteEngine
    from .router import QuoteRouter

__all__ = [
    "ActionCall",
    "CallType",
    "CalldataDigest",
    "CancellationController",
    "CancellationToken",
    "Currency",
    "CurrencyAmount",
    "ErrorCategory",
    "InvalidQuoteInputError",
    "LendingAction",
    "NoQuoteAvailableError",
    "PreparedTransaction",
    "ProviderError",
    "Quote",
    "QuoteCancelledError",
    "QuoteEngine",
    "QuoteError",
    "QuoteRequest",
    "QuoteRouter",
    "QuoteStatus",
    "RefreshLimitReachedError",
    "Trade",
    "create_quote_key",
    "keys_equal",
    "quote_reducer",
]


def __getattr__(name: str):  # pragma: no cover - simple thunk
    if name == "QuoteEngine":
        from .engine import QuoteEngine as _QuoteEngine

        return _QuoteEngine
    if name == "QuoteRouter":
        from .router import QuoteRouter as _QuoteRouter

        return _QuoteRouter
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
