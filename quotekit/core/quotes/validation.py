"""
Input validation and the slippage/loss check for reverse quotes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import TYPE_CHECKING, Optional, Union

from ...config import settings
from .errors import InvalidQuoteInputError
from .models import Currency, CurrencyAmount, QuoteRequest

if TYPE_CHECKING:  # pragma: no cover
    from ...stores import CurrencyStore


logger = logging.getLogger(__name__)

REVERSE_QUOTE_MARGIN = 0.003  # 30 bps


@dataclass(frozen=True)
class QuoteValidation:
    is_valid: bool
    is_same_chain: bool
    reason: Optional[str] = None


def validate_quote_request(request: Optional[QuoteRequest]) -> QuoteValidation:
    """Check amount and currencies. A zero amount is allowed for withdraw-max pre-calls."""
    if request is None:
        return QuoteValidation(is_valid=False, is_same_chain=False, reason="Missing currency")

    withdraw_max = any(call.is_withdraw_max for call in request.input_calls)
    src_amount = request.src_amount
    amount_ok = src_amount is not None and (src_amount.amount > 0 or withdraw_max)
    src_ok = src_amount is not None and src_amount.currency is not None
    dst_ok = request.dst_currency is not None

    if not amount_ok or not src_ok or not dst_ok:
        return QuoteValidation(
            is_valid=False,
            is_same_chain=False,
            reason="Invalid amount" if not amount_ok else "Missing currency",
        )

    return QuoteValidation(is_valid=True, is_same_chain=request.is_same_chain)


def normalize_request(request: QuoteRequest, store: Optional["CurrencyStore"]) -> QuoteRequest:
    """Swap in the store's canonical currencies before fingerprinting.

    Raises:
        InvalidQuoteInputError: a currency is unknown to the store.
    """
    if store is None or request.src_amount is None or request.dst_currency is None:
        return request

    src = _canonical(store, request.src_amount.currency)
    dst = _canonical(store, request.dst_currency)
    return replace(
        request,
        src_amount=CurrencyAmount(currency=src, amount=request.src_amount.amount),
        dst_currency=dst,
    )


def _canonical(store: "CurrencyStore", currency: Currency) -> Currency:
    found = store.get(currency.chain_id, currency.address)
    if found is None:
        raise InvalidQuoteInputError(f"Unknown currency {currency.identity}")
    return found


# ---------------------------------------------------------------------------
# Slippage / loss validation
# ---------------------------------------------------------------------------

def calculate_reverse_quote_buffer(
    slippage: float,
    base_buffer: Optional[float] = None,
    max_buffer: Optional[float] = None,
) -> float:
    base = settings.reverse_quote_base_buffer if base_buffer is None else base_buffer
    ceiling = settings.reverse_quote_max_buffer if max_buffer is None else max_buffer
    return min(ceiling, max(0.0, slippage) + base)


@dataclass(frozen=True)
class OutputCheck:
    """Outcome of checking a quote's output against a required amount."""

    meets_requirement: bool
    shortfall: float
    high_slippage_loss: bool
    buffer: float


RequiredAmount = Union[CurrencyAmount, Decimal, float]


def _to_float(amount: RequiredAmount) -> float:
    if isinstance(amount, CurrencyAmount):
        return float(amount.to_decimal())
    return float(amount)


class SlippageGuard:
    """Tracks the reverse-quote buffer and the high-slippage-loss warning.

    The warning is advisory only; quotes are displayed regardless.
    """

    def __init__(
        self,
        slippage: float = 0.0,
        *,
        base_buffer: Optional[float] = None,
        max_buffer: Optional[float] = None,
    ) -> None:
        self.base_buffer = settings.reverse_quote_base_buffer if base_buffer is None else base_buffer
        self.max_buffer = settings.reverse_quote_max_buffer if max_buffer is None else max_buffer
        self.slippage = slippage
        self.buffer = calculate_reverse_quote_buffer(slippage, self.base_buffer, self.max_buffer)
        self.high_slippage_loss = False

    def update_for_slippage(self, slippage: float) -> None:
        if slippage == self.slippage:
            return
        self.slippage = slippage
        self.buffer = calculate_reverse_quote_buffer(slippage, self.base_buffer, self.max_buffer)

    def reset_warning(self) -> None:
        self.high_slippage_loss = False

    def check(
        self,
        realized_output: float,
        min_required: Optional[RequiredAmount],
        *,
        widen: bool = True,
    ) -> OutputCheck:
        """Compare `realized_output` with `min_required`.

        A shortfall larger than the current buffer raises the warning and,
        when `widen` is set, grows the buffer (capped at `max_buffer`).
        """
        required = _to_float(min_required) if min_required is not None else 0.0
        if required <= 0:
            self.high_slippage_loss = False
            return OutputCheck(True, 0.0, False, self.buffer)

        shortfall = max(0.0, (required - realized_output) / required)
        exceeds = shortfall > self.buffer
        self.high_slippage_loss = exceeds

        if exceeds and widen:
            widened = min(self.max_buffer, shortfall + self.base_buffer)
            if widened > self.buffer:
                logger.debug("Widening reverse quote buffer %.4f -> %.4f", self.buffer, widened)
                self.buffer = widened

        return OutputCheck(
            meets_requirement=shortfall == 0,
            shortfall=shortfall,
            high_slippage_loss=exceeds,
            buffer=self.buffer,
        )


def estimate_input_amount(
    amount_out: int,
    decimals_out: int,
    price_in: float,
    price_out: float,
    buffer: float = REVERSE_QUOTE_MARGIN,
) -> Decimal:
    """Input (human units) needed to receive `amount_out`, padded by `buffer`."""
    if price_in <= 0:
        raise ValueError("price_in must be positive")
    out = Decimal(amount_out) / (Decimal(10) ** decimals_out)
    return out * Decimal(str(price_out)) / Decimal(str(price_in)) * (Decimal(1) + Decimal(str(buffer)))
