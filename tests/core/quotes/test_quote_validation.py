"""
Tests for request validation, selection memory and the slippage guard.
"""

from decimal import Decimal

import pytest

from quotekit.core.quotes.errors import InvalidQuoteInputError
from quotekit.core.quotes.models import (
    ActionCall,
    CallType,
    Currency,
    CurrencyAmount,
    LendingAction,
    QuoteRequest,
)
from quotekit.core.quotes.selection import SelectionMemory
from quotekit.core.quotes.validation import (
    SlippageGuard,
    calculate_reverse_quote_buffer,
    estimate_input_amount,
    normalize_request,
    validate_quote_request,
)
from quotekit.stores import CurrencyStore


# =============================================================================
# Input Validation
# =============================================================================

class TestValidateQuoteRequest:
    def test_valid_same_chain(self, make_request):
        result = validate_quote_request(make_request())

        assert result.is_valid is True
        assert result.is_same_chain is True

    def test_valid_cross_chain(self, make_request, currencies):
        result = validate_quote_request(make_request(dst=currencies["USDC_BASE"]))

        assert result.is_valid is True
        assert result.is_same_chain is False

    def test_missing_request(self):
        assert validate_quote_request(None).is_valid is False

    def test_zero_amount_is_invalid(self, make_request):
        result = validate_quote_request(make_request(amount=0))

        assert result.is_valid is False
        assert result.reason == "Invalid amount"

    def test_missing_destination(self, make_request, currencies):
        request = QuoteRequest(
            src_amount=CurrencyAmount(currency=currencies["ETH"], amount=1),
            dst_currency=None,
            slippage=0.005,
            receiver="0x1",
        )

        assert validate_quote_request(request).reason == "Missing currency"

    def test_withdraw_max_allows_zero_amount(self, make_request):
        withdraw_max = ActionCall(
            target="0xpool",
            call_type=CallType.LENDING,
            lending_action=LendingAction.WITHDRAW,
            amount=0,
        )

        assert validate_quote_request(make_request(amount=0, input_calls=[withdraw_max])).is_valid is True


class TestNormalizeRequest:
    @pytest.mark.asyncio
    async def test_canonical_currencies_replace_input(self, make_request, currencies):
        store = CurrencyStore()
        await store.init(currencies.values())
        lowercase = Currency(chain_id=1, address=currencies["USDC"].address.lower(), decimals=0)

        normalized = normalize_request(make_request(dst=lowercase), store)

        assert normalized.dst_currency is currencies["USDC"]

    @pytest.mark.asyncio
    async def test_unknown_currency_raises(self, make_request):
        store = CurrencyStore()
        await store.init([])

        with pytest.raises(InvalidQuoteInputError):
            normalize_request(make_request(), store)

    def test_without_store_request_is_unchanged(self, make_request):
        request = make_request()
        assert normalize_request(request, None) is request


# =============================================================================
# Selection Memory
# =============================================================================

class TestSelectionMemory:
    def test_default_pick_is_not_preserved(self):
        memory = SelectionMemory()
        assert memory.resolve(is_refresh=True, quote_count=3) == 0

    def test_explicit_pick_survives_refresh(self):
        memory = SelectionMemory()
        memory.mark_user_pick(2)

        assert memory.resolve(is_refresh=True, quote_count=3) == 2
        assert memory.explicit is True

    def test_explicit_pick_out_of_bounds_resets(self):
        memory = SelectionMemory()
        memory.mark_user_pick(2)

        assert memory.resolve(is_refresh=True, quote_count=2) == 0
        assert memory.explicit is False

    def test_new_key_resets(self):
        memory = SelectionMemory()
        memory.mark_user_pick(1)

        assert memory.resolve(is_refresh=False, quote_count=3) == 0
        assert memory.explicit is False


# =============================================================================
# Slippage Guard
# =============================================================================

class TestReverseQuoteBuffer:
    def test_buffer_adds_margin(self):
        assert calculate_reverse_quote_buffer(0.005, 0.003, 0.05) == pytest.approx(0.008)

    def test_buffer_is_capped(self):
        assert calculate_reverse_quote_buffer(0.2, 0.003, 0.05) == 0.05


class TestSlippageGuard:
    def test_within_buffer_has_no_warning(self):
        guard = SlippageGuard(0.005, base_buffer=0.003, max_buffer=0.05)

        result = guard.check(99.5, Decimal("100"))

        assert result.high_slippage_loss is False
        assert guard.high_slippage_loss is False
        assert result.shortfall == pytest.approx(0.005)

    def test_shortfall_beyond_buffer_warns_and_widens(self):
        guard = SlippageGuard(0.005, base_buffer=0.003, max_buffer=0.05)

        result = guard.check(98.0, 100.0)

        assert result.high_slippage_loss is True
        assert guard.buffer == pytest.approx(0.023)

    def test_widening_is_capped(self):
        guard = SlippageGuard(0.005, base_buffer=0.003, max_buffer=0.05)

        guard.check(50.0, 100.0)

        assert guard.buffer == 0.05

    def test_check_without_widening(self):
        guard = SlippageGuard(0.005, base_buffer=0.003, max_buffer=0.05)

        guard.check(98.0, 100.0, widen=False)

        assert guard.high_slippage_loss is True
        assert guard.buffer == pytest.approx(0.008)

    def test_required_amount_in_smallest_units(self, currencies):
        guard = SlippageGuard(0.0, base_buffer=0.003, max_buffer=0.05)
        required = CurrencyAmount(currency=currencies["USDC"], amount=100_000_000)

        result = guard.check(100.0, required)

        assert result.meets_requirement is True

    def test_slippage_update_recomputes_buffer(self):
        guard = SlippageGuard(0.005, base_buffer=0.003, max_buffer=0.05)
        guard.update_for_slippage(0.01)

        assert guard.buffer == pytest.approx(0.013)


class TestEstimateInputAmount:
    def test_includes_margin(self):
        # 100 USDC out at $1, input priced at $2000 -> 0.05 * 1.003
        amount = estimate_input_amount(100_000_000, 6, price_in=2000, price_out=1)

        assert amount == Decimal("0.05") * Decimal("1.003")

    def test_rejects_non_positive_price(self):
        with pytest.raises(ValueError):
            estimate_input_amount(1, 6, price_in=0, price_out=1)
