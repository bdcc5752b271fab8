"""
Quote fingerprinting.

Turns a quote request into a deterministic string so that unrelated
re-renders with structurally identical inputs never trigger a refetch.
Every function here is pure: no settings, clocks or globals are read.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Iterable, Optional

from .models import ActionCall, Currency, CurrencyAmount, QuoteRequest


class CalldataDigest(str, Enum):
    """How a call payload contributes to the key."""

    FULL = "full"     # sha256 of the whole payload
    EDGES = "edges"   # first/last 10 chars; different bodies with equal edges collide


EDGE_CHARS = 10


def digest_call_data(call_data: str, mode: CalldataDigest = CalldataDigest.FULL) -> str:
    data = (call_data or "").lower()
    if not data:
        return ""
    if CalldataDigest(mode) is CalldataDigest.EDGES:
        return f"{data[:EDGE_CHARS]}{data[-EDGE_CHARS:]}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def hash_action_call(call: ActionCall, mode: CalldataDigest = CalldataDigest.FULL) -> str:
    target = call.target.lower() if call.target else ""
    value = str(call.value) if call.value else ""
    gas_limit = str(call.gas_limit) if call.gas_limit else ""
    token_address = call.token_address.lower() if call.token_address else ""
    lending_action = int(call.lending_action) if call.lending_action is not None else 0
    lender = call.lender or ""
    return ":".join([
        target,
        value,
        digest_call_data(call.call_data, mode),
        gas_limit,
        str(int(call.call_type)),
        token_address,
        str(call.balance_of_inject_index),
        str(lending_action),
        lender,
    ])


def hash_action_calls(
    calls: Optional[Iterable[ActionCall]],
    mode: CalldataDigest = CalldataDigest.FULL,
) -> str:
    if not calls:
        return ""
    return "|".join(hash_action_call(call, mode) for call in calls)


def currency_key(currency: Optional[Currency]) -> str:
    if currency is None:
        return ""
    return currency.identity


def currency_amount_key(amount: Optional[CurrencyAmount]) -> str:
    if amount is None:
        return ""
    return f"{currency_key(amount.currency)}:{amount.amount}"


def create_quote_key(
    request: QuoteRequest,
    mode: CalldataDigest = CalldataDigest.FULL,
) -> str:
    """Build the fingerprint for a request.

    Layout: ``src|dst|slippage|receiver|post_calls|pre_calls``.
    """
    receiver = (request.receiver or "").lower()
    return "|".join([
        currency_amount_key(request.src_amount),
        currency_key(request.dst_currency),
        repr(float(request.slippage)),
        receiver,
        hash_action_calls(request.destination_calls, mode),
        hash_action_calls(request.input_calls, mode),
    ])


def keys_equal(first: Optional[str], second: Optional[str]) -> bool:
    """Null-safe key comparison; two missing keys are never equal."""
    return first is not None and second is not None and first == second
