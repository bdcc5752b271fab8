"""
Quote domain models.

Currencies, attached calls, quote requests and the polymorphic trade
payload produced by providers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple


NATIVE_PLACEHOLDER = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class Currency:
    """A token on a specific chain."""

    chain_id: int
    address: str
    decimals: int = 18
    symbol: str = ""

    @property
    def identity(self) -> str:
        """Case-normalized `chain:address` identity used in keys and lookups."""
        return f"{self.chain_id}:{self.address.lower()}"

    def same_chain(self, other: "Currency") -> bool:
        return self.chain_id == other.chain_id


@dataclass(frozen=True)
class CurrencyAmount:
    """An integer magnitude in the currency's smallest unit."""

    currency: Currency
    amount: int

    def to_decimal(self) -> Decimal:
        return Decimal(self.amount) / (Decimal(10) ** self.currency.decimals)


class CallType(IntEnum):
    """Discriminant for attached calls."""

    DEFAULT = 0
    FULL_TOKEN_BALANCE = 1
    FULL_NATIVE_BALANCE = 2
    SWEEP_WITH_VALIDATION = 3
    APPROVE = 4
    LENDING = 5


class LendingAction(IntEnum):
    DEPOSIT = 0
    BORROW = 1
    REPAY = 2
    WITHDRAW = 3


EXTERNAL_CALL_TYPES = frozenset({
    CallType.DEFAULT,
    CallType.FULL_TOKEN_BALANCE,
    CallType.FULL_NATIVE_BALANCE,
    CallType.SWEEP_WITH_VALIDATION,
    CallType.APPROVE,
})
PRE_CALL_LENDING_ACTIONS = frozenset({LendingAction.WITHDRAW, LendingAction.BORROW})
POST_CALL_LENDING_ACTIONS = frozenset({LendingAction.DEPOSIT, LendingAction.REPAY})


@dataclass(frozen=True)
class ActionCall:
    """An operation bundled before (pre-call) or after (post-call) the trade leg."""

    target: str = ""
    call_data: str = "0x"
    value: int = 0
    gas_limit: Optional[int] = None
    call_type: CallType = CallType.DEFAULT

    # Balance injection calls
    token_address: Optional[str] = None
    balance_of_inject_index: int = 0

    # Lending calls
    lending_action: Optional[LendingAction] = None
    lender: Optional[str] = None
    amount: Optional[int] = None

    @property
    def is_lending(self) -> bool:
        return self.call_type == CallType.LENDING

    @property
    def is_pre_call(self) -> bool:
        return self.is_lending and self.lending_action in PRE_CALL_LENDING_ACTIONS

    @property
    def is_post_call(self) -> bool:
        if self.call_type in EXTERNAL_CALL_TYPES:
            return True
        return self.is_lending and self.lending_action in POST_CALL_LENDING_ACTIONS

    @property
    def is_withdraw_max(self) -> bool:
        return (
            self.is_lending
            and self.lending_action == LendingAction.WITHDRAW
            and self.amount == 0
        )

    def to_payload(self) -> Dict[str, Any]:
        """Provider-facing shape. Gas limits are budgeted separately and stripped."""
        payload: Dict[str, Any] = {
            "callType": int(self.call_type),
            "target": self.target,
            "callData": self.call_data,
        }
        if self.value:
            payload["value"] = str(self.value)
        if self.token_address:
            payload["tokenAddress"] = self.token_address
            payload["balanceOfInjectIndex"] = self.balance_of_inject_index
        if self.is_lending:
            payload["lendingAction"] = int(self.lending_action) if self.lending_action is not None else None
            payload["lender"] = self.lender
            payload["amount"] = str(self.amount) if self.amount is not None else None
        return payload


@dataclass(frozen=True)
class QuoteRequest:
    """Immutable description of what to quote.

    Equality for caching is defined by the quote key, not by this object.
    """

    src_amount: Optional[CurrencyAmount]
    dst_currency: Optional[Currency]
    slippage: float
    receiver: str
    input_calls: Tuple[ActionCall, ...] = ()
    destination_calls: Tuple[ActionCall, ...] = ()

    @property
    def src_currency(self) -> Optional[Currency]:
        return self.src_amount.currency if self.src_amount else None

    @property
    def is_same_chain(self) -> bool:
        src = self.src_currency
        dst = self.dst_currency
        return bool(src and dst and src.chain_id and src.same_chain(dst))

    @property
    def has_attached_calls(self) -> bool:
        return bool(self.input_calls or self.destination_calls)

    @property
    def pre_calls(self) -> Tuple[ActionCall, ...]:
        return tuple(call for call in self.input_calls if call.is_pre_call)

    @property
    def post_calls(self) -> Tuple[ActionCall, ...]:
        return tuple(call for call in self.destination_calls if call.is_post_call)

    @property
    def destination_gas_limit(self) -> int:
        return sum(call.gas_limit or 0 for call in self.destination_calls)

    def summary(self) -> Dict[str, Any]:
        src = self.src_currency
        return {
            "srcCurrency": src.identity if src else None,
            "srcSymbol": src.symbol if src else None,
            "dstCurrency": self.dst_currency.identity if self.dst_currency else None,
            "dstSymbol": self.dst_currency.symbol if self.dst_currency else None,
            "amount": str(self.src_amount.amount) if self.src_amount else None,
            "slippage": self.slippage,
        }


@dataclass
class PreparedTransaction:
    """A transaction ready to be signed and broadcast."""

    chain_id: int
    to_address: str
    data: str
    value: int = 0
    from_address: Optional[str] = None
    gas_limit: Optional[int] = None
    description: str = ""
    quote_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        tx = {
            "to": self.to_address,
            "data": self.data,
            "value": hex(self.value),
            "chainId": hex(self.chain_id),
        }
        if self.from_address:
            tx["from"] = self.from_address
        if self.gas_limit is not None:
            tx["gas"] = hex(self.gas_limit)
        return tx


class Trade(ABC):
    """Opaque provider payload: has a realized output and can be assembled."""

    @property
    @abstractmethod
    def realized_output(self) -> float:
        """Destination amount (human units) this trade is expected to yield."""

    @property
    def can_assemble(self) -> bool:
        return True

    @abstractmethod
    async def assemble(self) -> PreparedTransaction:
        """Build the executable transaction for this trade."""


@dataclass(frozen=True)
class Quote:
    """A ranked, executable trade candidate from one provider."""

    label: str
    trade: Trade

    @property
    def realized_output(self) -> float:
        return self.trade.realized_output
