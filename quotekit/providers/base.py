from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Sequence

from ..config import settings
from ..core.quotes.cancellation import CancellationToken
from ..core.quotes.errors import InvalidQuoteInputError
from ..core.quotes.models import ActionCall, Currency, QuoteRequest, Trade


class ProviderKind(str, Enum):
    """Which side of the router a provider serves."""

    AGGREGATOR = "aggregator"   # Same-chain swap routing
    BRIDGE = "bridge"           # Cross-chain transfer


@dataclass
class TradeParams:
    """Provider-agnostic trade input derived from a quote request."""

    from_currency: Currency
    to_currency: Currency
    amount: int
    slippage: float
    caller: str
    receiver: str
    trade_type: str = "EXACT_INPUT"
    pre_calls: List[Dict[str, Any]] = field(default_factory=list)
    post_calls: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def slippage_bps(self) -> int:
        return int(round(self.slippage * 10_000))

    @classmethod
    def from_request(cls, request: QuoteRequest) -> "TradeParams":
        if request.src_amount is None or request.dst_currency is None:
            raise InvalidQuoteInputError("Missing currency")
        # Quoting without a connected wallet uses a placeholder receiver
        receiver = request.receiver or settings.default_receiver_address
        return cls(
            from_currency=request.src_amount.currency,
            to_currency=request.dst_currency,
            amount=request.src_amount.amount,
            slippage=request.slippage,
            caller=receiver,
            receiver=receiver,
            pre_calls=[call.to_payload() for call in request.pre_calls],
            post_calls=[call.to_payload() for call in request.post_calls],
        )


class QuoteProvider(ABC):
    """Base provider interface"""

    name: str
    kind: ProviderKind
    supports_composed: bool = False

    @abstractmethod
    async def fetch(self, request: QuoteRequest, token: CancellationToken) -> Trade:
        """Produce a trade for the request or raise."""


class AggregatorProvider(QuoteProvider):
    """Same-chain swap aggregator"""

    kind = ProviderKind.AGGREGATOR

    @abstractmethod
    async def fetch_trade(self, chain_id: int, params: TradeParams, token: CancellationToken) -> Trade:
        pass

    async def fetch(self, request: QuoteRequest, token: CancellationToken) -> Trade:
        params = TradeParams.from_request(request)
        return await self.fetch_trade(params.from_currency.chain_id, params, token)


class BridgeProvider(QuoteProvider):
    """Cross-chain bridge, optionally able to run calls on the destination chain"""

    kind = ProviderKind.BRIDGE

    @abstractmethod
    async def fetch_trade(self, params: TradeParams, token: CancellationToken) -> Trade:
        pass

    async def fetch_composed_trade(
        self,
        params: TradeParams,
        calls: Sequence[ActionCall],
        destination_gas_limit: int,
        token: CancellationToken,
    ) -> Trade:
        raise NotImplementedError(f"{self.name} does not support composed execution")

    async def fetch(self, request: QuoteRequest, token: CancellationToken) -> Trade:
        params = TradeParams.from_request(request)
        if request.has_attached_calls:
            return await self.fetch_composed_trade(
                params,
                request.destination_calls,
                request.destination_gas_limit,
                token,
            )
        return await self.fetch_trade(params, token)
