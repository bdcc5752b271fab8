"""Shared fakes for quote engine tests."""

import asyncio
from typing import Callable, List, Optional, Sequence

import pytest

from quotekit.core.quotes.cancellation import CancellationToken
from quotekit.core.quotes.models import (
    ActionCall,
    Currency,
    CurrencyAmount,
    PreparedTransaction,
    QuoteRequest,
    Trade,
)
from quotekit.providers.base import AggregatorProvider, BridgeProvider, TradeParams


ETH = Currency(chain_id=1, address="0x0000000000000000000000000000000000000000", decimals=18, symbol="ETH")
USDC = Currency(chain_id=1, address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", decimals=6, symbol="USDC")
USDC_BASE = Currency(chain_id=8453, address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", decimals=6, symbol="USDC")
RECEIVER = "0x50ac5CFcc81BB0872e85255D7079F8a529345D16"


class StaticTrade(Trade):
    def __init__(self, output: float, assemblable: bool = True):
        self.output = output
        self.assemblable = assemblable

    @property
    def realized_output(self) -> float:
        return self.output

    @property
    def can_assemble(self) -> bool:
        return self.assemblable

    async def assemble(self) -> PreparedTransaction:
        return PreparedTransaction(chain_id=1, to_address="0xrouter", data="0x")


class _FakeBehaviour:
    """Scripted provider behaviour: output, failure, delay and an optional gate."""

    def __init__(
        self,
        outputs: Sequence[float] = (1.0,),
        *,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        honour_token: bool = True,
        assemblable: bool = True,
    ):
        self.outputs = list(outputs)
        self.error = error
        self.delay = delay
        self.honour_token = honour_token
        self.assemblable = assemblable
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[TradeParams] = []
        self.tokens: List[CancellationToken] = []

    async def _work(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.gate is not None:
            await self.gate.wait()

    async def produce(self, params: TradeParams, token: CancellationToken) -> Trade:
        self.calls.append(params)
        self.tokens.append(token)
        if self.honour_token:
            await token.guard(self._work())
        else:
            await self._work()
        if self.error is not None:
            raise self.error
        index = min(len(self.calls), len(self.outputs)) - 1
        return StaticTrade(self.outputs[index], assemblable=self.assemblable)


class FakeAggregator(AggregatorProvider, _FakeBehaviour):
    def __init__(self, name: str, *args, **kwargs):
        _FakeBehaviour.__init__(self, *args, **kwargs)
        self.name = name

    async def fetch_trade(self, chain_id: int, params: TradeParams, token: CancellationToken) -> Trade:
        return await self.produce(params, token)


class FakeBridge(BridgeProvider, _FakeBehaviour):
    def __init__(self, name: str, *args, composed: bool = False, **kwargs):
        _FakeBehaviour.__init__(self, *args, **kwargs)
        self.name = name
        self.supports_composed = composed
        self.composed_calls: List[Sequence[ActionCall]] = []
        self.gas_limits: List[int] = []

    async def fetch_trade(self, params: TradeParams, token: CancellationToken) -> Trade:
        return await self.produce(params, token)

    async def fetch_composed_trade(self, params, calls, destination_gas_limit, token):
        if not self.supports_composed:
            return await super().fetch_composed_trade(params, calls, destination_gas_limit, token)
        self.composed_calls.append(calls)
        self.gas_limits.append(destination_gas_limit)
        return await self.produce(params, token)


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_request() -> Callable[..., QuoteRequest]:
    def _make(
        amount: int = 10**18,
        src: Currency = ETH,
        dst: Currency = USDC,
        slippage: float = 0.005,
        receiver: str = RECEIVER,
        input_calls: Sequence[ActionCall] = (),
        destination_calls: Sequence[ActionCall] = (),
    ) -> QuoteRequest:
        return QuoteRequest(
            src_amount=CurrencyAmount(currency=src, amount=amount),
            dst_currency=dst,
            slippage=slippage,
            receiver=receiver,
            input_calls=tuple(input_calls),
            destination_calls=tuple(destination_calls),
        )

    return _make


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_aggregator() -> Callable[..., FakeAggregator]:
    return FakeAggregator


@pytest.fixture
def fake_bridge() -> Callable[..., FakeBridge]:
    return FakeBridge


@pytest.fixture
def currencies():
    return {"ETH": ETH, "USDC": USDC, "USDC_BASE": USDC_BASE}
