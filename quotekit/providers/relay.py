"""Relay swap and bridge quotes via the public Relay API."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import settings
from ..core.quotes.cancellation import CancellationToken
from ..core.quotes.errors import ProviderError
from ..core.quotes.models import ActionCall, PreparedTransaction, Trade
from .base import AggregatorProvider, BridgeProvider, TradeParams
from .http import ProviderHTTPClient


logger = logging.getLogger(__name__)

DEFAULT_RELAY_URL = "https://api.relay.link"


class RelayClient(ProviderHTTPClient):
    """Thin wrapper around https://api.relay.link endpoints."""

    provider_name = "relay"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        referrer: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        configured = base_url or settings.relay_base_url
        super().__init__(
            [configured or DEFAULT_RELAY_URL],
            timeout_s=settings.provider_timeout_seconds if timeout_s is None else timeout_s,
            transport=transport,
        )
        self.referrer = referrer or settings.quote_referrer

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json, text/plain, */*",
            "content-type": "application/json",
            "origin": "https://relay.link",
        }

    async def quote(self, payload: Dict[str, Any], token: Optional[CancellationToken] = None) -> Dict[str, Any]:
        """Request a quote from Relay.

        `payload` follows the schema documented at https://docs.relay.link/
        (originChainId, destinationChainId, amount, txs, ...).
        """
        resp = await self._request("POST", "/quote", json=payload, token=token)
        return resp.json()

    def build_quote_payload(
        self,
        params: TradeParams,
        *,
        txs: Optional[List[Dict[str, Any]]] = None,
        destination_gas_limit: Optional[int] = None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "user": params.caller,
            "originChainId": params.from_currency.chain_id,
            "destinationChainId": params.to_currency.chain_id,
            "originCurrency": params.from_currency.address,
            "destinationCurrency": params.to_currency.address,
            "recipient": params.receiver,
            "tradeType": params.trade_type,
            "amount": str(params.amount),
            "slippageTolerance": str(params.slippage_bps),
            "referrer": self.referrer,
            "useExternalLiquidity": False,
        }
        if txs:
            payload["txs"] = txs
        if destination_gas_limit:
            payload["txsGasLimit"] = destination_gas_limit
        return payload


class RelayTrade(Trade):
    """Relay quote response; the first step item carries the transaction."""

    def __init__(self, response: Dict[str, Any], params: TradeParams):
        self.response = response
        self.params = params
        self.request_id = _first_request_id(response)

    @property
    def realized_output(self) -> float:
        details = self.response.get("details") or {}
        currency_out = details.get("currencyOut") or {}
        amount = currency_out.get("amount")
        if amount is None:
            return 0.0
        decimals = (currency_out.get("currency") or {}).get("decimals", self.params.to_currency.decimals)
        return float(Decimal(str(amount)) / (Decimal(10) ** int(decimals)))

    @property
    def transaction_data(self) -> Optional[Dict[str, Any]]:
        for step in self.response.get("steps") or []:
            for item in step.get("items") or []:
                data = item.get("data")
                if isinstance(data, dict) and data.get("to"):
                    return data
        return None

    @property
    def can_assemble(self) -> bool:
        return self.transaction_data is not None

    async def assemble(self) -> PreparedTransaction:
        data = self.transaction_data
        if data is None:
            raise ProviderError("Relay quote has no executable step", provider="relay")
        gas = data.get("gas")
        return PreparedTransaction(
            chain_id=int(data.get("chainId") or self.params.from_currency.chain_id),
            to_address=data["to"],
            data=data.get("data") or "0x",
            value=int(data.get("value") or 0),
            from_address=data.get("from") or self.params.caller,
            gas_limit=int(gas) if gas is not None else None,
            description="Relay execution",
            quote_id=self.request_id,
        )


def _first_request_id(response: Dict[str, Any]) -> Optional[str]:
    for step in response.get("steps") or []:
        request_id = step.get("requestId")
        if request_id:
            return str(request_id)
    return None


def _calls_to_txs(calls: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "to": call.get("target"),
            "data": call.get("callData", "0x"),
            "value": call.get("value", "0"),
        }
        for call in calls
    ]


class RelayAggregator(AggregatorProvider):
    """Same-chain swaps through Relay."""

    name = "relay"

    def __init__(self, client: Optional[RelayClient] = None):
        self.client = client or RelayClient()

    async def fetch_trade(self, chain_id: int, params: TradeParams, token: CancellationToken) -> Trade:
        if params.pre_calls:
            raise ProviderError("Relay swaps cannot run pre-calls", provider=self.name)
        payload = self.client.build_quote_payload(params, txs=_calls_to_txs(params.post_calls))
        logger.debug("Requesting Relay swap quote on chain %s", chain_id)
        response = await self.client.quote(payload, token=token)
        return RelayTrade(response, params)


class RelayBridge(BridgeProvider):
    """Cross-chain transfers through Relay, with destination call execution."""

    name = "relay"
    supports_composed = True

    def __init__(self, client: Optional[RelayClient] = None):
        self.client = client or RelayClient()

    async def fetch_trade(self, params: TradeParams, token: CancellationToken) -> Trade:
        payload = self.client.build_quote_payload(params)
        response = await self.client.quote(payload, token=token)
        return RelayTrade(response, params)

    async def fetch_composed_trade(
        self,
        params: TradeParams,
        calls: Sequence[ActionCall],
        destination_gas_limit: int,
        token: CancellationToken,
    ) -> Trade:
        if params.pre_calls:
            raise ProviderError("Relay bridges cannot run pre-calls", provider=self.name)
        payload = self.client.build_quote_payload(
            params,
            txs=_calls_to_txs(params.post_calls),
            destination_gas_limit=destination_gas_limit,
        )
        logger.debug(
            "Requesting composed Relay bridge quote with %d destination calls",
            len(calls),
        )
        response = await self.client.quote(payload, token=token)
        return RelayTrade(response, params)
