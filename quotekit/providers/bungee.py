"""Bungee (Socket) swap and bridge quotes via the public v1 API."""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.quotes.cancellation import CancellationToken
from ..core.quotes.errors import ProviderError
from ..core.quotes.models import PreparedTransaction, Trade
from .base import AggregatorProvider, BridgeProvider, TradeParams
from .http import ProviderHTTPClient


logger = logging.getLogger(__name__)

DEFAULT_BUNGEE_URLS = [
    "https://public-backend.bungee.exchange",
    "https://api.socket.tech",
]


class BungeeClient(ProviderHTTPClient):
    """Thin client for the Bungee (Socket) public API surface."""

    provider_name = "bungee"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.bungee_api_key
        configured = base_url or settings.bungee_base_url
        super().__init__(
            [configured] if configured else DEFAULT_BUNGEE_URLS,
            timeout_s=settings.provider_timeout_seconds if timeout_s is None else timeout_s,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["API-KEY"] = self.api_key
        return headers

    async def quote(self, params: Dict[str, Any], token: Optional[CancellationToken] = None) -> Dict[str, Any]:
        """Fetch a swap/bridge quote via the public v1 API."""
        cleaned_params = {k: v for k, v in params.items() if v is not None}
        resp = await self._request("GET", "/api/v1/bungee/quote", params=cleaned_params, token=token)
        return resp.json()

    async def build_tx(self, params: Dict[str, Any], token: Optional[CancellationToken] = None) -> Dict[str, Any]:
        """Build the transaction for a previously fetched quote."""
        cleaned_params = {k: v for k, v in params.items() if v is not None}
        resp = await self._request("GET", "/api/v1/bungee/build-tx", params=cleaned_params, token=token)
        return resp.json()

    @staticmethod
    def build_quote_params(params: TradeParams) -> Dict[str, Any]:
        return {
            "originChainId": params.from_currency.chain_id,
            "destinationChainId": params.to_currency.chain_id,
            "inputToken": params.from_currency.address,
            "outputToken": params.to_currency.address,
            "inputAmount": str(params.amount),
            "userAddress": params.caller,
            "receiverAddress": params.receiver,
            "slippage": params.slippage * 100,
        }


def select_route(response: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Prefer the auto route, falling back to the first manual route."""
    result = response.get("result") or {}
    route = result.get("autoRoute")
    if route:
        return route
    manual: List[Dict[str, Any]] = result.get("manualRoutes") or []
    return manual[0] if manual else None


class BungeeTrade(Trade):
    """A Bungee route; the transaction is built lazily from its quote id."""

    def __init__(self, route: Dict[str, Any], params: TradeParams, client: BungeeClient):
        self.route = route
        self.params = params
        self._client = client

    @property
    def quote_id(self) -> Optional[str]:
        return self.route.get("quoteId")

    @property
    def realized_output(self) -> float:
        output = self.route.get("output") or {}
        amount = output.get("amount")
        if amount is None:
            return 0.0
        decimals = (output.get("token") or {}).get("decimals", self.params.to_currency.decimals)
        return float(Decimal(str(amount)) / (Decimal(10) ** int(decimals)))

    @property
    def can_assemble(self) -> bool:
        return bool(self.quote_id)

    async def assemble(self) -> PreparedTransaction:
        if not self.quote_id:
            raise ProviderError("Bungee route has no quote id", provider="bungee")
        built = await self._client.build_tx({"quoteId": self.quote_id})
        tx = (built.get("result") or {}).get("txData")
        if not tx or not tx.get("to"):
            raise ProviderError("Bungee build-tx returned no transaction", provider="bungee")
        gas = tx.get("gasLimit")
        return PreparedTransaction(
            chain_id=int(tx.get("chainId") or self.params.from_currency.chain_id),
            to_address=tx["to"],
            data=tx.get("data") or "0x",
            value=int(tx.get("value") or 0),
            from_address=self.params.caller,
            gas_limit=int(gas) if gas is not None else None,
            description="Bungee execution",
            quote_id=self.quote_id,
        )


async def _fetch_route(client: BungeeClient, params: TradeParams, token: CancellationToken) -> BungeeTrade:
    if params.pre_calls or params.post_calls:
        raise ProviderError("Bungee cannot execute attached calls", provider="bungee")
    response = await client.quote(client.build_quote_params(params), token=token)
    if response.get("success") is False:
        raise ProviderError(
            f"Bungee quote failed: {response.get('message') or 'unknown error'}",
            provider="bungee",
        )
    route = select_route(response)
    if route is None:
        raise ProviderError("Bungee returned no routes", provider="bungee")
    return BungeeTrade(route, params, client)


class BungeeAggregator(AggregatorProvider):
    """Same-chain swaps through Bungee."""

    name = "bungee"

    def __init__(self, client: Optional[BungeeClient] = None):
        self.client = client or BungeeClient()

    async def fetch_trade(self, chain_id: int, params: TradeParams, token: CancellationToken) -> Trade:
        logger.debug("Requesting Bungee swap quote on chain %s", chain_id)
        return await _fetch_route(self.client, params, token)


class BungeeBridge(BridgeProvider):
    """Cross-chain transfers through Bungee. No destination call support."""

    name = "bungee"

    def __init__(self, client: Optional[BungeeClient] = None):
        self.client = client or BungeeClient()

    async def fetch_trade(self, params: TradeParams, token: CancellationToken) -> Trade:
        return await _fetch_route(self.client, params, token)
