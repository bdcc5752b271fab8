from .base import AggregatorProvider, BridgeProvider, ProviderKind, QuoteProvider, TradeParams
from .bungee import BungeeAggregator, BungeeBridge, BungeeClient, BungeeTrade
from .relay import RelayAggregator, RelayBridge, RelayClient, RelayTrade

__all__ = [
    "AggregatorProvider",
    "BridgeProvider",
    "ProviderKind",
    "QuoteProvider",
    "TradeParams",
    "BungeeAggregator",
    "BungeeBridge",
    "BungeeClient",
    "BungeeTrade",
    "RelayAggregator",
    "RelayBridge",
    "RelayClient",
    "RelayTrade",
]
