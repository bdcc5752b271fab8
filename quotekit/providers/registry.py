"""Build the default provider set from settings."""

import logging
from typing import List, Optional

import httpx

from ..config import Settings, settings as default_settings
from ..core.quotes.router import QuoteRouter
from .base import QuoteProvider
from .bungee import BungeeAggregator, BungeeBridge, BungeeClient
from .relay import RelayAggregator, RelayBridge, RelayClient


logger = logging.getLogger(__name__)


def build_providers(
    config: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[QuoteProvider]:
    config = config or default_settings
    providers: List[QuoteProvider] = []

    if config.enable_relay:
        relay = RelayClient(
            base_url=config.relay_base_url or None,
            timeout_s=config.provider_timeout_seconds,
            referrer=config.quote_referrer,
            transport=transport,
        )
        providers += [RelayAggregator(relay), RelayBridge(relay)]

    if config.enable_bungee:
        bungee = BungeeClient(
            api_key=config.bungee_api_key or None,
            base_url=config.bungee_base_url or None,
            timeout_s=config.provider_timeout_seconds,
            transport=transport,
        )
        providers += [BungeeAggregator(bungee), BungeeBridge(bungee)]

    if not providers:
        logger.warning("No quote providers enabled")
    return providers


def build_router(
    config: Optional[Settings] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> QuoteRouter:
    return QuoteRouter(build_providers(config, transport=transport))
