from quotekit.config import Settings
from quotekit.providers.bungee import BungeeAggregator, BungeeBridge
from quotekit.providers.registry import build_providers, build_router
from quotekit.providers.relay import RelayAggregator, RelayBridge


def test_all_providers_enabled_by_default():
    providers = build_providers(Settings(enable_relay=True, enable_bungee=True))

    assert [type(p) for p in providers] == [RelayAggregator, RelayBridge, BungeeAggregator, BungeeBridge]


def test_disabled_providers_are_skipped():
    router = build_router(Settings(enable_relay=True, enable_bungee=False))

    assert [p.name for p in router.aggregators] == ["relay"]
    assert [p.name for p in router.bridges] == ["relay"]
    assert router.bridges[0].supports_composed is True


def test_settings_flow_into_clients():
    providers = build_providers(
        Settings(
            enable_relay=False,
            bungee_base_url="https://bungee.internal/",
            bungee_api_key="k",
            provider_timeout_seconds=5,
        )
    )

    client = providers[0].client
    assert client.base_urls == ["https://bungee.internal"]
    assert client.api_key == "k"
    assert client.timeout_s == 5


def test_engine_from_settings(monkeypatch):
    from quotekit.config import settings
    from quotekit.core.quotes.engine import QuoteEngine

    monkeypatch.setattr(settings, "trace_quoting", True)

    engine = QuoteEngine.from_settings()

    assert engine._trace is not None
    assert engine.stale_after_seconds == settings.refresh_interval_seconds
