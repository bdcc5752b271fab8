import os

from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the legacy Socket env name for the Bungee API key."""

        super().model_post_init(__context)

        if not self.bungee_api_key:
            fallback = os.getenv("SOCKET_API_KEY")
            if fallback:
                object.__setattr__(self, "bungee_api_key", fallback)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=True, description="Emit JSON log lines instead of console output")

    # Refresh scheduling
    refresh_interval_seconds: float = Field(
        default=30.0,
        description="Age after which a successful quote is stale and refetched",
    )
    refresh_ceiling_seconds: float = Field(
        default=120.0,
        description="Maximum unattended auto-refresh duration before refreshing stops",
    )

    # Fingerprinting
    calldata_digest: Literal["full", "edges"] = Field(
        default="full",
        description="How attached call payloads are digested into the quote key",
    )

    # Reverse quote buffer
    reverse_quote_base_buffer: float = Field(
        default=0.003,
        description="Safety margin added on top of slippage for reverse quotes",
    )
    reverse_quote_max_buffer: float = Field(
        default=0.05,
        description="Upper bound for the reverse quote buffer",
    )

    # Providers
    provider_timeout_seconds: int = Field(default=20, description="Per-host provider request timeout")
    enable_relay: bool = Field(default=True, description="Enable Relay swap and bridge quotes")
    enable_bungee: bool = Field(default=True, description="Enable Bungee swap and bridge quotes")
    relay_base_url: str = Field(
        default="",
        description="Override the default Relay API base URL",
    )
    bungee_base_url: str = Field(
        default="",
        description="Override the default Bungee API base URL",
    )
    bungee_api_key: str = Field(default="", description="Bungee API key (optional for public endpoints)")
    quote_referrer: str = Field(default="quotekit", description="Referrer tag sent with Relay quotes")
    default_receiver_address: str = Field(
        default="0x000000000000000000000000000000000000dEaD",
        description="Receiver used for quoting when no wallet is connected",
    )

    # Debug tracing
    trace_quoting: bool = Field(default=False, description="Record a trace entry for every completed fetch")
    trace_max_entries: int = Field(default=50, description="Number of trace entries kept in memory")


settings = Settings()
