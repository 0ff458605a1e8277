"""
Derby Rounds - Application Settings

Loads configuration from environment variables using Pydantic Settings.
Timings are in milliseconds, bet bounds in ether units.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase (history store + realtime broadcast), optional
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    # Settlement ledger
    ledger_rpc_url: str = "https://rpc.sepolia.org"
    ledger_contract_address: str = ""
    ledger_owner_private_key: str = ""
    ledger_timeout_s: float = Field(default=60.0, gt=0)

    # Round timing
    bet_window_ms: int = Field(default=120_000, ge=0)
    race_duration_ms: int = Field(default=30_000, gt=0)
    countdown_interval_ms: int = Field(default=1_000, gt=0)
    lock_delay_ms: int = Field(default=1_000, ge=0)
    result_buffer_ms: int = Field(default=2_000, ge=0)
    cooldown_ms: int = Field(default=15_000, ge=0)
    skip_delay_ms: int = Field(default=5_000, ge=0)
    error_delay_ms: int = Field(default=10_000, ge=0)

    # Bets
    min_bet: float = Field(default=0.001, gt=0)
    max_bet: float = Field(default=1.0, gt=0)

    # History
    history_size: int = Field(default=50, gt=0)
    history_query_limit: int = Field(default=20, gt=0)

    # Application
    broadcast_channel: str = "race"
    debug: bool = False
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @model_validator(mode="after")
    def _check_bet_bounds(self) -> "Settings":
        if self.min_bet > self.max_bet:
            raise ValueError(
                f"min_bet ({self.min_bet}) cannot exceed max_bet ({self.max_bet})."
            )
        return self

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def ledger_configured(self) -> bool:
        return bool(self.ledger_contract_address and self.ledger_owner_private_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached singleton settings instance."""
    return Settings()
