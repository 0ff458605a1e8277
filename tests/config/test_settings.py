"""
Derby Rounds - Settings Tests
"""

import pytest
from pydantic import ValidationError

from src.config.settings import Settings
from tests.conftest import make_settings


class TestDefaults:
    def test_timings(self):
        settings = Settings(_env_file=None)
        assert settings.bet_window_ms == 120_000
        assert settings.race_duration_ms == 30_000
        assert settings.countdown_interval_ms == 1_000
        assert settings.cooldown_ms == 15_000

    def test_bets(self):
        settings = Settings(_env_file=None)
        assert settings.min_bet == 0.001
        assert settings.max_bet == 1.0


class TestValidation:
    def test_min_above_max(self):
        with pytest.raises(ValidationError, match="cannot exceed"):
            make_settings(min_bet=2.0, max_bet=1.0)

    def test_race_duration_positive(self):
        with pytest.raises(ValidationError):
            make_settings(race_duration_ms=0)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("BET_WINDOW_MS", "5000")
        assert Settings(_env_file=None).bet_window_ms == 5000


class TestConfigured:
    def test_nothing_configured(self):
        settings = make_settings()
        assert not settings.supabase_configured
        assert not settings.ledger_configured

    def test_supabase_configured(self):
        settings = make_settings(supabase_url="https://x.supabase.co", supabase_anon_key="key")
        assert settings.supabase_configured

    def test_ledger_needs_address_and_key(self):
        assert not make_settings(ledger_contract_address="0x" + "11" * 20).ledger_configured
        assert make_settings(
            ledger_contract_address="0x" + "11" * 20,
            ledger_owner_private_key="0x" + "22" * 32,
        ).ledger_configured
