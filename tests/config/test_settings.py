"""
Tests for environment-driven settings.

Tests Settings parsing, venue selection and ExchangeConfig construction.
"""

import pytest

from exchange_clients.base_models import ExchangeType, MissingCredentialsError
from exchange_clients.config import (
    Settings,
    get_current_exchange_type,
    get_exchange_config,
    max_price_deviation_for,
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "DEFAULT_EXCHANGE",
        "TRADING_SYMBOLS",
        "OKX_API_KEY",
        "OKX_API_SECRET",
        "OKX_API_PASSPHRASE",
        "GATE_API_KEY",
        "GATE_API_SECRET",
        "READ_MAX_RETRIES",
        "WRITE_MAX_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettingsLoading:
    """Test loading settings from the environment."""

    def test_defaults(self, clean_env):
        settings = Settings(_env_file=None)

        assert settings.default_exchange == "okx"
        assert settings.trading_symbols == ["BTC", "ETH", "SOL", "BNB", "XRP", "DOGE"]
        assert settings.read_max_retries == 3
        assert settings.write_max_retries == 0
        assert settings.gate_max_price_deviation == 0.015
        assert settings.okx_max_price_deviation == 0.05

    def test_trading_symbols_from_comma_separated_env(self, clean_env):
        clean_env.setenv("TRADING_SYMBOLS", "btc, eth ,,sol")

        settings = Settings(_env_file=None)

        assert settings.trading_symbols == ["BTC", "ETH", "SOL"]

    def test_env_is_case_insensitive(self, clean_env):
        clean_env.setenv("okx_api_key", "abc")
        clean_env.setenv("READ_MAX_RETRIES", "7")

        settings = Settings(_env_file=None)

        assert settings.okx_api_key == "abc"
        assert settings.read_max_retries == 7

    def test_negative_retries_rejected(self, clean_env):
        with pytest.raises(ValueError):
            Settings(_env_file=None, write_max_retries=-1)


class TestExchangeSelection:
    """Test venue selection and per-venue configuration."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("okx", ExchangeType.OKX),
            ("OKX", ExchangeType.OKX),
            ("gate", ExchangeType.GATEIO),
            ("gateio", ExchangeType.GATEIO),
            ("kraken", ExchangeType.OKX),
        ],
    )
    def test_current_exchange_type(self, clean_env, value, expected):
        settings = Settings(_env_file=None, default_exchange=value)
        assert get_current_exchange_type(settings) is expected

    def test_gate_config(self, clean_env):
        settings = Settings(
            _env_file=None,
            gate_api_key="key",
            gate_api_secret="secret",
            gate_sandbox=True,
            request_timeout_seconds=12,
        )

        config = get_exchange_config(ExchangeType.GATEIO, settings)

        assert config.api_key == "key"
        assert config.passphrase == ""
        assert config.sandbox is True
        assert config.timeout_seconds == 12

    def test_okx_requires_passphrase(self, clean_env):
        settings = Settings(_env_file=None, okx_api_key="key", okx_api_secret="secret")

        with pytest.raises(MissingCredentialsError):
            get_exchange_config(ExchangeType.OKX, settings)

    def test_placeholder_credentials_rejected(self, clean_env):
        settings = Settings(_env_file=None, gate_api_key="your_api_key_here", gate_api_secret="secret")

        with pytest.raises(MissingCredentialsError):
            get_exchange_config(ExchangeType.GATEIO, settings)

    def test_config_repr_masks_secrets(self, clean_env):
        settings = Settings(_env_file=None, okx_api_key="key", okx_api_secret="topsecret", okx_api_passphrase="pp")

        config = get_exchange_config(ExchangeType.OKX, settings)

        assert "topsecret" not in repr(config)
        assert "key" not in repr(config).replace("api_key", "")

    def test_price_deviation_lookup(self, clean_env):
        settings = Settings(_env_file=None, gate_max_price_deviation=0.02)

        assert max_price_deviation_for("gate", settings) == 0.02
        assert max_price_deviation_for(ExchangeType.OKX, settings) == 0.05
        assert max_price_deviation_for("custom", settings) is None
