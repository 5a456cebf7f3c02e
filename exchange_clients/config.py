"""
Configuration management for venue clients.

Settings come from environment variables (and an optional ``.env`` file)
through pydantic-settings.
"""

from functools import lru_cache
from typing import Annotated, List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from exchange_clients.base_models import (
    ExchangeConfig,
    ExchangeType,
    UnsupportedExchangeError,
    validate_credentials,
)
from helpers.unified_logger import configure_file_sink, get_core_logger

_EXCHANGE_ALIASES = {
    "gate": ExchangeType.GATEIO,
    "gateio": ExchangeType.GATEIO,
    "okx": ExchangeType.OKX,
}

_PRICE_DEVIATION_FIELDS = {
    ExchangeType.GATEIO: "gate_max_price_deviation",
    ExchangeType.OKX: "okx_max_price_deviation",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    default_exchange: str = "okx"

    # Gate.io
    gate_api_key: str = ""
    gate_api_secret: str = ""
    gate_sandbox: bool = False

    # OKX
    okx_api_key: str = ""
    okx_api_secret: str = ""
    okx_api_passphrase: str = ""
    okx_sandbox: bool = False

    # Base currencies positions and contract listings are restricted to
    trading_symbols: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["BTC", "ETH", "SOL", "BNB", "XRP", "DOGE"],
        description="Comma-separated allow-list of base currencies",
    )

    # Requests
    request_timeout_seconds: float = 30.0
    read_max_retries: int = 3
    write_max_retries: int = 0

    # Order sanitization
    gate_max_price_deviation: float = 0.015
    okx_max_price_deviation: float = 0.05

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None

    @field_validator("trading_symbols", mode="before")
    @classmethod
    def _split_trading_symbols(cls, value: Union[List[str], str, None]) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            if not value:
                return []
            return [symbol.strip().upper() for symbol in value.split(",") if symbol.strip()]
        return [str(symbol).strip().upper() for symbol in value if str(symbol).strip()]

    @field_validator("read_max_retries", "write_max_retries")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("retry counts must be >= 0")
        return value

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def resolve_exchange_type(name: str) -> ExchangeType:
    """
    Raises:
        UnsupportedExchangeError: If ``name`` is not a known venue tag or alias
    """
    key = str(getattr(name, "value", name) or "").strip().lower()
    if key not in _EXCHANGE_ALIASES:
        raise UnsupportedExchangeError(f"Unsupported exchange: {name}")
    return _EXCHANGE_ALIASES[key]


def get_current_exchange_type(settings: Optional[Settings] = None) -> ExchangeType:
    """Venue selected by DEFAULT_EXCHANGE; unknown values fall back to OKX."""
    settings = settings or get_settings()
    try:
        return resolve_exchange_type(settings.default_exchange)
    except UnsupportedExchangeError:
        get_core_logger("config").warning(
            f"Unknown DEFAULT_EXCHANGE '{settings.default_exchange}', falling back to okx"
        )
        return ExchangeType.OKX


def get_exchange_config(
    exchange_type: Optional[ExchangeType] = None,
    settings: Optional[Settings] = None,
) -> ExchangeConfig:
    """
    Build the immutable ExchangeConfig for a venue.

    Raises:
        MissingCredentialsError: If a required credential is empty or a placeholder
    """
    settings = settings or get_settings()
    exchange_type = exchange_type or get_current_exchange_type(settings)

    if exchange_type is ExchangeType.GATEIO:
        validate_credentials("GATE_API_KEY", settings.gate_api_key)
        validate_credentials("GATE_API_SECRET", settings.gate_api_secret)
        return ExchangeConfig(
            api_key=settings.gate_api_key,
            api_secret=settings.gate_api_secret,
            sandbox=settings.gate_sandbox,
            timeout_seconds=settings.request_timeout_seconds,
        )

    validate_credentials("OKX_API_KEY", settings.okx_api_key)
    validate_credentials("OKX_API_SECRET", settings.okx_api_secret)
    validate_credentials("OKX_API_PASSPHRASE", settings.okx_api_passphrase)
    return ExchangeConfig(
        api_key=settings.okx_api_key,
        api_secret=settings.okx_api_secret,
        passphrase=settings.okx_api_passphrase,
        sandbox=settings.okx_sandbox,
        timeout_seconds=settings.request_timeout_seconds,
    )


def max_price_deviation_for(exchange: str, settings: Optional[Settings] = None) -> Optional[float]:
    """Configured price deviation for a venue tag; None for venues without a setting."""
    settings = settings or get_settings()
    exchange_type = _EXCHANGE_ALIASES.get(str(getattr(exchange, "value", exchange) or "").strip().lower())
    if exchange_type is None:
        return None
    return getattr(settings, _PRICE_DEVIATION_FIELDS[exchange_type])


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Add the file sink when LOG_DIR is set."""
    settings = settings or get_settings()
    if settings.log_dir:
        configure_file_sink(settings.log_dir)
