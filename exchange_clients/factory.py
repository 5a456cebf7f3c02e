"""
Exchange factory for creating venue clients.
"""

import importlib
from typing import Callable, Dict, List, Optional

from exchange_clients.base_gateway import BaseExchangeGateway
from exchange_clients.base_models import ExchangeConfig, UnsupportedExchangeError
from exchange_clients.client import ExchangeClient
from exchange_clients.config import (
    Settings,
    configure_logging,
    get_current_exchange_type,
    get_exchange_config,
    get_settings,
    max_price_deviation_for,
)
from exchange_clients.venue import VenueAdapter


class ExchangeFactory:
    """Factory class for creating exchange clients."""

    # venue tag -> dotted path of the adapter builder (imported lazily)
    _registered_exchanges: Dict[str, str] = {
        'gateio': 'exchange_clients.venue.gate_adapter',
        'okx': 'exchange_clients.venue.okx_adapter',
    }

    _aliases: Dict[str, str] = {
        'gate': 'gateio',
    }

    @classmethod
    def _canonical_name(cls, exchange_name: str) -> str:
        name = str(getattr(exchange_name, "value", exchange_name) or "").strip().lower()
        name = cls._aliases.get(name, name)
        if name not in cls._registered_exchanges:
            available_exchanges = ', '.join(cls._registered_exchanges.keys())
            raise UnsupportedExchangeError(
                f"Unsupported exchange: {exchange_name}. Available exchanges: {available_exchanges}"
            )
        return name

    @classmethod
    def create_adapter(cls, exchange_name: str, max_price_deviation: Optional[float] = None) -> VenueAdapter:
        """Build the venue adapter registered under ``exchange_name``."""
        name = cls._canonical_name(exchange_name)
        module_path, builder_name = cls._registered_exchanges[name].rsplit('.', 1)
        try:
            builder = getattr(importlib.import_module(module_path), builder_name)
        except (ImportError, AttributeError) as e:
            raise ImportError(f"Failed to import adapter builder {cls._registered_exchanges[name]}: {e}")
        return builder(max_price_deviation=max_price_deviation)

    @classmethod
    def create_exchange(
        cls,
        exchange_name: str,
        config: ExchangeConfig,
        settings: Optional[Settings] = None,
        gateway: Optional[BaseExchangeGateway] = None,
    ) -> ExchangeClient:
        """Create an exchange client instance.

        Args:
            exchange_name: Venue tag ('gateio', 'gate' or 'okx')
            config: Credentials and sandbox flag
            settings: Tunables (allow-list, retries, price deviation); defaults to env settings
            gateway: Pre-built gateway, mainly for tests

        Returns:
            ExchangeClient bound to the venue

        Raises:
            UnsupportedExchangeError: If the exchange is not supported
        """
        name = cls._canonical_name(exchange_name)
        settings = settings or get_settings()
        adapter = cls.create_adapter(name, max_price_deviation=max_price_deviation_for(name, settings))
        return ExchangeClient(
            config=config,
            adapter=adapter,
            trading_symbols=settings.trading_symbols,
            read_max_retries=settings.read_max_retries,
            write_max_retries=settings.write_max_retries,
            gateway=gateway,
        )

    @classmethod
    def create_from_settings(cls, settings: Optional[Settings] = None) -> ExchangeClient:
        """Create the client for DEFAULT_EXCHANGE with credentials from the environment."""
        settings = settings or get_settings()
        configure_logging(settings)
        exchange_type = get_current_exchange_type(settings)
        config = get_exchange_config(exchange_type, settings)
        return cls.create_exchange(exchange_type.value, config, settings)

    @classmethod
    def get_supported_exchanges(cls) -> List[str]:
        """Get list of supported exchanges.

        Returns:
            List of supported exchange names
        """
        return list(cls._registered_exchanges.keys())

    @classmethod
    def register_exchange(cls, name: str, adapter_builder: Callable[..., VenueAdapter]) -> None:
        """Register a new venue.

        Args:
            name: Exchange name
            adapter_builder: Module-level callable taking ``max_price_deviation`` and
                returning a VenueAdapter
        """
        if not callable(adapter_builder):
            raise ValueError("adapter_builder must be callable")

        cls._registered_exchanges[name.lower()] = f"{adapter_builder.__module__}.{adapter_builder.__qualname__}"
