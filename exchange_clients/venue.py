"""
Venue adapter values.

A :class:`VenueAdapter` bundles everything venue-specific the generic client
needs: symbol translator, converter, status mapper, numeric limits, read
backoff and the gateway constructor. The client is parameterized by one of
these at construction instead of being subclassed per venue.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional, Union

from exchange_clients.base_gateway import BaseExchangeGateway
from exchange_clients.base_models import ExchangeConfig, ExchangeType
from exchange_clients.converter import VenueConverter
from exchange_clients.retry import ExponentialBackoff, LinearBackoff
from exchange_clients.status import StatusMapper
from exchange_clients.symbols import SymbolTranslator

Backoff = Union[LinearBackoff, ExponentialBackoff]


@dataclass(frozen=True)
class VenueAdapter:
    exchange: ExchangeType
    symbols: SymbolTranslator
    converter: VenueConverter
    statuses: StatusMapper
    max_price_deviation: Decimal
    api_max_order_size: Optional[Decimal]
    read_backoff: Backoff
    write_backoff: Backoff
    gateway_factory: Callable[[ExchangeConfig], BaseExchangeGateway]
    # Quote currency of the contracts this venue trades
    settle_currency: str = "USDT"

    def create_gateway(self, config: ExchangeConfig) -> BaseExchangeGateway:
        return self.gateway_factory(config)


def gate_adapter(max_price_deviation: Optional[float] = None) -> VenueAdapter:
    from exchange_clients.gate.common import (
        GATE_API_MAX_ORDER_SIZE,
        GATE_MAX_PRICE_DEVIATION,
        GATE_READ_BACKOFF_STEP,
    )
    from exchange_clients.gate.converters import GateConverter
    from exchange_clients.gate.gateway import GateGateway

    converter = GateConverter()
    deviation = GATE_MAX_PRICE_DEVIATION if max_price_deviation is None else max_price_deviation
    return VenueAdapter(
        exchange=ExchangeType.GATEIO,
        symbols=converter.symbols,
        converter=converter,
        statuses=converter.statuses,
        max_price_deviation=Decimal(str(deviation)),
        api_max_order_size=Decimal(GATE_API_MAX_ORDER_SIZE),
        read_backoff=LinearBackoff(GATE_READ_BACKOFF_STEP),
        write_backoff=LinearBackoff(GATE_READ_BACKOFF_STEP),
        gateway_factory=GateGateway,
    )


def okx_adapter(max_price_deviation: Optional[float] = None) -> VenueAdapter:
    from exchange_clients.okx.common import (
        OKX_API_MAX_ORDER_SIZE,
        OKX_MAX_PRICE_DEVIATION,
        OKX_READ_BACKOFF_BASE,
        OKX_READ_BACKOFF_CAP,
    )
    from exchange_clients.okx.converters import OkxConverter
    from exchange_clients.okx.gateway import OkxGateway

    converter = OkxConverter()
    deviation = OKX_MAX_PRICE_DEVIATION if max_price_deviation is None else max_price_deviation
    return VenueAdapter(
        exchange=ExchangeType.OKX,
        symbols=converter.symbols,
        converter=converter,
        statuses=converter.statuses,
        max_price_deviation=Decimal(str(deviation)),
        api_max_order_size=Decimal(OKX_API_MAX_ORDER_SIZE),
        read_backoff=ExponentialBackoff(OKX_READ_BACKOFF_BASE, OKX_READ_BACKOFF_CAP),
        write_backoff=ExponentialBackoff(OKX_READ_BACKOFF_BASE, OKX_READ_BACKOFF_CAP),
        gateway_factory=OkxGateway,
    )
