"""
Shared Exchange Clients Library

One client surface for perpetual futures on several centralized venues.
Each venue plugs in through a VenueAdapter (symbol notation, payload
conversion, status table, sanitization limits and the SDK gateway).

Modules:
    - client: ExchangeClient, the venue-agnostic operation set
    - venue: VenueAdapter and the per-venue adapter builders
    - factory: ExchangeFactory for building clients by venue tag
    - base_models: Canonical dataclasses, requests and errors
"""

from .base_models import (
    CanonicalAccount,
    CanonicalCandle,
    CanonicalContract,
    CanonicalFundingRate,
    CanonicalOrder,
    CanonicalOrderBook,
    CanonicalPosition,
    CanonicalPositionHistory,
    CanonicalSettlement,
    CanonicalTicker,
    CanonicalTrade,
    ExchangeClientError,
    ExchangeConfig,
    ExchangeType,
    FatalExchangeError,
    MarginError,
    MissingContractError,
    MissingCredentialsError,
    OrderRequest,
    OrderStatus,
    SanitizedOrderRequest,
    SettlementType,
    TransientNetworkError,
    UnsupportedExchangeError,
    validate_credentials,
)
from .client import ExchangeClient
from .converter import convert_input, convert_output, get_converter
from .factory import ExchangeFactory
from .retry import ExponentialBackoff, LinearBackoff, RetryExecutor
from .sanitizer import OrderSanitizer
from .status import StatusMapper
from .symbols import SymbolNotation, SymbolTranslator
from .venue import VenueAdapter, gate_adapter, okx_adapter

__all__ = [
    "CanonicalAccount",
    "CanonicalCandle",
    "CanonicalContract",
    "CanonicalFundingRate",
    "CanonicalOrder",
    "CanonicalOrderBook",
    "CanonicalPosition",
    "CanonicalPositionHistory",
    "CanonicalSettlement",
    "CanonicalTicker",
    "CanonicalTrade",
    "ExchangeClientError",
    "ExchangeConfig",
    "ExchangeType",
    "FatalExchangeError",
    "MarginError",
    "MissingContractError",
    "MissingCredentialsError",
    "OrderRequest",
    "OrderStatus",
    "SanitizedOrderRequest",
    "SettlementType",
    "TransientNetworkError",
    "UnsupportedExchangeError",
    "validate_credentials",
    "ExchangeClient",
    "convert_input",
    "convert_output",
    "get_converter",
    "ExchangeFactory",
    "ExponentialBackoff",
    "LinearBackoff",
    "RetryExecutor",
    "OrderSanitizer",
    "StatusMapper",
    "SymbolNotation",
    "SymbolTranslator",
    "VenueAdapter",
    "gate_adapter",
    "okx_adapter",
]

__version__ = "1.0.0"
