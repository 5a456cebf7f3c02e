"""
Canonical data structures, exceptions, and utilities shared by every venue.

Canonical entities are venue-neutral value objects. Numeric fields are kept as
strings so that values survive the trip between venues without floating-point
drift; timestamps are integer milliseconds. No canonical field is ever None:
each one carries a declared zero value ("0", "", False, 0).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# ============================================================================
# ENUMS
# ============================================================================

class ExchangeType(str, Enum):
    """Supported venue tags."""

    GATEIO = "gateio"
    OKX = "okx"


class OrderStatus(str, Enum):
    """Canonical order lifecycle: OPEN until exactly one terminal state."""

    OPEN = "OPEN"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.OPEN


class SettlementType(str, Enum):
    """Ledger event kinds that affect account balance/P&L."""

    TRADE = "trade"
    FUNDING = "funding"
    DELIVERY = "delivery"
    CLAWBACK = "clawback"
    POSITION_CLOSE = "position_close"


# ============================================================================
# EXCEPTIONS & ERRORS
# ============================================================================

class ExchangeClientError(Exception):
    """Base class for errors raised by this layer."""


class TransientNetworkError(ExchangeClientError):
    """Transport-level failure (connection, timeout, 5xx, rate limit). Retried."""


class FatalExchangeError(ExchangeClientError):
    """Errors that must never be retried."""


class UnsupportedExchangeError(FatalExchangeError):
    """Raised when a venue tag is not recognised."""


class MissingContractError(FatalExchangeError):
    """Raised when no contract metadata matches the requested symbol."""


class MissingCredentialsError(FatalExchangeError):
    """Raised when exchange credentials are missing or invalid (placeholders)."""


class MarginError(FatalExchangeError):
    """Venue rejected an order for insufficient margin."""

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.code = code


def validate_credentials(
    credential_name: str,
    credential_value: Optional[str],
    placeholder_values: Optional[List[str]] = None,
) -> None:
    """
    Validate exchange credentials to ensure they're not missing or placeholders.

    Args:
        credential_name: Name of the credential (e.g., 'OKX_API_KEY')
        credential_value: Value of the credential
        placeholder_values: List of placeholder values to reject

    Raises:
        MissingCredentialsError: If credential is missing or is a placeholder
    """
    if placeholder_values is None:
        placeholder_values = [
            "your_api_key_here",
            "your_secret_key_here",
            "your_passphrase_here",
            "PLACEHOLDER",
            "placeholder",
            "",
        ]

    if not credential_value:
        raise MissingCredentialsError(f"Missing {credential_name} environment variable")

    if credential_value in placeholder_values:
        raise MissingCredentialsError(f"{credential_name} is not configured (placeholder or empty)")


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True)
class ExchangeConfig:
    """Credentials and connection flags; immutable for the client's lifetime."""

    api_key: str
    api_secret: str
    passphrase: str = ""
    sandbox: bool = False
    timeout_seconds: float = 30.0

    def __repr__(self) -> str:
        return f"ExchangeConfig(api_key='***', sandbox={self.sandbox}, timeout_seconds={self.timeout_seconds})"


# ============================================================================
# CANONICAL ENTITIES
# ============================================================================

@dataclass
class CanonicalAccount:
    currency: str = ""
    total: str = "0"
    available: str = "0"
    position_margin: str = "0"
    order_margin: str = "0"
    unrealised_pnl: str = "0"


@dataclass
class CanonicalPosition:
    """Open position. The sign of ``size`` is the only direction indicator."""

    contract: str = ""
    size: str = "0"
    leverage: str = "0"
    entry_price: str = "0"
    mark_price: str = "0"
    liq_price: str = "0"
    unrealised_pnl: str = "0"
    realised_pnl: str = "0"
    margin: str = "0"
    value: str = "0"

    @property
    def signed_size(self) -> Decimal:
        return Decimal(self.size or "0")


@dataclass
class CanonicalTicker:
    contract: str = ""
    last: str = "0"
    mark_price: str = "0"
    index_price: str = "0"
    high_24h: str = "0"
    low_24h: str = "0"
    volume_24h: str = "0"
    change_percentage: str = "0"


@dataclass
class CanonicalOrder:
    """Order snapshot. A zero ``price`` means a market order."""

    id: str = ""
    contract: str = ""
    size: str = "0"
    price: str = "0"
    tif: str = ""
    is_reduce_only: bool = False
    auto_size: str = ""
    stop_loss: str = "0"
    take_profit: str = "0"
    status: OrderStatus = OrderStatus.OPEN
    create_time: int = 0
    update_time: int = 0
    finish_time: int = 0
    fill_price: str = "0"
    filled_total: str = "0"
    fee: str = "0"
    fee_currency: str = ""
    left: str = "0"

    @property
    def is_market(self) -> bool:
        return Decimal(self.price or "0") == 0


@dataclass
class CanonicalCandle:
    timestamp: int = 0
    volume: str = "0"
    close: str = "0"
    high: str = "0"
    low: str = "0"
    open: str = "0"


@dataclass
class CanonicalContract:
    """Tradable instrument metadata. ``name`` is canonical, ``id`` is venue-native."""

    id: str = ""
    name: str = ""
    settle: str = ""
    base: str = ""
    quote: str = ""
    type: str = ""
    leverage_min: str = "0"
    leverage_max: str = "0"
    order_size_min: str = "0"
    order_size_max: str = "0"
    order_price_min: str = "0"
    order_price_max: str = "0"
    tick_size: str = "0"
    step_size: str = "0"


@dataclass
class CanonicalFundingRate:
    contract: str = ""
    funding_rate: str = "0"
    funding_time: int = 0
    next_funding_time: int = 0
    notional: str = "0"


@dataclass
class CanonicalOrderBook:
    contract: str = ""
    bids: List[Tuple[str, str]] = field(default_factory=list)
    asks: List[Tuple[str, str]] = field(default_factory=list)
    timestamp: int = 0


@dataclass
class CanonicalTrade:
    id: str = ""
    order_id: str = ""
    contract: str = ""
    side: str = ""
    size: str = "0"
    price: str = "0"
    fee: str = "0"
    fee_currency: str = ""
    timestamp: int = 0


@dataclass
class CanonicalPositionHistory:
    """
    Closed (or partially closed) position.

    ``fee`` is a positive cost; ``funding_fee`` is signed P&L from funding;
    ``realised_pnl`` is the net result including both.
    """

    contract: str = ""
    side: str = ""
    size: str = "0"
    leverage: str = "0"
    entry_price: str = "0"
    close_price: str = "0"
    pnl: str = "0"
    realised_pnl: str = "0"
    fee: str = "0"
    funding_fee: str = "0"
    open_time: int = 0
    close_time: int = 0


@dataclass
class CanonicalSettlement:
    """One ledger event; ``pnl`` is signed (costs negative)."""

    id: str = ""
    contract: str = ""
    type: str = ""
    amount: str = "0"
    currency: str = ""
    fee: str = "0"
    pnl: str = "0"
    timestamp: int = 0
    info: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# ORDER REQUESTS
# ============================================================================

@dataclass(frozen=True)
class OrderRequest:
    """
    Canonical order request.

    ``size`` is signed: positive buys, negative sells. A missing or zero
    ``price`` submits a market order.
    """

    contract: str
    size: Decimal
    price: Optional[Decimal] = None
    tif: str = "gtc"
    reduce_only: bool = False
    auto_size: str = ""
    position_side: str = ""
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None

    @property
    def is_buy(self) -> bool:
        return self.size > 0

    @property
    def is_market(self) -> bool:
        return not self.price


@dataclass(frozen=True)
class SanitizedOrderRequest(OrderRequest):
    """Order request after clamping and rounding; built fresh per submission."""

    def as_market(self) -> "SanitizedOrderRequest":
        return replace(self, price=None, tif="ioc")


__all__ = [
    "ExchangeType",
    "OrderStatus",
    "SettlementType",
    "ExchangeClientError",
    "TransientNetworkError",
    "FatalExchangeError",
    "UnsupportedExchangeError",
    "MissingContractError",
    "MissingCredentialsError",
    "MarginError",
    "validate_credentials",
    "ExchangeConfig",
    "CanonicalAccount",
    "CanonicalPosition",
    "CanonicalTicker",
    "CanonicalOrder",
    "CanonicalCandle",
    "CanonicalContract",
    "CanonicalFundingRate",
    "CanonicalOrderBook",
    "CanonicalTrade",
    "CanonicalPositionHistory",
    "CanonicalSettlement",
    "OrderRequest",
    "SanitizedOrderRequest",
]
