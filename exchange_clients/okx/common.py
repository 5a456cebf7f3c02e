"""
Common constants for the OKX USDT-margined perpetual swap venue.
"""

from exchange_clients.base_models import OrderStatus, SettlementType
from exchange_clients.symbols import SymbolNotation, SymbolTranslator
from exchange_clients.status import StatusMapper

OKX_INST_TYPE = "SWAP"
OKX_SETTLE_CURRENCY = "USDT"

# OKX rejects limit orders above maxLmtSz anyway; this bounds contracts with no limit data
OKX_API_MAX_ORDER_SIZE = 100_000_000

OKX_MAX_PRICE_DEVIATION = 0.05

# Capped exponential read backoff (seconds)
OKX_READ_BACKOFF_BASE = 0.5
OKX_READ_BACKOFF_CAP = 8.0

# Max rows per page on the v5 history endpoints
OKX_HISTORY_PAGE_LIMIT = 100

# Native v5 order states plus the ccxt unified vocabulary
OKX_STATUS_TABLE = {
    "live": OrderStatus.OPEN,
    "partially_filled": OrderStatus.OPEN,
    "open": OrderStatus.OPEN,
    "filled": OrderStatus.FILLED,
    "closed": OrderStatus.FILLED,
    "canceled": OrderStatus.CANCELLED,
    "cancelled": OrderStatus.CANCELLED,
    "mmp_canceled": OrderStatus.CANCELLED,
    "expired": OrderStatus.EXPIRED,
    "rejected": OrderStatus.REJECTED,
}

OKX_NATIVE_STATES = {
    OrderStatus.OPEN: "live",
    OrderStatus.FILLED: "filled",
    OrderStatus.CANCELLED: "canceled",
    OrderStatus.EXPIRED: "expired",
    OrderStatus.REJECTED: "rejected",
}

# ordType <-> canonical time-in-force
OKX_ORD_TYPE_TO_TIF = {
    "limit": "gtc",
    "market": "ioc",
    "post_only": "poc",
    "fok": "fok",
    "ioc": "ioc",
    "optimal_limit_ioc": "ioc",
}

# Account bill types that represent settlement events
OKX_SETTLEMENT_BILL_TYPES = {
    "1": SettlementType.TRADE,
    "7": SettlementType.FUNDING,
    "8": SettlementType.DELIVERY,
    "9": SettlementType.CLAWBACK,
}


def okx_symbol_translator() -> SymbolTranslator:
    return SymbolTranslator(SymbolNotation.SWAP_ID)


def okx_status_mapper() -> StatusMapper:
    return StatusMapper(OKX_STATUS_TABLE)
