"""
Common constants for the Gate.io USDT-settled futures venue.

Shared by the converter, gateway and venue adapter.
"""

from exchange_clients.base_models import OrderStatus
from exchange_clients.symbols import SymbolNotation, SymbolTranslator
from exchange_clients.status import StatusMapper

GATE_SETTLE = "usdt"
GATE_PRODUCTION_HOST = "https://api.gateio.ws/api/v4"
GATE_TESTNET_HOST = "https://api-testnet.gateapi.io/api/v4"

# Hard ceiling on order size accepted by the API regardless of contract metadata
GATE_API_MAX_ORDER_SIZE = 10_000_000

GATE_MAX_PRICE_DEVIATION = 0.015

# Linear read backoff step (seconds)
GATE_READ_BACKOFF_STEP = 0.3

# Gate reports order state as status=open|finished plus finish_as for the reason
GATE_STATUS_TABLE = {
    "open": OrderStatus.OPEN,
    "_new": OrderStatus.OPEN,
    "_update": OrderStatus.OPEN,
    "finished": OrderStatus.FILLED,
    "filled": OrderStatus.FILLED,
    "liquidated": OrderStatus.FILLED,
    "auto_deleveraged": OrderStatus.FILLED,
    "cancelled": OrderStatus.CANCELLED,
    "ioc": OrderStatus.CANCELLED,
    "stp": OrderStatus.CANCELLED,
    "reduce_only": OrderStatus.CANCELLED,
    "reduce_out": OrderStatus.CANCELLED,
    "position_closed": OrderStatus.CANCELLED,
    "expired": OrderStatus.EXPIRED,
    "rejected": OrderStatus.REJECTED,
}

# Value written to finish_as when rendering a canonical order natively
GATE_FINISH_AS = {
    OrderStatus.OPEN: "",
    OrderStatus.FILLED: "filled",
    OrderStatus.CANCELLED: "cancelled",
    OrderStatus.EXPIRED: "expired",
    OrderStatus.REJECTED: "rejected",
}

GATE_MARGIN_ERROR_LABELS = {"INSUFFICIENT_MARGIN", "INSUFFICIENT_AVAILABLE", "BALANCE_NOT_ENOUGH"}


def gate_symbol_translator() -> SymbolTranslator:
    return SymbolTranslator(SymbolNotation.UNDERSCORE)


def gate_status_mapper() -> StatusMapper:
    return StatusMapper(GATE_STATUS_TABLE)
