"""
Converters for the Gate.io futures venue.

Gate's wire names are snake_case and already close to the canonical model;
sizes are signed integers and timestamps are (fractional) seconds.
"""

from typing import Any, Dict, Mapping, Optional

from exchange_clients.base_models import CanonicalSettlement, SettlementType
from exchange_clients.converter import (
    EntityKind,
    VenueConverter,
    first_present,
    flag,
    millis,
    num,
    status,
    symbol,
    text,
)
from exchange_clients.status import StatusMapper
from exchange_clients.symbols import SymbolTranslator
from exchange_clients.utils import abs_numeric_str, negate_numeric_str, to_decimal, to_millis, to_numeric_str

from .common import GATE_FINISH_AS, gate_status_mapper, gate_symbol_translator


GATE_SCHEMAS = {
    EntityKind.ACCOUNT: (
        text("currency", "currency"),
        num("total", "total"),
        num("available", "available"),
        num("position_margin", "position_margin", "positionMargin"),
        num("order_margin", "order_margin", "orderMargin"),
        num("unrealised_pnl", "unrealised_pnl", "unrealisedPnl"),
    ),
    EntityKind.POSITION: (
        symbol("contract", "contract"),
        num("size", "size"),
        num("leverage", "leverage"),
        num("entry_price", "entry_price", "entryPrice"),
        num("mark_price", "mark_price", "markPrice"),
        num("liq_price", "liq_price", "liqPrice"),
        num("unrealised_pnl", "unrealised_pnl", "unrealisedPnl"),
        num("realised_pnl", "realised_pnl", "realisedPnl"),
        num("margin", "margin"),
        num("value", "value"),
    ),
    EntityKind.TICKER: (
        symbol("contract", "contract"),
        num("last", "last"),
        num("mark_price", "mark_price", "markPrice"),
        num("index_price", "index_price", "indexPrice"),
        num("high_24h", "high_24h", "high24h"),
        num("low_24h", "low_24h", "low24h"),
        num("volume_24h", "volume_24h", "volume24h"),
        num("change_percentage", "change_percentage", "changePercentage"),
    ),
    EntityKind.ORDER: (
        text("id", "id"),
        symbol("contract", "contract"),
        num("size", "size"),
        num("price", "price"),
        text("tif", "tif"),
        flag("is_reduce_only", "is_reduce_only", "reduce_only", "isReduceOnly"),
        text("auto_size", "auto_size"),
        num("stop_loss", "stop_loss", "stopLoss"),
        num("take_profit", "take_profit", "takeProfit"),
        status("status", "finish_as", "status"),
        millis("create_time", "create_time", "createTime"),
        millis("update_time", "update_time", "updateTime"),
        millis("finish_time", "finish_time", "finishTime"),
        num("fill_price", "fill_price", "fillPrice"),
        num("filled_total", "filled_total", "filledTotal"),
        num("fee", "fee"),
        text("fee_currency", "fee_currency", "feeCurrency"),
        num("left", "left"),
    ),
    EntityKind.CANDLE: (
        millis("timestamp", "t", "timestamp"),
        num("volume", "v", "volume"),
        num("close", "c", "close"),
        num("high", "h", "high"),
        num("low", "l", "low"),
        num("open", "o", "open"),
    ),
    EntityKind.CONTRACT: (
        text("id", "name", "id"),
        symbol("name", "name"),
        text("settle", "settle"),
        text("base", "base"),
        text("quote", "quote"),
        text("type", "type"),
        num("leverage_min", "leverage_min", "leverageMin"),
        num("leverage_max", "leverage_max", "leverageMax"),
        num("order_size_min", "order_size_min", "orderSizeMin"),
        num("order_size_max", "order_size_max", "orderSizeMax"),
        num("order_price_min", "order_price_min", "orderPriceMin"),
        num("order_price_max", "order_price_max", "orderPriceMax"),
        num("tick_size", "order_price_round", "tick_size"),
        num("step_size", "step_size", "order_size_round"),
    ),
    EntityKind.FUNDING_RATE: (
        symbol("contract", "contract"),
        num("funding_rate", "r", "funding_rate"),
        millis("funding_time", "t", "funding_time"),
        millis("next_funding_time", "funding_next_apply", "next_funding_time"),
        num("notional", "notional"),
    ),
    EntityKind.TRADE: (
        text("id", "id", "trade_id"),
        text("order_id", "order_id"),
        symbol("contract", "contract"),
        text("side", "side"),
        num("size", "size"),
        num("price", "price"),
        num("fee", "fee"),
        text("fee_currency", "fee_currency"),
        millis("timestamp", "create_time", "timestamp"),
    ),
    EntityKind.POSITION_HISTORY: (
        symbol("contract", "contract"),
        text("side", "side"),
        num("size", "accum_size", "max_size"),
        num("leverage", "leverage"),
        num("entry_price", "entry_price"),
        num("close_price", "close_price"),
        num("pnl", "pnl_pnl"),
        num("realised_pnl", "pnl"),
        num("fee", "pnl_fee"),
        num("funding_fee", "pnl_fund"),
        millis("open_time", "first_open_time"),
        millis("close_time", "time"),
    ),
}


class GateConverter(VenueConverter):
    """Alias tables and hooks for Gate.io futures payloads."""

    exchange_name = "gateio"
    schemas = GATE_SCHEMAS
    native_statuses = GATE_FINISH_AS
    native_time_in_seconds = True
    native_discriminators = (
        (("contract", "size", "price"), EntityKind.ORDER),
        (("contract", "leverage"), EntityKind.POSITION),
        (("contract", "last"), EntityKind.TICKER),
        (("total", "available"), EntityKind.ACCOUNT),
        (("t", "v"), EntityKind.CANDLE),
        (("name", "order_price_round"), EntityKind.CONTRACT),
    )

    def __init__(self, symbols: Optional[SymbolTranslator] = None, statuses: Optional[StatusMapper] = None):
        super().__init__(symbols or gate_symbol_translator(), statuses or gate_status_mapper())

    def _order_to_native(self, native: Dict[str, Any], canonical: Mapping[str, Any]) -> None:
        finished = native.get("finish_as") not in ("", None)
        native["status"] = "finished" if finished else "open"

    def _contract_from_native(self, values: Dict[str, Any], data: Mapping[str, Any]) -> None:
        parsed_base = self.symbols.base_currency(values["name"])
        if not values["base"] and parsed_base != values["name"]:
            values["base"] = parsed_base
        if not values["quote"] and "_" in values["name"]:
            values["quote"] = values["name"].rsplit("_", 1)[1]
        values["settle"] = values["settle"].upper()

    def _trade_from_native(self, values: Dict[str, Any], data: Mapping[str, Any]) -> None:
        size = to_decimal(values["size"])
        if not values["side"] and size is not None and size != 0:
            values["side"] = "buy" if size > 0 else "sell"
        values["size"] = abs_numeric_str(values["size"])

    # Position close history --------------------------------------------

    def _position_history_from_native(self, values: Dict[str, Any], data: Mapping[str, Any]) -> None:
        # pnl_fee is reported as a (negative) P&L contribution
        values["fee"] = negate_numeric_str(values["fee"])
        values["size"] = abs_numeric_str(values["size"])
        long_price = to_numeric_str(data.get("long_price"))
        short_price = to_numeric_str(data.get("short_price"))
        opened, closed = (short_price, long_price) if values["side"] == "short" else (long_price, short_price)
        if values["entry_price"] == "0":
            values["entry_price"] = opened
        if values["close_price"] == "0":
            values["close_price"] = closed

    def settlement_from_native(self, data: Mapping[str, Any]) -> Optional[CanonicalSettlement]:
        """
        One position-close row as a settlement record.

        ``pnl`` is the net result of the close (trading, funding and fees).
        """
        contract = data.get("contract")
        timestamp = to_millis(data.get("time"))
        if not contract or not timestamp:
            return None
        canonical = self.symbols.to_canonical(str(contract))
        quote = canonical.rsplit("_", 1)[1] if "_" in canonical else ""
        return CanonicalSettlement(
            id=f"close_{canonical}_{timestamp}",
            contract=canonical,
            type=SettlementType.POSITION_CLOSE.value,
            amount=abs_numeric_str(to_numeric_str(first_present(data, ("accum_size", "max_size")))),
            currency=quote,
            fee=negate_numeric_str(to_numeric_str(data.get("pnl_fee"))),
            pnl=to_numeric_str(data.get("pnl")),
            timestamp=timestamp,
            info=dict(data),
        )
