"""
Converters for the OKX v5 swap venue.

OKX reports direction through ``side`` / ``posSide`` next to an unsigned
size, charges fees as negative numbers, and uses millisecond timestamps.
The hooks below fold those conventions into the canonical model and back.
"""

from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from exchange_clients.base_models import CanonicalSettlement
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
from exchange_clients.utils import (
    abs_numeric_str,
    format_decimal,
    negate_numeric_str,
    to_decimal,
    to_millis,
    to_numeric_str,
)

from .common import (
    OKX_NATIVE_STATES,
    OKX_ORD_TYPE_TO_TIF,
    OKX_SETTLEMENT_BILL_TYPES,
    okx_status_mapper,
    okx_symbol_translator,
)


OKX_SCHEMAS = {
    EntityKind.ACCOUNT: (
        text("currency", "ccy"),
        num("total", "totalEq", "eq"),
        num("available", "availEq", "availBal"),
        num("position_margin", "imr"),
        num("order_margin", "ordFroz", "frozenBal"),
        num("unrealised_pnl", "upl"),
    ),
    EntityKind.POSITION: (
        symbol("contract", "instId"),
        num("size", "pos", "posSize"),
        num("leverage", "lever"),
        num("entry_price", "avgPx"),
        num("mark_price", "markPx"),
        num("liq_price", "liqPx"),
        num("unrealised_pnl", "upl"),
        num("realised_pnl", "realizedPnl", "realisedPnl"),
        num("margin", "margin", "imr"),
        num("value", "notionalUsd"),
    ),
    EntityKind.TICKER: (
        symbol("contract", "instId"),
        num("last", "last"),
        num("mark_price", "markPx"),
        num("index_price", "idxPx"),
        num("high_24h", "high24h"),
        num("low_24h", "low24h"),
        num("volume_24h", "vol24h"),
        num("change_percentage", "changePercentage"),
    ),
    EntityKind.ORDER: (
        text("id", "ordId"),
        symbol("contract", "instId"),
        num("size", "sz"),
        num("price", "px"),
        text("tif", "ordType"),
        flag("is_reduce_only", "reduceOnly"),
        text("auto_size", "autoSize"),
        num("stop_loss", "slTriggerPx"),
        num("take_profit", "tpTriggerPx"),
        status("status", "state"),
        millis("create_time", "cTime"),
        millis("update_time", "uTime"),
        millis("finish_time", "fillTime"),
        num("fill_price", "avgPx", "fillPx"),
        num("filled_total", "accFillSz"),
        num("fee", "fee"),
        text("fee_currency", "feeCcy"),
        num("left", "leavesSz"),
    ),
    EntityKind.CANDLE: (
        millis("timestamp", "ts"),
        num("volume", "vol"),
        num("close", "c"),
        num("high", "h"),
        num("low", "l"),
        num("open", "o"),
    ),
    EntityKind.CONTRACT: (
        text("id", "instId"),
        symbol("name", "instId"),
        text("settle", "settleCcy"),
        text("base", "baseCcy"),
        text("quote", "quoteCcy"),
        text("type", "instType"),
        num("leverage_min", "leverMin"),
        num("leverage_max", "lever", "leverMax"),
        num("order_size_min", "minSz"),
        num("order_size_max", "maxLmtSz"),
        num("order_price_min", "minPx"),
        num("order_price_max", "maxPx"),
        num("tick_size", "tickSz"),
        num("step_size", "lotSz"),
    ),
    EntityKind.FUNDING_RATE: (
        symbol("contract", "instId"),
        num("funding_rate", "fundingRate", "realizedRate"),
        millis("funding_time", "fundingTime"),
        millis("next_funding_time", "nextFundingTime"),
        num("notional", "notional"),
    ),
    EntityKind.TRADE: (
        text("id", "tradeId"),
        text("order_id", "ordId"),
        symbol("contract", "instId"),
        text("side", "side"),
        num("size", "fillSz"),
        num("price", "fillPx"),
        num("fee", "fee"),
        text("fee_currency", "feeCcy"),
        millis("timestamp", "ts", "fillTime"),
    ),
    EntityKind.POSITION_HISTORY: (
        symbol("contract", "instId"),
        text("side", "direction", "posSide"),
        num("size", "closeTotalPos", "openMaxPos"),
        num("leverage", "lever"),
        num("entry_price", "openAvgPx"),
        num("close_price", "closeAvgPx"),
        num("pnl", "pnl"),
        num("realised_pnl", "realizedPnl"),
        num("fee", "fee"),
        num("funding_fee", "fundingFee"),
        millis("open_time", "cTime"),
        millis("close_time", "uTime"),
    ),
}

_TIF_TO_ORD_TYPE = {"gtc": "limit", "poc": "post_only", "fok": "fok", "ioc": "ioc"}


def _signed(value: str, negative: bool) -> str:
    magnitude = abs_numeric_str(value)
    if negative and magnitude != "0":
        return f"-{magnitude}"
    return magnitude


class OkxConverter(VenueConverter):
    """Alias tables and hooks for OKX v5 swap payloads."""

    exchange_name = "okx"
    schemas = OKX_SCHEMAS
    native_statuses = OKX_NATIVE_STATES
    native_discriminators = (
        (("instId", "sz", "px"), EntityKind.ORDER),
        (("instId", "pos"), EntityKind.POSITION),
        (("instId", "posSize"), EntityKind.POSITION),
        (("instId", "last"), EntityKind.TICKER),
        (("instId", "ctMult"), EntityKind.CONTRACT),
        (("totalEq",), EntityKind.ACCOUNT),
        (("ts", "o"), EntityKind.CANDLE),
    )

    def __init__(self, symbols: Optional[SymbolTranslator] = None, statuses: Optional[StatusMapper] = None):
        super().__init__(symbols or okx_symbol_translator(), statuses or okx_status_mapper())

    # Positions ---------------------------------------------------------

    def _position_from_native(self, values: Dict[str, Any], data: Mapping[str, Any]) -> None:
        pos_side = str(data.get("posSide") or "").lower()
        if pos_side == "short":
            values["size"] = _signed(values["size"], True)
        elif pos_side == "long":
            values["size"] = abs_numeric_str(values["size"])

    def _position_to_native(self, native: Dict[str, Any], canonical: Mapping[str, Any]) -> None:
        native["posSide"] = "net"

    # Tickers -----------------------------------------------------------

    def _ticker_from_native(self, values: Dict[str, Any], data: Mapping[str, Any]) -> None:
        if data.get("changePercentage") not in (None, ""):
            return
        last = to_decimal(data.get("last"))
        open_24h = to_decimal(data.get("open24h") or data.get("sodUtc0"))
        if last is None or not open_24h:
            return
        change = ((last - open_24h) / open_24h * 100).quantize(Decimal("0.01"))
        values["change_percentage"] = format_decimal(change)

    # Orders ------------------------------------------------------------

    def _order_from_native(self, values: Dict[str, Any], data: Mapping[str, Any]) -> None:
        side = str(data.get("side") or "").lower()
        values["size"] = _signed(values["size"], side == "sell")

        ord_type = values["tif"]
        values["tif"] = OKX_ORD_TYPE_TO_TIF.get(ord_type, ord_type)

        for algo in data.get("attachAlgoOrds") or []:
            if values["stop_loss"] == "0" and algo.get("slTriggerPx"):
                values["stop_loss"] = to_numeric_str(algo["slTriggerPx"])
            if values["take_profit"] == "0" and algo.get("tpTriggerPx"):
                values["take_profit"] = to_numeric_str(algo["tpTriggerPx"])

        values["fee"] = negate_numeric_str(values["fee"])

        if "leavesSz" not in data and data.get("sz") not in (None, ""):
            remaining = (to_decimal(data.get("sz"), Decimal("0")) -
                         to_decimal(data.get("accFillSz"), Decimal("0")))
            values["left"] = format_decimal(max(remaining, Decimal("0")))

        if values["status"].is_terminal and not values["finish_time"]:
            values["finish_time"] = values["update_time"]

    def _order_to_native(self, native: Dict[str, Any], canonical: Mapping[str, Any]) -> None:
        size = to_decimal(canonical.get("size"), Decimal("0"))
        native["sz"] = abs_numeric_str(native["sz"])
        native["side"] = "sell" if size < 0 else "buy"

        price = to_decimal(canonical.get("price"), Decimal("0"))
        tif = str(canonical.get("tif") or "gtc").lower()
        native["ordType"] = "market" if price == 0 else _TIF_TO_ORD_TYPE.get(tif, "limit")

        native["fee"] = negate_numeric_str(native["fee"])

    # Contracts ---------------------------------------------------------

    def _contract_from_native(self, values: Dict[str, Any], data: Mapping[str, Any]) -> None:
        name = values["name"]
        if not values["base"]:
            base = self.symbols.base_currency(name)
            values["base"] = base if base != name else ""
        if not values["quote"] and "_" in name:
            values["quote"] = name.rsplit("_", 1)[1]
        if values["leverage_min"] == "0" and values["leverage_max"] != "0":
            values["leverage_min"] = "1"

    # Trades ------------------------------------------------------------

    def _trade_from_native(self, values: Dict[str, Any], data: Mapping[str, Any]) -> None:
        values["fee"] = negate_numeric_str(values["fee"])

    # Position history --------------------------------------------------

    def _position_history_from_native(self, values: Dict[str, Any], data: Mapping[str, Any]) -> None:
        values["fee"] = negate_numeric_str(values["fee"])
        values["size"] = abs_numeric_str(values["size"])

    # Settlement (account bills) ----------------------------------------

    def settlement_from_native(self, data: Mapping[str, Any]) -> Optional[CanonicalSettlement]:
        """
        Convert one account bill into a settlement record.

        Returns None for bill types that are not settlement events
        (deposits, transfers, ...).
        """
        settlement_type = OKX_SETTLEMENT_BILL_TYPES.get(str(data.get("type", "")).strip())
        if settlement_type is None:
            return None

        bill_id = str(data.get("billId") or "")
        trade_id = data.get("tradeId")
        if settlement_type.value == "trade" and trade_id:
            record_id = f"trade_{trade_id}"
        else:
            record_id = bill_id

        inst_id = data.get("instId")
        return CanonicalSettlement(
            id=record_id,
            contract=self.symbols.to_canonical(inst_id) if inst_id else "",
            type=settlement_type.value,
            amount=to_numeric_str(data.get("sz")),
            currency=str(data.get("ccy") or ""),
            fee=negate_numeric_str(to_numeric_str(data.get("fee"))),
            pnl=to_numeric_str(first_present(data, ("balChg", "pnl"))),
            timestamp=to_millis(data.get("ts")),
            info=dict(data),
        )
