"""
Field-level conversion between venue-native payloads and canonical entities.

Each venue describes every canonical field with a :class:`FieldSpec`: the
canonical name, the venue aliases to look for (first present wins; the first
alias is the name written on output) and how the value is coerced. Anything
a flat alias table cannot express (folding ``side`` into the size sign, fee
sign conventions, derived fields) lives in per-entity hooks on the venue's
:class:`VenueConverter` subclass.

Call sites that know the entity kind use the explicit per-entity methods.
:func:`convert_input` / :func:`convert_output` exist only for payloads of
unknown shape and resolve the kind through a fixed, ordered discriminator
list (first match wins).
"""

import importlib
from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Type

from exchange_clients.base_models import (
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
    OrderStatus,
    UnsupportedExchangeError,
)
from exchange_clients.status import StatusMapper
from exchange_clients.symbols import SymbolTranslator
from exchange_clients.utils import to_bool, to_int, to_millis, to_numeric_str


class EntityKind(str, Enum):
    ACCOUNT = "account"
    POSITION = "position"
    TICKER = "ticker"
    ORDER = "order"
    CANDLE = "candle"
    CONTRACT = "contract"
    FUNDING_RATE = "funding_rate"
    TRADE = "trade"
    POSITION_HISTORY = "position_history"


class FieldKind(str, Enum):
    NUMBER = "number"    # numeric string, zero "0"
    TEXT = "text"        # plain string, zero ""
    BOOL = "bool"        # zero False
    INT = "int"          # zero 0
    MILLIS = "millis"    # timestamp normalized to int milliseconds, zero 0
    SYMBOL = "symbol"    # trading pair, translated between notations
    STATUS = "status"    # order status, mapped through the venue StatusMapper


@dataclass(frozen=True)
class FieldSpec:
    name: str
    aliases: Tuple[str, ...] = ()
    kind: FieldKind = FieldKind.NUMBER


def num(name: str, *aliases: str) -> FieldSpec:
    return FieldSpec(name, aliases, FieldKind.NUMBER)


def text(name: str, *aliases: str) -> FieldSpec:
    return FieldSpec(name, aliases, FieldKind.TEXT)


def flag(name: str, *aliases: str) -> FieldSpec:
    return FieldSpec(name, aliases, FieldKind.BOOL)


def millis(name: str, *aliases: str) -> FieldSpec:
    return FieldSpec(name, aliases, FieldKind.MILLIS)


def symbol(name: str, *aliases: str) -> FieldSpec:
    return FieldSpec(name, aliases, FieldKind.SYMBOL)


def status(name: str, *aliases: str) -> FieldSpec:
    return FieldSpec(name, aliases, FieldKind.STATUS)


ENTITY_MODELS: Dict[EntityKind, Type] = {
    EntityKind.ACCOUNT: CanonicalAccount,
    EntityKind.POSITION: CanonicalPosition,
    EntityKind.TICKER: CanonicalTicker,
    EntityKind.ORDER: CanonicalOrder,
    EntityKind.CANDLE: CanonicalCandle,
    EntityKind.CONTRACT: CanonicalContract,
    EntityKind.FUNDING_RATE: CanonicalFundingRate,
    EntityKind.TRADE: CanonicalTrade,
    EntityKind.POSITION_HISTORY: CanonicalPositionHistory,
}

# A discriminator matches when every listed key is present in the payload.
Discriminator = Tuple[Tuple[str, ...], EntityKind]

# Priority order for canonical payloads of unknown kind.
CANONICAL_DISCRIMINATORS: Tuple[Discriminator, ...] = (
    (("size", "price"), EntityKind.ORDER),
    (("leverage",), EntityKind.POSITION),
    (("last",), EntityKind.TICKER),
    (("total",), EntityKind.ACCOUNT),
    (("timestamp", "volume"), EntityKind.CANDLE),
    (("id", "name"), EntityKind.CONTRACT),
)


def first_present(data: Mapping[str, Any], aliases: Iterable[str]) -> Any:
    for alias in aliases:
        value = data.get(alias)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def match_discriminator(data: Mapping[str, Any], discriminators: Sequence[Discriminator]) -> Optional[EntityKind]:
    """Return the kind of the first discriminator whose keys are all present."""
    for keys, kind in discriminators:
        if all(key in data for key in keys):
            return kind
    return None


def as_mapping(entity: Any) -> Dict[str, Any]:
    """Canonical entity (dataclass or dict) as a plain dict."""
    if is_dataclass(entity) and not isinstance(entity, type):
        return asdict(entity)
    return dict(entity)


class VenueConverter:
    """
    Alias-table driven converter for one venue.

    Subclasses provide ``schemas`` (entity kind -> field specs),
    ``native_discriminators`` (ordered, for native payloads of unknown kind),
    ``native_statuses`` (canonical status -> native string written on output)
    and optional ``_<entity>_from_native`` / ``_<entity>_to_native`` hooks.
    """

    exchange_name: str = ""
    schemas: Dict[EntityKind, Tuple[FieldSpec, ...]] = {}
    native_discriminators: Tuple[Discriminator, ...] = ()
    native_statuses: Dict[OrderStatus, str] = {}
    native_time_in_seconds: bool = False

    def __init__(self, symbols: SymbolTranslator, statuses: StatusMapper):
        self.symbols = symbols
        self.statuses = statuses

    # ------------------------------------------------------------------
    # Generic machinery
    # ------------------------------------------------------------------

    def from_native(self, kind: EntityKind, data: Mapping[str, Any]):
        """Build the canonical entity of ``kind`` from a native payload."""
        data = data or {}
        values = {spec.name: self._read(spec, data) for spec in self.schemas[kind]}
        hook = getattr(self, f"_{kind.value}_from_native", None)
        if hook is not None:
            hook(values, data)
        return ENTITY_MODELS[kind](**values)

    def to_native(self, kind: EntityKind, entity: Any) -> Dict[str, Any]:
        """Render a canonical entity (dataclass or dict) under native field names."""
        canonical = as_mapping(entity)
        native: Dict[str, Any] = {}
        for spec in self.schemas[kind]:
            if not spec.aliases:
                continue
            native[spec.aliases[0]] = self._write(spec, canonical.get(spec.name))
        hook = getattr(self, f"_{kind.value}_to_native", None)
        if hook is not None:
            hook(native, canonical)
        return native

    def _read(self, spec: FieldSpec, data: Mapping[str, Any]) -> Any:
        raw = first_present(data, spec.aliases)
        kind = spec.kind
        if kind is FieldKind.NUMBER:
            return to_numeric_str(raw)
        if kind is FieldKind.TEXT:
            return "" if raw is None else str(raw)
        if kind is FieldKind.BOOL:
            return to_bool(raw)
        if kind is FieldKind.INT:
            return to_int(raw)
        if kind is FieldKind.MILLIS:
            return to_millis(raw)
        if kind is FieldKind.SYMBOL:
            return self.symbols.to_canonical(str(raw)) if raw is not None else ""
        if kind is FieldKind.STATUS:
            return self.statuses.map(raw)
        raise ValueError(f"Unhandled field kind: {kind}")

    def _write(self, spec: FieldSpec, value: Any) -> Any:
        kind = spec.kind
        if kind is FieldKind.NUMBER:
            return to_numeric_str(value)
        if kind is FieldKind.TEXT:
            return "" if value is None else str(value)
        if kind is FieldKind.BOOL:
            return to_bool(value)
        if kind is FieldKind.INT:
            return to_int(value)
        if kind is FieldKind.MILLIS:
            ms = to_int(value)
            if not self.native_time_in_seconds:
                return ms
            return ms // 1000 if ms % 1000 == 0 else ms / 1000
        if kind is FieldKind.SYMBOL:
            return self.symbols.to_native(str(value)) if value else ""
        if kind is FieldKind.STATUS:
            raw = str(getattr(value, "value", value) or "").strip().upper()
            # Anything outside the canonical set is written as OPEN
            return self.native_statuses.get(OrderStatus.__members__.get(raw, OrderStatus.OPEN), "")
        raise ValueError(f"Unhandled field kind: {kind}")

    # ------------------------------------------------------------------
    # Per-entity entry points
    # ------------------------------------------------------------------

    def account_from_native(self, data: Mapping[str, Any]) -> CanonicalAccount:
        return self.from_native(EntityKind.ACCOUNT, data)

    def account_to_native(self, account) -> Dict[str, Any]:
        return self.to_native(EntityKind.ACCOUNT, account)

    def position_from_native(self, data: Mapping[str, Any]) -> CanonicalPosition:
        return self.from_native(EntityKind.POSITION, data)

    def position_to_native(self, position) -> Dict[str, Any]:
        return self.to_native(EntityKind.POSITION, position)

    def ticker_from_native(self, data: Mapping[str, Any]) -> CanonicalTicker:
        return self.from_native(EntityKind.TICKER, data)

    def ticker_to_native(self, ticker) -> Dict[str, Any]:
        return self.to_native(EntityKind.TICKER, ticker)

    def order_from_native(self, data: Mapping[str, Any]) -> CanonicalOrder:
        return self.from_native(EntityKind.ORDER, data)

    def order_to_native(self, order) -> Dict[str, Any]:
        return self.to_native(EntityKind.ORDER, order)

    def candle_from_native(self, data: Mapping[str, Any]) -> CanonicalCandle:
        return self.from_native(EntityKind.CANDLE, data)

    def candle_to_native(self, candle) -> Dict[str, Any]:
        return self.to_native(EntityKind.CANDLE, candle)

    def contract_from_native(self, data: Mapping[str, Any]) -> CanonicalContract:
        return self.from_native(EntityKind.CONTRACT, data)

    def contract_to_native(self, contract) -> Dict[str, Any]:
        return self.to_native(EntityKind.CONTRACT, contract)

    def funding_rate_from_native(self, data: Mapping[str, Any]) -> CanonicalFundingRate:
        return self.from_native(EntityKind.FUNDING_RATE, data)

    def trade_from_native(self, data: Mapping[str, Any]) -> CanonicalTrade:
        return self.from_native(EntityKind.TRADE, data)

    def order_book_from_native(self, data: Mapping[str, Any], contract: str = "") -> CanonicalOrderBook:
        """
        Order book levels may be ``{"p": .., "s": ..}`` dicts or
        ``[price, size, ...]`` sequences; both become ``(price, size)`` string pairs.
        """
        data = data or {}
        return CanonicalOrderBook(
            contract=self.symbols.to_canonical(contract) if contract else "",
            bids=[self._book_level(level) for level in data.get("bids") or []],
            asks=[self._book_level(level) for level in data.get("asks") or []],
            timestamp=to_millis(first_present(data, ("ts", "current", "timestamp"))),
        )

    @staticmethod
    def _book_level(level: Any) -> Tuple[str, str]:
        if isinstance(level, Mapping):
            return to_numeric_str(level.get("p")), to_numeric_str(level.get("s"))
        return to_numeric_str(level[0]), to_numeric_str(level[1])

    def position_history_from_native(self, data: Mapping[str, Any]) -> CanonicalPositionHistory:
        return self.from_native(EntityKind.POSITION_HISTORY, data)

    def settlement_from_native(self, data: Mapping[str, Any]) -> Optional[CanonicalSettlement]:
        """
        One native ledger row as a settlement record, or None when the row is
        not a settlement event. Venues with a ledger endpoint override this.
        """
        return None

    # ------------------------------------------------------------------
    # Unknown-shape dispatch
    # ------------------------------------------------------------------

    def detect_native_kind(self, data: Mapping[str, Any]) -> Optional[EntityKind]:
        return match_discriminator(data, self.native_discriminators)


_CONVERTER_REGISTRY: Dict[str, str] = {
    "gateio": "exchange_clients.gate.converters.GateConverter",
    "gate": "exchange_clients.gate.converters.GateConverter",
    "okx": "exchange_clients.okx.converters.OkxConverter",
}


def get_converter(exchange: str) -> VenueConverter:
    """
    Default converter for a venue tag.

    Raises:
        UnsupportedExchangeError: If the tag is not a known venue
    """
    key = str(getattr(exchange, "value", exchange) or "").lower()
    class_path = _CONVERTER_REGISTRY.get(key)
    if class_path is None:
        raise UnsupportedExchangeError(f"Unsupported exchange: {exchange}")
    module_path, class_name = class_path.rsplit(".", 1)
    converter_class = getattr(importlib.import_module(module_path), class_name)
    return converter_class()


def convert_input(data: Any, exchange: str) -> Any:
    """
    Canonical payload of unknown kind -> native payload.

    Kind is resolved with :data:`CANONICAL_DISCRIMINATORS`; lists are
    converted element-wise; a payload matching no discriminator is returned
    unchanged.
    """
    converter = get_converter(exchange)
    return _dispatch(data, lambda item: _convert_canonical_item(converter, item))


def convert_output(data: Any, exchange: str) -> Any:
    """
    Native payload of unknown kind -> canonical entity.

    Kind is resolved with the venue's ``native_discriminators``; lists are
    converted element-wise; a payload matching no discriminator is returned
    unchanged.
    """
    converter = get_converter(exchange)
    return _dispatch(data, lambda item: _convert_native_item(converter, item))


def _dispatch(data: Any, convert_item) -> Any:
    if isinstance(data, list):
        return [convert_item(item) for item in data]
    return convert_item(data)


def _convert_canonical_item(converter: VenueConverter, item: Any) -> Any:
    if not (isinstance(item, Mapping) or (is_dataclass(item) and not isinstance(item, type))):
        return item
    canonical = as_mapping(item)
    kind = match_discriminator(canonical, CANONICAL_DISCRIMINATORS)
    if kind is None:
        return item
    return converter.to_native(kind, canonical)


def _convert_native_item(converter: VenueConverter, item: Any) -> Any:
    if not isinstance(item, Mapping):
        return item
    kind = converter.detect_native_kind(item)
    if kind is None:
        return item
    return converter.from_native(kind, item)

