"""
Settlement history synthesis for venues without a ledger endpoint.

Replays three independent streams (filled orders, trades, funding payments)
as one time-ordered stream and attributes a signed P&L to each event:

- trade:   pnl = -fee (fees are costs)
- funding: pnl = funding_rate * notional

``notional`` on a funding record is taken from the receiver's side: a
positive funding rate paid by longs is carried with a negative notional for a
long position, so the product is the signed amount credited to the account.
"""

from dataclasses import asdict
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from exchange_clients.base_models import (
    CanonicalFundingRate,
    CanonicalOrder,
    CanonicalSettlement,
    CanonicalTrade,
    OrderStatus,
    SettlementType,
)
from exchange_clients.symbols import parse_symbol
from exchange_clients.utils import format_decimal, negate_numeric_str, to_decimal

_ZERO = Decimal("0")


def _settle_currency(contract: str) -> str:
    parsed = parse_symbol(contract) if contract else None
    return parsed[1] if parsed else ""


def _order_timestamp(order: CanonicalOrder) -> int:
    return order.finish_time or order.update_time or order.create_time


def _filled_amount(order: CanonicalOrder) -> Decimal:
    filled = to_decimal(order.filled_total)
    if filled:
        return abs(filled)
    size = abs(to_decimal(order.size, _ZERO))
    left = abs(to_decimal(order.left, _ZERO))
    return max(size - left, _ZERO)


def _trade_record(trade: CanonicalTrade, fallback_contract: str) -> CanonicalSettlement:
    contract = trade.contract or fallback_contract
    return CanonicalSettlement(
        id=f"trade_{trade.id}",
        contract=contract,
        type=SettlementType.TRADE.value,
        amount=trade.size,
        currency=trade.fee_currency or _settle_currency(contract),
        fee=trade.fee,
        pnl=negate_numeric_str(trade.fee),
        timestamp=trade.timestamp,
        info=asdict(trade),
    )


def _order_record(order: CanonicalOrder, fallback_contract: str) -> CanonicalSettlement:
    contract = order.contract or fallback_contract
    info = asdict(order)
    info["status"] = order.status.value
    return CanonicalSettlement(
        id=f"order_{order.id}",
        contract=contract,
        type=SettlementType.TRADE.value,
        amount=format_decimal(_filled_amount(order)),
        currency=order.fee_currency or _settle_currency(contract),
        fee=order.fee,
        pnl=negate_numeric_str(order.fee),
        timestamp=_order_timestamp(order),
        info=info,
    )


def _funding_record(funding: CanonicalFundingRate, fallback_contract: str) -> CanonicalSettlement:
    contract = funding.contract or fallback_contract
    rate = to_decimal(funding.funding_rate, _ZERO)
    notional = to_decimal(funding.notional, _ZERO)
    return CanonicalSettlement(
        id=f"funding_{contract}_{funding.funding_time}",
        contract=contract,
        type=SettlementType.FUNDING.value,
        amount="0",
        currency=_settle_currency(contract),
        fee="0",
        pnl=format_decimal(rate * notional),
        timestamp=funding.funding_time,
        info=asdict(funding),
    )


def synthesize_settlement_history(
    orders: Iterable[CanonicalOrder],
    trades: Iterable[CanonicalTrade],
    funding: Iterable[CanonicalFundingRate],
    contract: str = "",
    limit: Optional[int] = 100,
) -> List[CanonicalSettlement]:
    """
    Merge order, trade and funding history into settlement records.

    - trade records are de-duplicated by id; funding records are never dropped
    - a filled order contributes a record only when no trade references it
    - result is newest first, truncated to ``limit``
    """
    trades = list(trades)
    traded_order_ids = {trade.order_id for trade in trades if trade.order_id}

    stream: List[Tuple[int, int, CanonicalSettlement]] = []
    for order in orders:
        if order.status is OrderStatus.FILLED and order.id not in traded_order_ids:
            stream.append((_order_timestamp(order), len(stream), _order_record(order, contract)))
    for trade in trades:
        stream.append((trade.timestamp, len(stream), _trade_record(trade, contract)))
    for item in funding:
        stream.append((item.funding_time, len(stream), _funding_record(item, contract)))

    stream.sort(key=lambda entry: (entry[0], entry[1]))

    records: List[CanonicalSettlement] = []
    seen_ids = set()
    for _, _, record in stream:
        if record.type == SettlementType.TRADE.value:
            if record.id in seen_ids:
                continue
            seen_ids.add(record.id)
        records.append(record)

    records.sort(key=lambda record: record.timestamp, reverse=True)
    if limit is not None:
        records = records[: max(0, limit)]
    return records
