"""
Tests for the generic exchange client.

The venue gateway is replaced with AsyncMocks returning native payloads, so
every test runs the real translator, converter, sanitizer and retry layer.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from exchange_clients.base_gateway import BaseExchangeGateway
from exchange_clients.base_models import (
    ExchangeConfig,
    MarginError,
    MissingContractError,
    OrderRequest,
    OrderStatus,
    TransientNetworkError,
)
from exchange_clients.client import ExchangeClient
from exchange_clients.retry import RetryExecutor
from exchange_clients.venue import gate_adapter, okx_adapter

pytestmark = pytest.mark.unit


async def _no_sleep(_seconds):
    return None


def _gateway(supports_settlement=False):
    gateway = MagicMock(spec=BaseExchangeGateway)
    for name in (
        "fetch_account",
        "fetch_positions",
        "set_leverage",
        "fetch_ticker",
        "fetch_candles",
        "fetch_order_book",
        "fetch_funding_rate",
        "fetch_funding_rate_history",
        "fetch_contract",
        "fetch_contracts",
        "create_order",
        "fetch_order",
        "cancel_order",
        "fetch_open_orders",
        "fetch_order_history",
        "fetch_my_trades",
        "fetch_position_history",
        "fetch_settlement_history",
        "close",
    ):
        setattr(gateway, name, AsyncMock())
    gateway.supports_settlement_history = supports_settlement
    return gateway


def _client(adapter_builder, gateway, **kwargs):
    return ExchangeClient(
        config=ExchangeConfig(api_key="key", api_secret="secret", passphrase="pass"),
        adapter=adapter_builder(),
        gateway=gateway,
        retry_executor=RetryExecutor(sleep=_no_sleep),
        **kwargs,
    )


GATE_CONTRACT = {
    "name": "BTC_USDT",
    "settle": "usdt",
    "order_price_round": "0.1",
    "order_size_min": 1,
    "order_size_max": 1000,
    "step_size": "1",
}


# ----------------------------------------------------------------------------
# Account & positions
# ----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_positions_filtered_by_allow_list_and_size():
    gateway = _gateway()
    gateway.fetch_positions.return_value = [
        {"instId": "BTC-USDT-SWAP", "pos": "2", "posSide": "net", "lever": "10"},
        {"instId": "ETH-USDT-SWAP", "pos": "0", "posSide": "net"},
        {"instId": "PEPE-USDT-SWAP", "pos": "1000", "posSide": "net"},
        {"instId": "SOL-USDT-SWAP", "pos": "5", "posSide": "short"},
    ]
    client = _client(okx_adapter, gateway)

    positions = await client.get_positions()

    assert [(p.contract, p.size) for p in positions] == [("BTC_USDT", "2"), ("SOL_USDT", "-5")]


@pytest.mark.asyncio
async def test_custom_allow_list():
    gateway = _gateway()
    gateway.fetch_positions.return_value = [
        {"contract": "PEPE_USDT", "size": 10, "leverage": "5"},
        {"contract": "BTC_USDT", "size": 1, "leverage": "5"},
    ]
    client = _client(gate_adapter, gateway, trading_symbols=["pepe"])

    positions = await client.get_positions()

    assert [p.contract for p in positions] == ["PEPE_USDT"]


@pytest.mark.asyncio
async def test_account_read_retries_transient_errors():
    gateway = _gateway()
    gateway.fetch_account.side_effect = [
        TransientNetworkError("reset"),
        {"currency": "USDT", "total": "1000", "available": "900"},
    ]
    client = _client(gate_adapter, gateway)

    account = await client.get_futures_account()

    assert account.total == "1000"
    assert gateway.fetch_account.await_count == 2


@pytest.mark.asyncio
async def test_read_exhaustion_surfaces_original_error():
    gateway = _gateway()
    error = TransientNetworkError("down")
    gateway.fetch_account.side_effect = error
    client = _client(gate_adapter, gateway, read_max_retries=2)

    with pytest.raises(TransientNetworkError) as exc_info:
        await client.get_futures_account()

    assert exc_info.value is error
    assert gateway.fetch_account.await_count == 3


@pytest.mark.asyncio
async def test_set_leverage_translates_symbol_and_is_not_retried():
    gateway = _gateway()
    gateway.set_leverage.side_effect = TransientNetworkError("timeout")
    client = _client(okx_adapter, gateway)

    with pytest.raises(TransientNetworkError):
        await client.set_leverage("BTC_USDT", 5)

    gateway.set_leverage.assert_awaited_once_with("BTC-USDT-SWAP", 5)


# ----------------------------------------------------------------------------
# Market data & contracts
# ----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_market_data_calls_use_native_symbols():
    gateway = _gateway()
    gateway.fetch_ticker.return_value = {"instId": "ETH-USDT-SWAP", "last": "2000", "markPx": "2001"}
    gateway.fetch_candles.return_value = [{"ts": "1700000000000", "o": "1", "h": "2", "l": "1", "c": "2", "vol": "5"}]
    gateway.fetch_order_book.return_value = {"ts": "1700000000000", "bids": [["1999", "3"]], "asks": [["2001", "1"]]}
    client = _client(okx_adapter, gateway)

    ticker = await client.get_futures_ticker("ETH_USDT")
    candles = await client.get_futures_candles("ETH_USDT", interval="1m", limit=1)
    book = await client.get_order_book("ETH_USDT", depth=5)

    assert ticker.contract == "ETH_USDT"
    assert ticker.mark_price == "2001"
    assert candles[0].timestamp == 1700000000000
    assert book.contract == "ETH_USDT"
    assert book.bids == [("1999", "3")]
    gateway.fetch_ticker.assert_awaited_once_with("ETH-USDT-SWAP")
    gateway.fetch_candles.assert_awaited_once_with("ETH-USDT-SWAP", "1m", 1)
    gateway.fetch_order_book.assert_awaited_once_with("ETH-USDT-SWAP", 5)


@pytest.mark.asyncio
async def test_funding_rate_history_fills_contract():
    gateway = _gateway()
    gateway.fetch_funding_rate_history.return_value = [{"t": 1700000000, "r": "0.0001"}]
    client = _client(gate_adapter, gateway)

    history = await client.get_funding_rate_history("BTC_USDT", limit=1)

    assert history[0].contract == "BTC_USDT"
    assert history[0].funding_time == 1700000000000


@pytest.mark.asyncio
async def test_missing_contract_raises():
    gateway = _gateway()
    gateway.fetch_contract.return_value = None
    client = _client(gate_adapter, gateway)

    with pytest.raises(MissingContractError):
        await client.get_contract_info("NOPE_USDT")
    assert gateway.fetch_contract.await_count == 1


@pytest.mark.asyncio
async def test_all_contracts_filtered_by_settle_and_base():
    gateway = _gateway()
    gateway.fetch_contracts.return_value = [
        dict(GATE_CONTRACT),
        {**GATE_CONTRACT, "name": "DOGE_USDT"},
        {**GATE_CONTRACT, "name": "WIF_USDT"},
        {**GATE_CONTRACT, "name": "BTC_USD", "settle": "btc"},
    ]
    client = _client(gate_adapter, gateway)

    contracts = await client.get_all_contracts()
    only_doge = await client.get_all_contracts(base="doge")

    assert [c.name for c in contracts] == ["BTC_USDT", "DOGE_USDT"]
    assert [c.name for c in only_doge] == ["DOGE_USDT"]


# ----------------------------------------------------------------------------
# Orders
# ----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_place_order_sanitizes_before_submission():
    gateway = _gateway()
    gateway.fetch_contract.return_value = dict(GATE_CONTRACT)
    gateway.fetch_ticker.return_value = {"contract": "BTC_USDT", "last": "100", "mark_price": "100"}
    gateway.create_order.return_value = {
        "id": 42,
        "contract": "BTC_USDT",
        "size": 1000,
        "price": "101.5",
        "status": "open",
        "finish_as": "",
    }
    client = _client(gate_adapter, gateway)

    order = await client.place_order(OrderRequest(contract="BTC_USDT", size=Decimal("5000"), price=Decimal("110")))

    symbol, submitted = gateway.create_order.await_args.args
    assert symbol == "BTC_USDT"
    assert submitted.size == Decimal("1000")
    assert submitted.price == Decimal("101.5")
    assert order.id == "42"
    assert order.status is OrderStatus.OPEN


@pytest.mark.asyncio
async def test_place_order_proceeds_when_metadata_unavailable():
    gateway = _gateway()
    gateway.fetch_contract.side_effect = TransientNetworkError("down")
    gateway.fetch_ticker.side_effect = TransientNetworkError("down")
    gateway.create_order.return_value = {"ordId": "1", "instId": "BTC-USDT-SWAP", "sz": "0.5", "px": "150", "side": "buy", "state": "live"}
    client = _client(okx_adapter, gateway, read_max_retries=0)

    order = await client.place_order(OrderRequest(contract="BTC_USDT", size=Decimal("0.5"), price=Decimal("150")))

    submitted = gateway.create_order.await_args.args[1]
    assert submitted.size == Decimal("0.5")
    assert submitted.price == Decimal("150")
    assert order.size == "0.5"


@pytest.mark.asyncio
async def test_place_order_is_submitted_once_on_transient_error():
    gateway = _gateway()
    gateway.fetch_contract.return_value = dict(GATE_CONTRACT)
    gateway.create_order.side_effect = TransientNetworkError("timeout")
    client = _client(gate_adapter, gateway)

    with pytest.raises(TransientNetworkError):
        await client.place_order(OrderRequest(contract="BTC_USDT", size=Decimal("1")))

    assert gateway.create_order.await_count == 1


@pytest.mark.asyncio
async def test_reduce_only_margin_rejection_falls_back_to_market_once():
    gateway = _gateway()
    gateway.fetch_contract.return_value = dict(GATE_CONTRACT)
    gateway.fetch_ticker.return_value = {"contract": "BTC_USDT", "mark_price": "100"}
    gateway.create_order.side_effect = [
        MarginError("insufficient", code="INSUFFICIENT_MARGIN"),
        {"id": 7, "contract": "BTC_USDT", "size": -2, "price": "0", "status": "finished", "finish_as": "filled"},
    ]
    client = _client(gate_adapter, gateway)

    order = await client.place_order(
        OrderRequest(contract="BTC_USDT", size=Decimal("-2"), price=Decimal("99"), reduce_only=True)
    )

    first, second = [call.args[1] for call in gateway.create_order.await_args_list]
    assert first.price == Decimal("99")
    assert second.price is None
    assert second.tif == "ioc"
    assert second.reduce_only is True
    assert order.status is OrderStatus.FILLED


@pytest.mark.asyncio
async def test_market_fallback_failure_propagates():
    gateway = _gateway()
    gateway.fetch_contract.return_value = dict(GATE_CONTRACT)
    gateway.fetch_ticker.return_value = {"contract": "BTC_USDT", "mark_price": "100"}
    fallback_error = MarginError("still insufficient", code="INSUFFICIENT_MARGIN")
    gateway.create_order.side_effect = [MarginError("insufficient"), fallback_error]
    client = _client(gate_adapter, gateway)

    with pytest.raises(MarginError) as exc_info:
        await client.place_order(OrderRequest(contract="BTC_USDT", size=Decimal("-2"), price=Decimal("99"), reduce_only=True))

    assert exc_info.value is fallback_error
    assert gateway.create_order.await_count == 2


@pytest.mark.asyncio
async def test_margin_rejection_without_reduce_only_propagates():
    gateway = _gateway()
    gateway.fetch_contract.return_value = dict(GATE_CONTRACT)
    gateway.create_order.side_effect = MarginError("insufficient")
    client = _client(gate_adapter, gateway)

    with pytest.raises(MarginError):
        await client.place_order(OrderRequest(contract="BTC_USDT", size=Decimal("2")))

    assert gateway.create_order.await_count == 1


@pytest.mark.asyncio
async def test_cancel_terminal_order_is_noop():
    gateway = _gateway()
    gateway.fetch_order.return_value = {"id": "5", "contract": "BTC_USDT", "size": 1, "price": "100", "status": "finished", "finish_as": "filled"}
    client = _client(gate_adapter, gateway)

    order = await client.cancel_order("5", "BTC_USDT")

    assert order.status is OrderStatus.FILLED
    gateway.cancel_order.assert_not_awaited()


@pytest.mark.asyncio
async def test_cancel_open_order():
    gateway = _gateway()
    gateway.fetch_order.return_value = {"ordId": "5", "instId": "BTC-USDT-SWAP", "sz": "1", "px": "100", "side": "buy", "state": "live"}
    gateway.cancel_order.return_value = {"ordId": "5", "instId": "BTC-USDT-SWAP", "sz": "1", "px": "100", "side": "buy", "state": "canceled"}
    client = _client(okx_adapter, gateway)

    order = await client.cancel_order("5", "BTC_USDT")

    assert order.status is OrderStatus.CANCELLED
    gateway.cancel_order.assert_awaited_once_with("5", "BTC-USDT-SWAP")


@pytest.mark.asyncio
async def test_cancel_race_with_fill_returns_terminal_state():
    gateway = _gateway()
    gateway.fetch_order.side_effect = [
        {"ordId": "5", "instId": "BTC-USDT-SWAP", "sz": "1", "px": "100", "side": "buy", "state": "live"},
        {"ordId": "5", "instId": "BTC-USDT-SWAP", "sz": "1", "px": "100", "side": "buy", "state": "filled"},
    ]
    gateway.cancel_order.side_effect = RuntimeError("order does not exist")
    client = _client(okx_adapter, gateway)

    order = await client.cancel_order("5", "BTC_USDT")

    assert order.status is OrderStatus.FILLED


@pytest.mark.asyncio
async def test_cancel_failure_on_open_order_propagates():
    gateway = _gateway()
    live = {"ordId": "5", "instId": "BTC-USDT-SWAP", "sz": "1", "px": "100", "side": "buy", "state": "live"}
    gateway.fetch_order.return_value = live
    error = RuntimeError("rejected")
    gateway.cancel_order.side_effect = error
    client = _client(okx_adapter, gateway)

    with pytest.raises(RuntimeError) as exc_info:
        await client.cancel_order("5", "BTC_USDT")

    assert exc_info.value is error


# ----------------------------------------------------------------------------
# Settlement history
# ----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_settlement_history_uses_native_ledger_when_available():
    gateway = _gateway(supports_settlement=True)
    gateway.fetch_settlement_history.return_value = [
        {"billId": "1", "type": "8", "instId": "BTC-USDT-SWAP", "balChg": "3", "ts": "1700000000000"},
        {"billId": "2", "type": "2", "ts": "1700000000001"},
    ]
    client = _client(okx_adapter, gateway)

    records = await client.get_settlement_history("BTC_USDT", limit=10, days=7)

    gateway.fetch_settlement_history.assert_awaited_once_with("BTC-USDT-SWAP", 10, 0, 7)
    assert [(r.id, r.type) for r in records] == [("1", "delivery")]


@pytest.mark.asyncio
async def test_settlement_history_synthesized_without_ledger():
    gateway = _gateway()
    gateway.fetch_order_history.return_value = []
    gateway.fetch_my_trades.return_value = [
        {"id": 11, "order_id": "o1", "contract": "BTC_USDT", "size": 1, "price": "100", "fee": "0.1", "create_time": 1700000000},
        {"id": 11, "order_id": "o1", "contract": "BTC_USDT", "size": 1, "price": "100", "fee": "0.1", "create_time": 1700000000},
    ]
    gateway.fetch_positions.return_value = [
        {"contract": "BTC_USDT", "size": 2, "leverage": "5", "value": "200", "mark_price": "100"},
    ]
    gateway.fetch_funding_rate_history.return_value = [{"t": 1700003600, "r": "0.0001"}]
    client = _client(gate_adapter, gateway)

    records = await client.get_settlement_history("BTC_USDT", limit=10)

    assert [r.id for r in records] == ["funding_BTC_USDT_1700003600000", "trade_11"]
    assert records[0].pnl == "-0.02"
    assert records[1].pnl == "-0.1"
    gateway.fetch_order_history.assert_awaited_once_with("BTC_USDT", 20)


@pytest.mark.asyncio
async def test_synthesized_history_keeps_funding_for_every_position():
    gateway = _gateway()
    gateway.fetch_order_history.return_value = []
    gateway.fetch_my_trades.return_value = []
    gateway.fetch_positions.return_value = [
        {"contract": "BTC_USDT", "size": 2, "leverage": "5", "value": "200", "mark_price": "100"},
        {"contract": "ETH_USDT", "size": -4, "leverage": "5", "value": "100", "mark_price": "25"},
    ]
    gateway.fetch_funding_rate_history.return_value = [{"t": 1700003600, "r": "0.0001"}]
    client = _client(gate_adapter, gateway)

    records = await client.synthesize_settlement_history(limit=10)

    assert sorted((r.contract, r.pnl) for r in records) == [("BTC_USDT", "-0.02"), ("ETH_USDT", "0.01")]
    assert gateway.fetch_funding_rate_history.await_count == 2


@pytest.mark.asyncio
async def test_gate_settlement_history_reads_position_closes():
    gateway = _gateway(supports_settlement=True)
    gateway.fetch_settlement_history.return_value = [
        {"contract": "BTC_USDT", "time": 1700000000, "pnl": "5.5", "pnl_fee": "-0.25", "accum_size": "3"},
    ]
    client = _client(gate_adapter, gateway)

    records = await client.get_settlement_history("BTC_USDT", limit=20)

    gateway.fetch_settlement_history.assert_awaited_once_with("BTC_USDT", 20, 0, None)
    assert [(r.id, r.type, r.pnl, r.fee) for r in records] == [
        ("close_BTC_USDT_1700000000000", "position_close", "5.5", "0.25"),
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "adapter_builder,native_symbol,row",
    [
        (
            gate_adapter,
            "BTC_USDT",
            {"contract": "BTC_USDT", "side": "long", "accum_size": "2", "long_price": "100",
             "short_price": "110", "pnl": "19.5", "pnl_fee": "-0.5", "time": 1700000000},
        ),
        (
            okx_adapter,
            "BTC-USDT-SWAP",
            {"instId": "BTC-USDT-SWAP", "direction": "long", "closeTotalPos": "2", "openAvgPx": "100",
             "closeAvgPx": "110", "realizedPnl": "19.5", "fee": "-0.5", "uTime": "1700000000000"},
        ),
    ],
)
async def test_position_history(adapter_builder, native_symbol, row):
    gateway = _gateway()
    gateway.fetch_position_history.side_effect = [TransientNetworkError("timeout"), [row]]
    client = _client(adapter_builder, gateway)

    history = await client.get_position_history("BTC_USDT", limit=10, offset=5)

    gateway.fetch_position_history.assert_awaited_with(native_symbol, 10, 5)
    assert gateway.fetch_position_history.await_count == 2
    assert len(history) == 1
    closed = history[0]
    assert (closed.contract, closed.side, closed.size) == ("BTC_USDT", "long", "2")
    assert (closed.entry_price, closed.close_price) == ("100", "110")
    assert (closed.realised_pnl, closed.fee) == ("19.5", "0.5")
    assert closed.close_time == 1700000000000


@pytest.mark.asyncio
async def test_close_releases_gateway():
    gateway = _gateway()
    async with _client(gate_adapter, gateway) as client:
        assert client.get_exchange_name() == "gateio"
    gateway.close.assert_awaited_once()
