"""Tests for order status normalization."""

import pytest

from exchange_clients.base_models import OrderStatus
from exchange_clients.gate.common import GATE_STATUS_TABLE, gate_status_mapper
from exchange_clients.okx.common import OKX_STATUS_TABLE, okx_status_mapper

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "mapper,table",
    [
        (gate_status_mapper(), GATE_STATUS_TABLE),
        (okx_status_mapper(), OKX_STATUS_TABLE),
    ],
)
def test_every_venue_status_maps_to_one_canonical_status(mapper, table):
    for raw, expected in table.items():
        mapped = mapper.map(raw)
        assert mapped is expected
        assert mapped in set(OrderStatus)


@pytest.mark.parametrize("raw", [None, "", "something_new", "PARTIALLY_CANCELED_X"])
def test_unknown_status_defaults_to_open(raw):
    assert gate_status_mapper().map(raw) is OrderStatus.OPEN
    assert okx_status_mapper().map(raw) is OrderStatus.OPEN


def test_lookup_is_case_insensitive():
    mapper = okx_status_mapper()
    assert mapper.map("FILLED") is OrderStatus.FILLED
    assert mapper.map(" Canceled ") is OrderStatus.CANCELLED
    assert "LIVE" in mapper
    assert "live" in mapper.known_statuses()


def test_gate_finish_reasons():
    mapper = gate_status_mapper()
    assert mapper.map("ioc") is OrderStatus.CANCELLED
    assert mapper.map("liquidated") is OrderStatus.FILLED
    assert mapper.map("open") is OrderStatus.OPEN


def test_terminal_states():
    assert not OrderStatus.OPEN.is_terminal
    for status in (OrderStatus.FILLED, OrderStatus.CANCELLED, OrderStatus.EXPIRED, OrderStatus.REJECTED):
        assert status.is_terminal
