"""Tests for canonical <-> native symbol translation."""

import pytest

from exchange_clients.gate.common import gate_symbol_translator
from exchange_clients.okx.common import okx_symbol_translator
from exchange_clients.symbols import SymbolNotation, SymbolTranslator, parse_symbol

CANONICAL_SYMBOLS = ["BTC_USDT", "ETH_USDT", "1000PEPE_USDT", "DOGE_USD"]

TRANSLATORS = {
    "gateio": gate_symbol_translator(),
    "okx": okx_symbol_translator(),
    "unified": SymbolTranslator(SymbolNotation.UNIFIED),
}

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("venue", sorted(TRANSLATORS))
@pytest.mark.parametrize("symbol", CANONICAL_SYMBOLS)
def test_round_trip_returns_canonical_symbol(venue, symbol):
    translator = TRANSLATORS[venue]
    assert translator.to_canonical(translator.to_native(symbol)) == symbol


@pytest.mark.parametrize("venue", sorted(TRANSLATORS))
@pytest.mark.parametrize("symbol", CANONICAL_SYMBOLS)
def test_translation_is_idempotent(venue, symbol):
    translator = TRANSLATORS[venue]
    native = translator.to_native(symbol)
    assert translator.to_native(native) == native
    canonical = translator.to_canonical(native)
    assert translator.to_canonical(canonical) == canonical


def test_okx_native_forms():
    translator = okx_symbol_translator()
    assert translator.to_native("BTC_USDT") == "BTC-USDT-SWAP"
    assert translator.to_unified("BTC_USDT") == "BTC/USDT:USDT"
    assert translator.to_canonical("BTC/USDT:USDT") == "BTC_USDT"
    assert translator.to_canonical("eth-usdt-swap") == "eth_usdt"


def test_gate_native_is_canonical():
    translator = gate_symbol_translator()
    assert translator.to_native("BTC_USDT") == "BTC_USDT"
    assert translator.to_native("BTC-USDT-SWAP") == "BTC_USDT"


@pytest.mark.parametrize("symbol", ["BTC", "", "BTCUSDT"])
def test_unrecognized_symbols_pass_through(symbol):
    translator = okx_symbol_translator()
    assert translator.to_native(symbol) == symbol
    assert translator.to_canonical(symbol) == symbol


def test_base_currency_from_any_notation():
    assert SymbolTranslator.base_currency("SOL_USDT") == "SOL"
    assert SymbolTranslator.base_currency("SOL-USDT-SWAP") == "SOL"
    assert SymbolTranslator.base_currency("SOL/USDT:USDT") == "SOL"
    assert SymbolTranslator.base_currency("SOL") == "SOL"


def test_parse_symbol_rejects_partial_pairs():
    assert parse_symbol("BTC_") is None
    assert parse_symbol("-USDT") is None
    assert parse_symbol("BTC/") is None
