"""
Trading-pair symbol translation.

Canonical pairs are written ``BASE_QUOTE``. Venues use one of these native
notations:

- ``BASE_QUOTE``        underscore (Gate.io contracts; identical to canonical)
- ``BASE-QUOTE-SWAP``   instrument id (OKX perpetual swaps)
- ``BASE/QUOTE:QUOTE``  unified market symbol (ccxt linear swaps)

Every form is recognised on input, so both directions are idempotent. A
string with no recognised separator is returned unchanged.
"""

from enum import Enum
from typing import Optional, Tuple


class SymbolNotation(str, Enum):
    UNDERSCORE = "underscore"
    SWAP_ID = "swap_id"
    UNIFIED = "unified"


SWAP_SUFFIX = "-SWAP"


def parse_symbol(symbol: str) -> Optional[Tuple[str, str]]:
    """
    Split any known notation into ``(base, quote)``.

    Returns None when the string matches no notation.
    """
    if not symbol:
        return None

    if "/" in symbol:
        pair, _, _settle = symbol.partition(":")
        base, _, quote = pair.partition("/")
        if base and quote and "/" not in quote:
            return base, quote
        return None

    if "-" in symbol:
        pair = symbol
        if pair.upper().endswith(SWAP_SUFFIX):
            pair = pair[: -len(SWAP_SUFFIX)]
        base, _, quote = pair.partition("-")
        if base and quote and "-" not in quote:
            return base, quote
        return None

    if "_" in symbol:
        base, _, quote = symbol.rpartition("_")
        if base and quote:
            return base, quote

    return None


def format_symbol(base: str, quote: str, notation: SymbolNotation) -> str:
    if notation is SymbolNotation.SWAP_ID:
        return f"{base}-{quote}{SWAP_SUFFIX}"
    if notation is SymbolNotation.UNIFIED:
        return f"{base}/{quote}:{quote}"
    return f"{base}_{quote}"


class SymbolTranslator:
    """Bidirectional canonical <-> native symbol conversion for one venue."""

    def __init__(self, native_notation: SymbolNotation):
        self.native_notation = native_notation

    def to_native(self, symbol: str) -> str:
        return self.to_notation(symbol, self.native_notation)

    def to_canonical(self, symbol: str) -> str:
        return self.to_notation(symbol, SymbolNotation.UNDERSCORE)

    def to_unified(self, symbol: str) -> str:
        return self.to_notation(symbol, SymbolNotation.UNIFIED)

    @staticmethod
    def to_notation(symbol: str, notation: SymbolNotation) -> str:
        parsed = parse_symbol(symbol)
        if parsed is None:
            return symbol
        return format_symbol(parsed[0], parsed[1], notation)

    @staticmethod
    def base_currency(symbol: str) -> str:
        """Base currency of any known notation; unknown strings are returned whole."""
        parsed = parse_symbol(symbol)
        return parsed[0] if parsed else symbol

    def __repr__(self) -> str:
        return f"SymbolTranslator(native={self.native_notation.value})"
