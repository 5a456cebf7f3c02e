"""
OKX Exchange Module

USDT-margined swaps through ccxt's async OKX client.
"""

from .common import okx_status_mapper, okx_symbol_translator
from .converters import OkxConverter

__all__ = [
    'OkxConverter',
    'okx_status_mapper',
    'okx_symbol_translator',
]
