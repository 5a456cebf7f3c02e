"""
Gate.io Exchange Module

USDT-settled futures through the gate_api SDK.
"""

from .common import gate_status_mapper, gate_symbol_translator
from .converters import GateConverter

__all__ = [
    'GateConverter',
    'gate_status_mapper',
    'gate_symbol_translator',
]
