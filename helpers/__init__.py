"""
Helper modules for perp-venue-bridge.
"""

from .unified_logger import (
    UnifiedLogger,
    configure_file_sink,
    get_core_logger,
    get_exchange_logger,
    get_logger,
)

__all__ = [
    'UnifiedLogger',
    'configure_file_sink',
    'get_logger',
    'get_exchange_logger',
    'get_core_logger',
]
