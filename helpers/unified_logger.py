"""
Unified logging for perp-venue-bridge.

Every component (venue clients, retry executor, order sanitizer) logs through
one shared loguru console sink. Records are bound with a ``component_id``
such as ``EXCHANGE:OKX`` or ``CORE:RETRY`` so interleaved output from several
venues stays readable.

File output is opt-in: call :func:`configure_file_sink` (or set ``log_dir`` in
settings) to add a rotating history file.
"""

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger as _logger


_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component_id]: <22}</cyan> | "
    "<level>{message}</level>"
)

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level:<8} | "
    "{extra[component_id]:<22} | "
    "{name}:{function}:{line} | "
    "{message}"
)

_console_sink_id: Optional[int] = None
_file_sink_ids: Dict[str, int] = {}


def _has_component(record) -> bool:
    return bool(record["extra"].get("component_id"))


def _setup_console_sink(log_level: str) -> None:
    """Replace loguru's default handler with the shared console sink (once per process)."""
    global _console_sink_id
    if _console_sink_id is not None:
        return

    _logger.remove()
    _console_sink_id = _logger.add(
        sys.stderr,
        format=_CONSOLE_FORMAT,
        level=log_level,
        colorize=True,
        filter=_has_component,
        backtrace=True,
        diagnose=False,
    )


def configure_file_sink(
    log_dir: Union[str, Path],
    level: str = "DEBUG",
    rotation: str = "50 MB",
    retention: str = "14 days",
) -> Path:
    """
    Add a rotating history file under ``log_dir``.

    Calling it again with the same directory is a no-op.

    Returns:
        Path of the history file.
    """
    directory = Path(log_dir)
    key = str(directory.resolve())
    history_file = directory / "venue_bridge.log"
    if key in _file_sink_ids:
        return history_file

    directory.mkdir(parents=True, exist_ok=True)
    _file_sink_ids[key] = _logger.add(
        str(history_file),
        format=_FILE_FORMAT,
        level=level.upper(),
        filter=_has_component,
        rotation=rotation,
        retention=retention,
        backtrace=False,
        diagnose=False,
        enqueue=True,
        catch=True,
    )
    return history_file


class UnifiedLogger:
    """
    Component logger with a fixed ``component_id``.

    Thin wrapper around a bound loguru logger; ``depth=1`` keeps the caller's
    file/line in records instead of this module's.
    """

    def __init__(
        self,
        component_type: str,
        component_name: str,
        context: Optional[Dict[str, Any]] = None,
        log_level: str = "INFO",
    ):
        self.component_type = component_type.upper()
        self.component_name = component_name.upper()
        self.context = context or {}
        self.log_level = log_level.upper()

        self.component_id = f"{self.component_type}:{self.component_name}"
        if self.context:
            context_str = ":".join(f"{k}={v}" for k, v in self.context.items())
            self.component_id = f"{self.component_id}:{context_str}"

        _setup_console_sink(self.log_level)
        self._logger = _logger.bind(component_id=self.component_id)

    def debug(self, message: str, **kwargs):
        self._logger.opt(depth=1).debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        self._logger.opt(depth=1).info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._logger.opt(depth=1).warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        self._logger.opt(depth=1).error(message, **kwargs)

    def critical(self, message: str, **kwargs):
        self._logger.opt(depth=1).critical(message, **kwargs)

    def log(self, message: str, level: str = "INFO", **kwargs):
        """
        Log at a level given by name.

        Args:
            message: Log message
            level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names log as INFO)
        """
        level = level.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            level = "INFO"
        self._logger.opt(depth=1).log(level, message, **kwargs)

    def with_context(self, **context) -> "UnifiedLogger":
        """Return a logger for the same component with extra context (e.g. order_id)."""
        return UnifiedLogger(
            component_type=self.component_type.lower(),
            component_name=self.component_name.lower(),
            context={**self.context, **context},
            log_level=self.log_level,
        )


def get_logger(
    component_type: str,
    component_name: str,
    context: Optional[Dict[str, Any]] = None,
    log_level: Optional[str] = None,
) -> UnifiedLogger:
    """
    Factory function to create unified loggers.

    Args:
        component_type: Type of component (exchange, core)
        component_name: Name of specific component
        context: Additional context (contract, account, ...)
        log_level: Log level (defaults to env LOG_LEVEL or INFO)

    Examples:
        logger = get_logger("exchange", "okx", {"contract": "BTC_USDT"})
        logger = get_logger("core", "retry")
    """
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    return UnifiedLogger(
        component_type=component_type,
        component_name=component_name,
        context=context,
        log_level=log_level,
    )


def get_exchange_logger(exchange_name: str, **context) -> UnifiedLogger:
    """Get logger for venue clients and gateways."""
    return get_logger("exchange", exchange_name, context or None)


def get_core_logger(module_name: str, **context) -> UnifiedLogger:
    """Get logger for venue-independent machinery (retry, sanitizer, factory)."""
    return get_logger("core", module_name, context or None)
