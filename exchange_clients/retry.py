"""
Bounded retry with backoff around single remote calls.

Built on tenacity's ``AsyncRetrying``. Two backoff shapes are provided, both
without jitter:

- :class:`LinearBackoff`      delay(i) = step * (i + 1)
- :class:`ExponentialBackoff` delay(i) = min(base * 2**i, cap)

``i`` is the zero-based index of the failed attempt. Errors derived from
:class:`FatalExchangeError` are never retried. On exhaustion the last error is
re-raised as the very same object.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_incrementing,
)

from exchange_clients.base_models import FatalExchangeError
from helpers.unified_logger import UnifiedLogger, get_core_logger

T = TypeVar("T")


@dataclass(frozen=True)
class LinearBackoff:
    step: float

    def delay(self, attempt_index: int) -> float:
        return self.step * (attempt_index + 1)

    def wait_strategy(self):
        return wait_incrementing(start=self.step, increment=self.step)


@dataclass(frozen=True)
class ExponentialBackoff:
    base: float
    cap: float

    def delay(self, attempt_index: int) -> float:
        return min(self.base * 2 ** attempt_index, self.cap)

    def wait_strategy(self):
        return wait_exponential(multiplier=self.base, exp_base=2, min=0, max=self.cap)


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, Exception) and not isinstance(exc, FatalExchangeError)


class RetryExecutor:
    """
    Run a coroutine factory up to ``max_retries + 1`` times.

    ``sleep`` is injectable so callers (and tests) can control backoff waits;
    a wait suspends only the call chain that issued it.
    """

    def __init__(
        self,
        logger: Optional[UnifiedLogger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.logger = logger or get_core_logger("retry")
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: int,
        backoff,
        description: str = "",
    ) -> T:
        """
        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt
            max_retries: Retries after the first attempt (0 = single attempt)
            backoff: LinearBackoff or ExponentialBackoff
            description: Label used in log lines

        Raises:
            The original exception of the last attempt, unmodified.
        """
        label = description or getattr(operation, "__name__", "operation")
        total_attempts = max(0, int(max_retries)) + 1

        def log_retry(retry_state: RetryCallState) -> None:
            delay = retry_state.next_action.sleep if retry_state.next_action else 0
            self.logger.warning(
                f"{label} failed (attempt {retry_state.attempt_number}/{total_attempts}): "
                f"{retry_state.outcome.exception()!r}; retrying in {delay:.2f}s"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(total_attempts),
            wait=backoff.wait_strategy(),
            retry=retry_if_exception(is_retryable),
            before_sleep=log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        try:
            return await retrying(operation)
        except Exception as exc:
            if is_retryable(exc) and total_attempts > 1:
                self.logger.error(f"{label} failed after {total_attempts} attempts: {exc!r}")
            raise
