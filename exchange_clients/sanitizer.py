"""
Pre-submission order sanitization.

Clamps and rounds a canonical :class:`OrderRequest` against live contract
metadata and the current mark price. Every step is best-effort: when the data
it needs could not be loaded, the step is skipped and the rest still run.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from exchange_clients.base_models import CanonicalContract, OrderRequest, SanitizedOrderRequest
from exchange_clients.utils import to_decimal
from helpers.unified_logger import UnifiedLogger, get_core_logger


def round_to_increment(value: Decimal, increment: Decimal) -> Decimal:
    """Round ``value`` to the nearest multiple of ``increment`` (halves away from zero)."""
    if increment <= 0:
        return value
    steps = (value / increment).to_integral_value(rounding=ROUND_HALF_UP)
    return (steps * increment).quantize(increment)


def _positive(value: Optional[str]) -> Optional[Decimal]:
    parsed = to_decimal(value)
    if parsed is None or parsed <= 0:
        return None
    return parsed


class OrderSanitizer:
    """
    Validate, clamp and round order requests for one venue.

    Steps, in order:
        1. clamp |size| into [min size, min(contract max, API ceiling)], keeping the sign
        2. clamp a limit price to mark * (1 +/- max deviation) when it strays further
        3. round price to the tick size and size to the step size
        4. carry reduce-only / position-side flags through unchanged
    """

    def __init__(
        self,
        max_price_deviation: Decimal,
        api_max_order_size: Optional[Decimal] = None,
        logger: Optional[UnifiedLogger] = None,
    ):
        self.max_price_deviation = Decimal(str(max_price_deviation))
        self.api_max_order_size = Decimal(str(api_max_order_size)) if api_max_order_size else None
        self.logger = logger or get_core_logger("sanitizer")

    def sanitize(
        self,
        request: OrderRequest,
        contract: Optional[CanonicalContract] = None,
        mark_price: Optional[Decimal] = None,
    ) -> SanitizedOrderRequest:
        size = self.clamp_size(request.size, contract, request.contract)
        price = request.price if request.price else None

        if price is not None:
            price = self.clamp_price(price, size, mark_price, request.contract)

        if contract is not None:
            tick = _positive(contract.tick_size)
            step = _positive(contract.step_size)
            if price is not None and tick is not None:
                rounded = round_to_increment(price, tick)
                if rounded != price:
                    self.logger.debug(f"[{request.contract}] Price rounded to tick {tick}: {price} -> {rounded}")
                price = rounded
            if step is not None:
                rounded = round_to_increment(size, step)
                if rounded != size:
                    self.logger.debug(f"[{request.contract}] Size rounded to step {step}: {size} -> {rounded}")
                size = rounded

        return SanitizedOrderRequest(
            contract=request.contract,
            size=size,
            price=price,
            tif=request.tif,
            reduce_only=request.reduce_only,
            auto_size=request.auto_size,
            position_side=request.position_side,
            stop_loss=request.stop_loss,
            take_profit=request.take_profit,
        )

    def clamp_size(self, size: Decimal, contract: Optional[CanonicalContract], label: str = "") -> Decimal:
        magnitude = abs(size)
        negative = size < 0

        minimum = _positive(contract.order_size_min) if contract is not None else None
        maximum = _positive(contract.order_size_max) if contract is not None else None
        if self.api_max_order_size is not None:
            maximum = min(maximum, self.api_max_order_size) if maximum is not None else self.api_max_order_size

        clamped = magnitude
        if minimum is not None and clamped < minimum:
            clamped = minimum
        if maximum is not None and clamped > maximum:
            clamped = maximum

        if clamped != magnitude:
            self.logger.warning(
                f"[{label}] Order size {magnitude} outside [{minimum or 0}, {maximum or 'inf'}], clamped to {clamped}"
            )
        return -clamped if negative else clamped

    def clamp_price(
        self,
        price: Decimal,
        size: Decimal,
        mark_price: Optional[Decimal],
        label: str = "",
    ) -> Decimal:
        if mark_price is None or mark_price <= 0:
            self.logger.warning(f"[{label}] Mark price unavailable, skipping price deviation check")
            return price

        deviation = abs(price - mark_price) / mark_price
        if deviation <= self.max_price_deviation:
            return price

        if size >= 0:
            bounded = mark_price * (1 + self.max_price_deviation)
        else:
            bounded = mark_price * (1 - self.max_price_deviation)

        self.logger.warning(
            f"[{label}] Price {price} deviates {deviation:.4%} from mark {mark_price} "
            f"(max {self.max_price_deviation:.2%}), clamped to {bounded}"
        )
        return bounded
