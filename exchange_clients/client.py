"""
Generic futures exchange client.

One class serves every venue: it is parameterized by a
:class:`~exchange_clients.venue.VenueAdapter` and talks to the venue SDK only
through the adapter's gateway. Per call, data flows one way:

    canonical request -> symbol translation / sanitization -> retry(gateway call)
    -> converter / status mapper -> canonical entity
"""

from decimal import Decimal
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from exchange_clients.base_models import (
    CanonicalAccount,
    CanonicalCandle,
    CanonicalContract,
    CanonicalFundingRate,
    CanonicalOrder,
    CanonicalOrderBook,
    CanonicalPosition,
    CanonicalPositionHistory,
    CanonicalSettlement,
    CanonicalTicker,
    CanonicalTrade,
    ExchangeConfig,
    MarginError,
    MissingContractError,
    OrderRequest,
    SanitizedOrderRequest,
)
from exchange_clients.base_gateway import BaseExchangeGateway
from exchange_clients.retry import RetryExecutor
from exchange_clients.sanitizer import OrderSanitizer
from exchange_clients.settlement import synthesize_settlement_history
from exchange_clients.utils import format_decimal, to_decimal
from exchange_clients.venue import VenueAdapter
from helpers.unified_logger import UnifiedLogger, get_core_logger, get_exchange_logger

T = TypeVar("T")

DEFAULT_TRADING_SYMBOLS = ("BTC", "ETH", "SOL", "BNB", "XRP", "DOGE")


class ExchangeClient:
    """
    Canonical operation set over one venue.

    Reads run under the venue's read backoff with ``read_max_retries``;
    writes (place/cancel order, set leverage) run with ``write_max_retries``,
    which defaults to a single attempt since no idempotency key is sent.
    """

    def __init__(
        self,
        config: ExchangeConfig,
        adapter: VenueAdapter,
        trading_symbols: Optional[Iterable[str]] = None,
        read_max_retries: int = 3,
        write_max_retries: int = 0,
        gateway: Optional[BaseExchangeGateway] = None,
        retry_executor: Optional[RetryExecutor] = None,
        logger: Optional[UnifiedLogger] = None,
    ):
        self.config = config
        self.adapter = adapter
        self.symbols = adapter.symbols
        self.converter = adapter.converter
        self.trading_symbols = tuple(
            s.strip().upper() for s in (trading_symbols or DEFAULT_TRADING_SYMBOLS) if s.strip()
        )
        self.read_max_retries = read_max_retries
        self.write_max_retries = write_max_retries

        exchange_name = adapter.exchange.value
        self.logger = logger or get_exchange_logger(exchange_name)
        self.retry = retry_executor or RetryExecutor(logger=get_core_logger("retry", exchange=exchange_name))
        self.sanitizer = OrderSanitizer(
            adapter.max_price_deviation,
            adapter.api_max_order_size,
            logger=self.logger,
        )
        self.gateway = gateway or adapter.create_gateway(config)

        self.logger.info(
            f"{exchange_name} client ready ({'sandbox' if config.sandbox else 'production'}), "
            f"trading symbols: {', '.join(self.trading_symbols)}"
        )

    def get_exchange_name(self) -> str:
        return self.adapter.exchange.value

    # ========================================================================
    # RETRY HELPERS
    # ========================================================================

    async def _read(self, operation: Callable[[], Awaitable[T]], description: str) -> T:
        return await self.retry.execute(operation, self.read_max_retries, self.adapter.read_backoff, description)

    async def _write(self, operation: Callable[[], Awaitable[T]], description: str) -> T:
        return await self.retry.execute(operation, self.write_max_retries, self.adapter.write_backoff, description)

    def _native(self, contract: Optional[str]) -> Optional[str]:
        return self.symbols.to_native(contract) if contract else None

    def _is_allowed_base(self, contract: str) -> bool:
        return self.symbols.base_currency(contract).upper() in self.trading_symbols

    # ========================================================================
    # ACCOUNT & POSITIONS
    # ========================================================================

    async def get_futures_account(self) -> CanonicalAccount:
        raw = await self._read(self.gateway.fetch_account, "get_futures_account")
        return self.converter.account_from_native(raw)

    async def get_positions(self) -> List[CanonicalPosition]:
        """Open positions in allow-listed base currencies (zero-size entries dropped)."""
        raw_positions = await self._read(self.gateway.fetch_positions, "get_positions")
        positions = []
        for raw in raw_positions or []:
            position = self.converter.position_from_native(raw)
            if position.signed_size == 0 or not self._is_allowed_base(position.contract):
                continue
            positions.append(position)
        return positions

    async def set_leverage(self, contract: str, leverage: int) -> Dict:
        native = self._native(contract)
        result = await self._write(lambda: self.gateway.set_leverage(native, leverage), "set_leverage")
        self.logger.info(f"[{contract}] Leverage set to {leverage}x")
        return result

    # ========================================================================
    # MARKET DATA
    # ========================================================================

    async def get_futures_ticker(self, contract: str) -> CanonicalTicker:
        native = self._native(contract)
        raw = await self._read(lambda: self.gateway.fetch_ticker(native), "get_futures_ticker")
        return self.converter.ticker_from_native(raw)

    async def get_futures_candles(self, contract: str, interval: str = "5m", limit: int = 100) -> List[CanonicalCandle]:
        native = self._native(contract)
        raw = await self._read(lambda: self.gateway.fetch_candles(native, interval, limit), "get_futures_candles")
        return [self.converter.candle_from_native(item) for item in raw or []]

    async def get_order_book(self, contract: str, depth: int = 10) -> CanonicalOrderBook:
        native = self._native(contract)
        raw = await self._read(lambda: self.gateway.fetch_order_book(native, depth), "get_order_book")
        return self.converter.order_book_from_native(raw, contract=contract)

    async def get_funding_rate(self, contract: str) -> CanonicalFundingRate:
        native = self._native(contract)
        raw = await self._read(lambda: self.gateway.fetch_funding_rate(native), "get_funding_rate")
        rate = self.converter.funding_rate_from_native(raw)
        if not rate.contract:
            rate.contract = self.symbols.to_canonical(contract)
        return rate

    async def get_funding_rate_history(self, contract: str, limit: int = 100) -> List[CanonicalFundingRate]:
        native = self._native(contract)
        raw = await self._read(
            lambda: self.gateway.fetch_funding_rate_history(native, limit), "get_funding_rate_history"
        )
        history = []
        for item in raw or []:
            rate = self.converter.funding_rate_from_native(item)
            if not rate.contract:
                rate.contract = self.symbols.to_canonical(contract)
            history.append(rate)
        return history

    # ========================================================================
    # CONTRACTS
    # ========================================================================

    async def get_contract_info(self, contract: str) -> CanonicalContract:
        """
        Raises:
            MissingContractError: If the venue lists no such contract
        """
        native = self._native(contract)
        raw = await self._read(lambda: self.gateway.fetch_contract(native), "get_contract_info")
        if not raw:
            raise MissingContractError(f"No contract metadata for {contract} on {self.get_exchange_name()}")
        return self.converter.contract_from_native(raw)

    async def get_all_contracts(self, base: Optional[str] = None) -> List[CanonicalContract]:
        """
        Settle-currency contracts whose base is in the allow-list, or equal to
        ``base`` when given.
        """
        raw_contracts = await self._read(self.gateway.fetch_contracts, "get_all_contracts")
        wanted = {base.upper()} if base else set(self.trading_symbols)
        contracts = []
        for raw in raw_contracts or []:
            item = self.converter.contract_from_native(raw)
            if item.settle and item.settle.upper() != self.adapter.settle_currency:
                continue
            if item.base.upper() not in wanted:
                continue
            contracts.append(item)
        return contracts

    # ========================================================================
    # ORDERS
    # ========================================================================

    async def place_order(self, request: OrderRequest) -> CanonicalOrder:
        """
        Sanitize and submit an order.

        Contract metadata and mark price are loaded best-effort; a failed load
        only skips the matching sanitization step. A reduce-only order rejected
        for insufficient margin is retried exactly once as a market order.
        """
        native = self._native(request.contract)

        contract = await self._load_contract_for_order(request.contract)
        mark_price = None
        if not request.is_market:
            mark_price = await self._load_mark_price(request.contract)

        sanitized = self.sanitizer.sanitize(request, contract, mark_price)
        self.logger.info(
            f"[{request.contract}] Placing {'market' if sanitized.is_market else 'limit'} order: "
            f"size={sanitized.size} price={sanitized.price if sanitized.price is not None else '-'} "
            f"tif={sanitized.tif} reduce_only={sanitized.reduce_only}"
        )

        try:
            raw = await self._submit(native, sanitized, "place_order")
        except MarginError as exc:
            if not sanitized.reduce_only:
                raise
            fallback = sanitized.as_market()
            self.logger.warning(
                f"[{request.contract}] Reduce-only order rejected for margin ({exc.code or exc}), "
                f"retrying once as market order"
            )
            try:
                raw = await self._submit(native, fallback, "place_order_market_fallback")
            except Exception as fallback_exc:
                self.logger.error(f"[{request.contract}] Market fallback failed: {fallback_exc!r}")
                raise

        order = self.converter.order_from_native(raw)
        self.logger.info(f"[{request.contract}] Order {order.id} accepted, status {order.status.value}")
        return order

    async def _submit(self, native: str, request: SanitizedOrderRequest, description: str) -> Dict:
        return await self._write(lambda: self.gateway.create_order(native, request), description)

    async def _load_contract_for_order(self, contract: str) -> Optional[CanonicalContract]:
        try:
            return await self.get_contract_info(contract)
        except Exception as exc:
            self.logger.warning(f"[{contract}] Contract metadata unavailable, skipping size/precision checks: {exc!r}")
            return None

    async def _load_mark_price(self, contract: str) -> Optional[Decimal]:
        try:
            ticker = await self.get_futures_ticker(contract)
        except Exception as exc:
            self.logger.warning(f"[{contract}] Mark price unavailable, skipping deviation check: {exc!r}")
            return None
        for candidate in (ticker.mark_price, ticker.last):
            price = to_decimal(candidate)
            if price is not None and price > 0:
                return price
        return None

    async def get_order(self, order_id: str, contract: Optional[str] = None) -> CanonicalOrder:
        native = self._native(contract)
        raw = await self._read(lambda: self.gateway.fetch_order(order_id, native), "get_order")
        return self.converter.order_from_native(raw)

    async def cancel_order(self, order_id: str, contract: Optional[str] = None) -> CanonicalOrder:
        """
        Cancel an open order.

        Cancelling an order that already reached a terminal state returns its
        current state instead of failing.
        """
        current = await self.get_order(order_id, contract)
        if current.status.is_terminal:
            self.logger.info(f"Order {order_id} already {current.status.value}, nothing to cancel")
            return current

        native = self._native(contract)
        try:
            raw = await self._write(lambda: self.gateway.cancel_order(order_id, native), "cancel_order")
        except Exception as exc:
            try:
                refreshed = await self.get_order(order_id, contract)
            except Exception:
                raise exc
            if refreshed.status.is_terminal:
                self.logger.info(
                    f"Order {order_id} reached {refreshed.status.value} before cancel completed"
                )
                return refreshed
            raise

        order = self.converter.order_from_native(raw)
        self.logger.info(f"Order {order_id} cancel requested, status {order.status.value}")
        return order

    async def get_open_orders(self, contract: Optional[str] = None) -> List[CanonicalOrder]:
        native = self._native(contract)
        raw = await self._read(lambda: self.gateway.fetch_open_orders(native), "get_open_orders")
        return [self.converter.order_from_native(item) for item in raw or []]

    async def get_order_history(self, contract: Optional[str] = None, limit: int = 100) -> List[CanonicalOrder]:
        native = self._native(contract)
        raw = await self._read(lambda: self.gateway.fetch_order_history(native, limit), "get_order_history")
        return [self.converter.order_from_native(item) for item in raw or []]

    async def get_my_trades(self, contract: Optional[str] = None, limit: int = 100) -> List[CanonicalTrade]:
        native = self._native(contract)
        raw = await self._read(lambda: self.gateway.fetch_my_trades(native, limit), "get_my_trades")
        return [self.converter.trade_from_native(item) for item in raw or []]

    async def get_position_history(
        self,
        contract: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[CanonicalPositionHistory]:
        """Closed positions, newest first."""
        native = self._native(contract)
        raw = await self._read(
            lambda: self.gateway.fetch_position_history(native, limit, offset),
            "get_position_history",
        )
        return [self.converter.position_history_from_native(item) for item in raw or []]

    # ========================================================================
    # SETTLEMENT
    # ========================================================================

    async def get_settlement_history(
        self,
        contract: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
        days: Optional[int] = None,
    ) -> List[CanonicalSettlement]:
        """
        Ledger events affecting balance, newest first.

        Uses the venue ledger when the gateway exposes one, otherwise
        synthesizes records from order, trade and funding history.
        """
        if not self.gateway.supports_settlement_history:
            return await self.synthesize_settlement_history(contract, limit)

        native = self._native(contract)
        raw = await self._read(
            lambda: self.gateway.fetch_settlement_history(native, limit, offset, days),
            "get_settlement_history",
        )
        records = []
        for item in raw or []:
            record = self.converter.settlement_from_native(item)
            if record is not None:
                records.append(record)
        return records

    async def synthesize_settlement_history(
        self,
        contract: Optional[str] = None,
        limit: int = 100,
    ) -> List[CanonicalSettlement]:
        """
        Rebuild settlement records from order, trade and funding history.

        Funding notional is derived from the current position in each contract,
        so funding P&L is an estimate for periods where the position changed.
        """
        orders = await self.get_order_history(contract, limit * 2)
        trades = await self.get_my_trades(contract, limit * 2)

        positions = await self.get_positions()
        notionals = {p.contract: self._receiver_notional(p) for p in positions}
        funding_contracts: Sequence[str] = [contract] if contract else list(notionals)

        funding: List[CanonicalFundingRate] = []
        for name in funding_contracts:
            canonical = self.symbols.to_canonical(name)
            for rate in await self.get_funding_rate_history(canonical, limit):
                rate.notional = notionals.get(canonical, "0")
                funding.append(rate)

        return synthesize_settlement_history(
            orders,
            trades,
            funding,
            contract=self.symbols.to_canonical(contract) if contract else "",
            limit=limit,
        )

    @staticmethod
    def _receiver_notional(position: CanonicalPosition) -> str:
        size = position.signed_size
        value = abs(to_decimal(position.value, Decimal("0")))
        if value == 0:
            value = abs(size * to_decimal(position.mark_price, Decimal("0")))
        signed = value if size > 0 else -value
        return format_decimal(-signed)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def close(self) -> None:
        await self.gateway.close()
        self.logger.debug(f"{self.get_exchange_name()} client closed")

    async def __aenter__(self) -> "ExchangeClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
