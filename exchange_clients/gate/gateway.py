"""
Gate.io futures gateway.

Calls through the synchronous ``gate_api`` SDK on the default executor and
returns SDK models as plain dicts (``to_dict()``).
"""

import asyncio
import functools
import time
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import gate_api
import urllib3
from gate_api.exceptions import ApiException, GateApiException

from exchange_clients.base_gateway import BaseExchangeGateway
from exchange_clients.base_models import (
    ExchangeConfig,
    MarginError,
    SanitizedOrderRequest,
    TransientNetworkError,
    validate_credentials,
)
from exchange_clients.utils import format_decimal
from helpers.unified_logger import get_exchange_logger

from .common import (
    GATE_MARGIN_ERROR_LABELS,
    GATE_PRODUCTION_HOST,
    GATE_SETTLE,
    GATE_TESTNET_HOST,
)

# Trigger rules: 1 fires when price >= trigger, 2 when price <= trigger
_RULE_GTE = 1
_RULE_LTE = 2


def _as_dict(model: Any) -> Dict[str, Any]:
    if model is None:
        return {}
    if isinstance(model, dict):
        return model
    return model.to_dict()


class GateGateway(BaseExchangeGateway):
    """``gate_api.FuturesApi`` behind the gateway interface (USDT settle)."""

    def __init__(self, config: ExchangeConfig, futures_api: Optional[gate_api.FuturesApi] = None):
        super().__init__(config)
        self.logger = get_exchange_logger("gateio", component="gateway")
        self.settle = GATE_SETTLE
        self.host = GATE_TESTNET_HOST if config.sandbox else GATE_PRODUCTION_HOST

        if futures_api is None:
            configuration = gate_api.Configuration(
                host=self.host,
                key=config.api_key,
                secret=config.api_secret,
            )
            self._api_client = gate_api.ApiClient(configuration)
            futures_api = gate_api.FuturesApi(self._api_client)
        else:
            self._api_client = None
        self.futures_api = futures_api

        self.logger.info(f"Gate.io gateway using {self.host}")

    def _validate_config(self) -> None:
        validate_credentials("GATE_API_KEY", self.config.api_key)
        validate_credentials("GATE_API_SECRET", self.config.api_secret)

    def get_exchange_name(self) -> str:
        return "gateio"

    # ========================================================================
    # SDK CALL WRAPPER
    # ========================================================================

    async def _call(self, method: Callable, *args, **kwargs) -> Any:
        """Run a blocking SDK method in the executor and translate its errors."""
        kwargs.setdefault("_request_timeout", self.config.timeout_seconds)
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(method, *args, **kwargs))
        except GateApiException as exc:
            if exc.label in GATE_MARGIN_ERROR_LABELS:
                raise MarginError(f"Gate.io rejected order: {exc.label} {exc.message}", code=exc.label) from exc
            if exc.status is not None and (exc.status >= 500 or exc.status == 429):
                raise TransientNetworkError(f"Gate.io {exc.status} {exc.label}: {exc.message}") from exc
            raise
        except ApiException as exc:
            if exc.status is None or exc.status == 0 or exc.status >= 500 or exc.status == 429:
                raise TransientNetworkError(f"Gate.io HTTP {exc.status}: {exc.reason}") from exc
            raise
        except (urllib3.exceptions.HTTPError, ConnectionError, TimeoutError) as exc:
            raise TransientNetworkError(f"Gate.io transport error: {exc!r}") from exc

    # ========================================================================
    # ACCOUNT & POSITIONS
    # ========================================================================

    async def fetch_account(self) -> Dict[str, Any]:
        account = await self._call(self.futures_api.list_futures_accounts, self.settle)
        return _as_dict(account)

    async def fetch_positions(self) -> List[Dict[str, Any]]:
        positions = await self._call(self.futures_api.list_positions, self.settle)
        return [_as_dict(p) for p in positions or []]

    async def set_leverage(self, symbol: str, leverage: int) -> Dict[str, Any]:
        position = await self._call(
            self.futures_api.update_position_leverage, self.settle, symbol, str(leverage)
        )
        return _as_dict(position)

    # ========================================================================
    # MARKET DATA
    # ========================================================================

    async def fetch_ticker(self, symbol: str) -> Dict[str, Any]:
        tickers = await self._call(self.futures_api.list_futures_tickers, self.settle, contract=symbol)
        return _as_dict(tickers[0]) if tickers else {}

    async def fetch_candles(self, symbol: str, interval: str, limit: int) -> List[Dict[str, Any]]:
        candles = await self._call(
            self.futures_api.list_futures_candlesticks,
            self.settle,
            symbol,
            interval=interval,
            limit=limit,
        )
        return [_as_dict(c) for c in candles or []]

    async def fetch_order_book(self, symbol: str, depth: int) -> Dict[str, Any]:
        book = await self._call(self.futures_api.list_futures_order_book, self.settle, symbol, limit=depth)
        return _as_dict(book)

    async def fetch_funding_rate(self, symbol: str) -> Dict[str, Any]:
        contract = await self._call(self.futures_api.get_futures_contract, self.settle, symbol)
        data = _as_dict(contract)
        return {
            "contract": symbol,
            "r": data.get("funding_rate"),
            "t": data.get("funding_next_apply"),
            "funding_next_apply": data.get("funding_next_apply"),
        }

    async def fetch_funding_rate_history(self, symbol: str, limit: int) -> List[Dict[str, Any]]:
        records = await self._call(
            self.futures_api.list_futures_funding_rate_history, self.settle, symbol, limit=limit
        )
        return [{**_as_dict(r), "contract": symbol} for r in records or []]

    # ========================================================================
    # CONTRACTS
    # ========================================================================

    def _enrich_contract(self, data: Dict[str, Any]) -> Dict[str, Any]:
        # Gate contracts trade whole units and carry no settle field
        return {"settle": self.settle, "step_size": "1", **data}

    async def fetch_contract(self, symbol: str) -> Optional[Dict[str, Any]]:
        try:
            contract = await self._call(self.futures_api.get_futures_contract, self.settle, symbol)
        except GateApiException as exc:
            if exc.status == 404 or exc.label == "CONTRACT_NOT_FOUND":
                return None
            raise
        return self._enrich_contract(_as_dict(contract))

    async def fetch_contracts(self) -> List[Dict[str, Any]]:
        contracts = await self._call(self.futures_api.list_futures_contracts, self.settle)
        return [
            self._enrich_contract(_as_dict(c))
            for c in contracts or []
            if not _as_dict(c).get("in_delisting")
        ]

    # ========================================================================
    # ORDERS
    # ========================================================================

    async def create_order(self, symbol: str, request: SanitizedOrderRequest) -> Dict[str, Any]:
        order = gate_api.FuturesOrder(
            contract=symbol,
            size=int(request.size),
            price=format_decimal(request.price) if request.price else "0",
            tif="ioc" if request.is_market else (request.tif or "gtc"),
            reduce_only=request.reduce_only,
        )
        if request.auto_size:
            order.size = 0
            order.auto_size = request.auto_size
            order.reduce_only = True

        created = _as_dict(await self._call(self.futures_api.create_futures_order, self.settle, order))
        self.logger.info(f"[{symbol}] Order {created.get('id')} submitted")

        if request.stop_loss or request.take_profit:
            await self._create_protective_orders(symbol, request, created)
        return created

    async def _create_protective_orders(
        self,
        symbol: str,
        request: SanitizedOrderRequest,
        created: Dict[str, Any],
    ) -> None:
        """Stop-loss / take-profit as reduce-only price-triggered market closes."""
        is_long = request.size > 0
        targets = []
        if request.stop_loss:
            targets.append(("stop-loss", request.stop_loss, _RULE_LTE if is_long else _RULE_GTE))
        if request.take_profit:
            targets.append(("take-profit", request.take_profit, _RULE_GTE if is_long else _RULE_LTE))

        for label, trigger_price, rule in targets:
            trigger_order = gate_api.FuturesPriceTriggeredOrder(
                initial=gate_api.FuturesInitialOrder(
                    contract=symbol,
                    size=-int(request.size),
                    price="0",
                    tif="ioc",
                    reduce_only=True,
                ),
                trigger=gate_api.FuturesPriceTrigger(
                    strategy_type=0,
                    price_type=1,
                    price=format_decimal(Decimal(trigger_price)),
                    rule=rule,
                ),
            )
            try:
                await self._call(self.futures_api.create_price_triggered_order, self.settle, trigger_order)
            except Exception as exc:
                self.logger.error(
                    f"[{symbol}] Order {created.get('id')} placed but {label} at {trigger_price} failed: {exc!r}"
                )
                raise
            self.logger.info(f"[{symbol}] {label} trigger set at {trigger_price}")
        created["stop_loss"] = format_decimal(Decimal(request.stop_loss)) if request.stop_loss else "0"
        created["take_profit"] = format_decimal(Decimal(request.take_profit)) if request.take_profit else "0"

    async def fetch_order(self, order_id: str, symbol: Optional[str] = None) -> Dict[str, Any]:
        order = await self._call(self.futures_api.get_futures_order, self.settle, str(order_id))
        return _as_dict(order)

    async def cancel_order(self, order_id: str, symbol: Optional[str] = None) -> Dict[str, Any]:
        order = await self._call(self.futures_api.cancel_futures_order, self.settle, str(order_id))
        return _as_dict(order)

    async def fetch_open_orders(self, symbol: Optional[str] = None) -> List[Dict[str, Any]]:
        kwargs = {"contract": symbol} if symbol else {}
        orders = await self._call(self.futures_api.list_futures_orders, self.settle, "open", **kwargs)
        return [_as_dict(o) for o in orders or []]

    async def fetch_order_history(self, symbol: Optional[str], limit: int) -> List[Dict[str, Any]]:
        kwargs = {"limit": limit}
        if symbol:
            kwargs["contract"] = symbol
        orders = await self._call(self.futures_api.list_futures_orders, self.settle, "finished", **kwargs)
        return [_as_dict(o) for o in orders or []]

    async def fetch_my_trades(self, symbol: Optional[str], limit: int) -> List[Dict[str, Any]]:
        kwargs = {"limit": limit}
        if symbol:
            kwargs["contract"] = symbol
        trades = await self._call(self.futures_api.get_my_trades, self.settle, **kwargs)
        return [_as_dict(t) for t in trades or []]

    # ========================================================================
    # POSITION HISTORY & SETTLEMENT
    # ========================================================================

    async def _list_position_close(
        self, symbol: Optional[str], limit: int, offset: int = 0, **kwargs
    ) -> List[Dict[str, Any]]:
        kwargs["limit"] = limit
        if offset:
            kwargs["offset"] = offset
        if symbol:
            kwargs["contract"] = symbol
        closes = await self._call(self.futures_api.list_position_close, self.settle, **kwargs)
        return [_as_dict(c) for c in closes or []]

    async def fetch_position_history(
        self,
        symbol: Optional[str],
        limit: int,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        return await self._list_position_close(symbol, limit, offset)

    async def fetch_settlement_history(
        self,
        symbol: Optional[str],
        limit: int,
        offset: int = 0,
        days: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Position-close records serve as Gate's settlement ledger."""
        kwargs = {}
        if days:
            kwargs["_from"] = int(time.time()) - int(days) * 24 * 60 * 60
        return await self._list_position_close(symbol, limit, offset, **kwargs)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def close(self) -> None:
        if self._api_client is not None:
            self._api_client.close()
            self._api_client = None
