"""
OKX swap gateway.

Calls through ``ccxt.async_support.okx`` and hands back the native OKX v5
payloads (the ``info`` member of ccxt's unified structures), so conversion
always starts from OKX field names.
"""

import time
from typing import Any, Dict, List, Optional

import ccxt.async_support as ccxt

from exchange_clients.base_gateway import BaseExchangeGateway
from exchange_clients.base_models import (
    ExchangeConfig,
    MarginError,
    SanitizedOrderRequest,
    TransientNetworkError,
    validate_credentials,
)
from exchange_clients.symbols import SymbolNotation, SymbolTranslator
from exchange_clients.utils import format_decimal
from helpers.unified_logger import get_exchange_logger

from .common import OKX_HISTORY_PAGE_LIMIT, OKX_INST_TYPE, OKX_SETTLE_CURRENCY

_TIF_ORD_TYPES = {"ioc": "ioc", "fok": "fok", "poc": "post_only"}


def _first(data: Any) -> Dict[str, Any]:
    """First element of an OKX ``{"data": [...]}`` envelope."""
    rows = (data or {}).get("data") or []
    return rows[0] if rows else {}


class OkxGateway(BaseExchangeGateway):
    """ccxt OKX exchange behind the gateway interface (cross-margin USDT swaps)."""

    def __init__(self, config: ExchangeConfig, exchange: Optional[Any] = None):
        super().__init__(config)
        self.logger = get_exchange_logger("okx", component="gateway")

        if exchange is None:
            exchange = ccxt.okx({
                "apiKey": config.api_key,
                "secret": config.api_secret,
                "password": config.passphrase,
                "enableRateLimit": True,
                "timeout": int(config.timeout_seconds * 1000),
                "options": {"defaultType": "swap"},
            })
            if config.sandbox:
                exchange.set_sandbox_mode(True)
        self.exchange = exchange

        self.logger.info(f"OKX gateway ready ({'demo trading' if config.sandbox else 'live'})")

    def _validate_config(self) -> None:
        validate_credentials("OKX_API_KEY", self.config.api_key)
        validate_credentials("OKX_API_SECRET", self.config.api_secret)
        validate_credentials("OKX_API_PASSPHRASE", self.config.passphrase)

    def get_exchange_name(self) -> str:
        return "okx"

    @staticmethod
    def _unified(symbol: str) -> str:
        return SymbolTranslator.to_notation(symbol, SymbolNotation.UNIFIED)

    # ========================================================================
    # SDK CALL WRAPPER
    # ========================================================================

    async def _call(self, method, *args, **kwargs) -> Any:
        try:
            return await method(*args, **kwargs)
        except ccxt.InsufficientFunds as exc:
            raise MarginError(f"OKX rejected order: {exc}", code="INSUFFICIENT_MARGIN") from exc
        except ccxt.NetworkError as exc:
            raise TransientNetworkError(f"OKX transport error: {exc}") from exc

    # ========================================================================
    # ACCOUNT & POSITIONS
    # ========================================================================

    async def fetch_account(self) -> Dict[str, Any]:
        balance = await self._call(self.exchange.fetch_balance)
        summary = _first(balance.get("info"))
        details = next(
            (d for d in summary.get("details") or [] if d.get("ccy") == OKX_SETTLE_CURRENCY),
            {},
        )
        merged = {k: v for k, v in summary.items() if k != "details"}
        merged.update({k: v for k, v in details.items() if k not in merged or not merged[k]})
        merged.setdefault("ccy", OKX_SETTLE_CURRENCY)
        return merged

    async def fetch_positions(self) -> List[Dict[str, Any]]:
        positions = await self._call(self.exchange.fetch_positions, None, {"instType": OKX_INST_TYPE})
        return [p.get("info", {}) for p in positions or []]

    async def set_leverage(self, symbol: str, leverage: int) -> Dict[str, Any]:
        response = await self._call(
            self.exchange.set_leverage, leverage, self._unified(symbol), {"mgnMode": "cross"}
        )
        return _first(response) or dict(response or {})

    # ========================================================================
    # MARKET DATA
    # ========================================================================

    async def fetch_ticker(self, symbol: str) -> Dict[str, Any]:
        ticker = await self._call(self.exchange.fetch_ticker, self._unified(symbol))
        data = dict(ticker.get("info") or {})

        mark = await self._call(
            self.exchange.public_get_public_mark_price, {"instType": OKX_INST_TYPE, "instId": symbol}
        )
        data["markPx"] = _first(mark).get("markPx")

        index_id = symbol[: -len("-SWAP")] if symbol.upper().endswith("-SWAP") else symbol
        index = await self._call(self.exchange.public_get_market_index_tickers, {"instId": index_id})
        data["idxPx"] = _first(index).get("idxPx")
        return data

    async def fetch_candles(self, symbol: str, interval: str, limit: int) -> List[Dict[str, Any]]:
        rows = await self._call(self.exchange.fetch_ohlcv, self._unified(symbol), interval, None, limit)
        return [
            {"ts": row[0], "o": row[1], "h": row[2], "l": row[3], "c": row[4], "vol": row[5]}
            for row in rows or []
        ]

    async def fetch_order_book(self, symbol: str, depth: int) -> Dict[str, Any]:
        book = await self._call(self.exchange.fetch_order_book, self._unified(symbol), depth)
        return {
            "instId": symbol,
            "bids": book.get("bids") or [],
            "asks": book.get("asks") or [],
            "ts": book.get("timestamp"),
        }

    async def fetch_funding_rate(self, symbol: str) -> Dict[str, Any]:
        funding = await self._call(self.exchange.fetch_funding_rate, self._unified(symbol))
        return funding.get("info") or {}

    async def fetch_funding_rate_history(self, symbol: str, limit: int) -> List[Dict[str, Any]]:
        history = await self._call(
            self.exchange.fetch_funding_rate_history, self._unified(symbol), None, limit
        )
        return [item.get("info") or {} for item in history or []]

    # ========================================================================
    # CONTRACTS
    # ========================================================================

    @staticmethod
    def _is_tradable_swap(info: Dict[str, Any]) -> bool:
        return (
            info.get("instType") == OKX_INST_TYPE
            and info.get("state") == "live"
            and info.get("ctType") == "linear"
            and info.get("settleCcy") == OKX_SETTLE_CURRENCY
        )

    async def fetch_contract(self, symbol: str) -> Optional[Dict[str, Any]]:
        markets = await self._call(self.exchange.load_markets)
        market = (markets or {}).get(self._unified(symbol))
        if not market:
            return None
        return market.get("info") or None

    async def fetch_contracts(self) -> List[Dict[str, Any]]:
        markets = await self._call(self.exchange.load_markets)
        infos = [market.get("info") or {} for market in (markets or {}).values()]
        return [info for info in infos if self._is_tradable_swap(info)]

    # ========================================================================
    # ORDERS
    # ========================================================================

    def _order_params(self, request: SanitizedOrderRequest) -> Dict[str, Any]:
        params: Dict[str, Any] = {"tdMode": "cross"}
        if request.reduce_only:
            params["reduceOnly"] = True
        if request.position_side:
            params["posSide"] = request.position_side
        if not request.is_market:
            tif = (request.tif or "gtc").lower()
            if tif in ("ioc", "fok"):
                params["timeInForce"] = tif.upper()
            elif tif == "poc":
                params["postOnly"] = True
        if request.stop_loss:
            params["stopLoss"] = {"triggerPrice": float(request.stop_loss)}
        if request.take_profit:
            params["takeProfit"] = {"triggerPrice": float(request.take_profit)}
        return params

    async def create_order(self, symbol: str, request: SanitizedOrderRequest) -> Dict[str, Any]:
        side = "buy" if request.size > 0 else "sell"
        order_type = "market" if request.is_market else "limit"
        amount = abs(request.size)
        price = float(request.price) if request.price else None

        order = await self._call(
            self.exchange.create_order,
            self._unified(symbol),
            order_type,
            side,
            float(amount),
            price,
            self._order_params(request),
        )

        # The create ack only carries ids; echo the request so the result is a full order
        ack = order.get("info") or {}
        echoed = {
            "instId": symbol,
            "ordId": order.get("id") or ack.get("ordId"),
            "sz": format_decimal(amount),
            "px": format_decimal(request.price) if request.price else "",
            "side": side,
            "ordType": order_type if request.is_market else _TIF_ORD_TYPES.get((request.tif or "").lower(), "limit"),
            "reduceOnly": "true" if request.reduce_only else "false",
            "state": "live",
            "cTime": ack.get("ts") or int(time.time() * 1000),
            "slTriggerPx": format_decimal(request.stop_loss) if request.stop_loss else "",
            "tpTriggerPx": format_decimal(request.take_profit) if request.take_profit else "",
        }
        self.logger.info(f"[{symbol}] Order {echoed['ordId']} submitted")
        return {**ack, **echoed}

    async def fetch_order(self, order_id: str, symbol: Optional[str] = None) -> Dict[str, Any]:
        order = await self._call(self.exchange.fetch_order, str(order_id), self._unified(symbol) if symbol else None)
        return order.get("info") or {}

    async def cancel_order(self, order_id: str, symbol: Optional[str] = None) -> Dict[str, Any]:
        unified = self._unified(symbol) if symbol else None
        await self._call(self.exchange.cancel_order, str(order_id), unified)
        # The cancel ack has no state; read the order back
        order = await self._call(self.exchange.fetch_order, str(order_id), unified)
        return order.get("info") or {}

    async def fetch_open_orders(self, symbol: Optional[str] = None) -> List[Dict[str, Any]]:
        orders = await self._call(
            self.exchange.fetch_open_orders,
            self._unified(symbol) if symbol else None,
            None,
            None,
            {"instType": OKX_INST_TYPE},
        )
        return [o.get("info") or {} for o in orders or []]

    async def fetch_order_history(self, symbol: Optional[str], limit: int) -> List[Dict[str, Any]]:
        orders = await self._call(
            self.exchange.fetch_closed_orders,
            self._unified(symbol) if symbol else None,
            None,
            limit,
            {"instType": OKX_INST_TYPE},
        )
        return [o.get("info") or {} for o in orders or []]

    async def fetch_my_trades(self, symbol: Optional[str], limit: int) -> List[Dict[str, Any]]:
        trades = await self._call(
            self.exchange.fetch_my_trades,
            self._unified(symbol) if symbol else None,
            None,
            limit,
            {"instType": OKX_INST_TYPE},
        )
        return [t.get("info") or {} for t in trades or []]

    # ========================================================================
    # POSITION HISTORY
    # ========================================================================

    async def fetch_position_history(
        self,
        symbol: Optional[str],
        limit: int,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Closed swap positions; the endpoint has no offset, so it is applied locally."""
        params: Dict[str, Any] = {
            "instType": OKX_INST_TYPE,
            "limit": str(min(limit + offset, OKX_HISTORY_PAGE_LIMIT)),
        }
        if symbol:
            params["instId"] = symbol

        response = await self._call(self.exchange.private_get_account_positions_history, params)
        data = (response or {}).get("data")
        if not isinstance(data, list):
            self.logger.warning(f"Unexpected positions history response: {response!r}")
            return []
        return data[offset: offset + limit]

    # ========================================================================
    # SETTLEMENT
    # ========================================================================

    async def fetch_settlement_history(
        self,
        symbol: Optional[str],
        limit: int,
        offset: int = 0,
        days: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Raw account bills for swaps, optionally limited to the last ``days``."""
        params: Dict[str, Any] = {"instType": OKX_INST_TYPE, "limit": str(limit)}
        if offset:
            params["offset"] = str(offset)
        if symbol:
            params["instId"] = symbol
        if days:
            now_ms = int(time.time() * 1000)
            params["begin"] = str(now_ms - int(days) * 24 * 60 * 60 * 1000)
            params["end"] = str(now_ms)

        response = await self._call(self.exchange.private_get_account_bills, params)
        data = (response or {}).get("data")
        if not isinstance(data, list):
            self.logger.warning(f"Unexpected account bills response: {response!r}")
            return []
        return data

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def close(self) -> None:
        await self.exchange.close()
