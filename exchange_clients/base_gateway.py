"""Base interface for venue SDK gateways."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .base_models import ExchangeConfig, SanitizedOrderRequest


class BaseExchangeGateway(ABC):
    """
    Thin call-through boundary over one venue SDK.

    Gateways take venue-native symbols, return plain native dicts (never SDK
    model objects) and translate SDK failures into the error taxonomy:

        - transport failures, timeouts, 5xx, rate limits -> TransientNetworkError
        - insufficient-margin rejections                 -> MarginError

    All other SDK errors propagate unchanged. Symbol translation, conversion,
    sanitization and retries are the client's job, not the gateway's.

    Implementation Pattern:
        ```python
        class GateGateway(BaseExchangeGateway):
            def __init__(self, config: ExchangeConfig):
                super().__init__(config)
                self.futures_api = FuturesApi(ApiClient(...))

            async def fetch_account(self) -> Dict[str, Any]:
                account = await self._call(self.futures_api.list_futures_accounts, "usdt")
                return account.to_dict()
        ```
    """

    def __init__(self, config: ExchangeConfig):
        self.config = config
        self._validate_config()

    @abstractmethod
    def _validate_config(self) -> None:
        """Raise MissingCredentialsError when required credentials are missing."""

    @abstractmethod
    def get_exchange_name(self) -> str:
        pass

    # ========================================================================
    # ACCOUNT & POSITIONS
    # ========================================================================

    @abstractmethod
    async def fetch_account(self) -> Dict[str, Any]:
        """Futures account snapshot for the settle currency."""

    @abstractmethod
    async def fetch_positions(self) -> List[Dict[str, Any]]:
        """All positions, including zero-size ones."""

    @abstractmethod
    async def set_leverage(self, symbol: str, leverage: int) -> Dict[str, Any]:
        pass

    # ========================================================================
    # MARKET DATA
    # ========================================================================

    @abstractmethod
    async def fetch_ticker(self, symbol: str) -> Dict[str, Any]:
        """Ticker including mark and index price where the venue exposes them."""

    @abstractmethod
    async def fetch_candles(self, symbol: str, interval: str, limit: int) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def fetch_order_book(self, symbol: str, depth: int) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def fetch_funding_rate(self, symbol: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def fetch_funding_rate_history(self, symbol: str, limit: int) -> List[Dict[str, Any]]:
        pass

    # ========================================================================
    # CONTRACTS
    # ========================================================================

    @abstractmethod
    async def fetch_contract(self, symbol: str) -> Optional[Dict[str, Any]]:
        """Contract metadata, or None when the venue lists no such contract."""

    @abstractmethod
    async def fetch_contracts(self) -> List[Dict[str, Any]]:
        pass

    # ========================================================================
    # ORDERS
    # ========================================================================

    @abstractmethod
    async def create_order(self, symbol: str, request: SanitizedOrderRequest) -> Dict[str, Any]:
        """
        Submit an already sanitized order.

        A request without price is submitted as a market (IOC) order. Stop-loss
        and take-profit prices are attached the way the venue supports them.
        """

    @abstractmethod
    async def fetch_order(self, order_id: str, symbol: Optional[str] = None) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def cancel_order(self, order_id: str, symbol: Optional[str] = None) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def fetch_open_orders(self, symbol: Optional[str] = None) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def fetch_order_history(self, symbol: Optional[str], limit: int) -> List[Dict[str, Any]]:
        """Finished orders, newest first."""

    @abstractmethod
    async def fetch_my_trades(self, symbol: Optional[str], limit: int) -> List[Dict[str, Any]]:
        pass

    # ========================================================================
    # POSITION HISTORY
    # ========================================================================

    @abstractmethod
    async def fetch_position_history(
        self,
        symbol: Optional[str],
        limit: int,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Closed positions, newest first."""

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
        """
        Raw ledger records. Venues without a ledger endpoint leave this
        unimplemented and the client synthesizes history instead.
        """
        raise NotImplementedError

    @property
    def supports_settlement_history(self) -> bool:
        return type(self).fetch_settlement_history is not BaseExchangeGateway.fetch_settlement_history

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def close(self) -> None:
        """Release the SDK connection handle."""
        return None
