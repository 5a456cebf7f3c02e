"""
Table-driven order status normalization.
"""

from typing import Mapping, Optional

from exchange_clients.base_models import OrderStatus


class StatusMapper:
    """
    Map a venue's raw status vocabulary onto the five canonical states.

    Lookup is case-insensitive. Unknown or missing strings map to
    ``OrderStatus.OPEN`` so a new venue status never breaks order handling.
    """

    def __init__(self, table: Mapping[str, OrderStatus]):
        self._table = {key.lower(): value for key, value in table.items()}

    def map(self, raw_status: Optional[str]) -> OrderStatus:
        if not raw_status:
            return OrderStatus.OPEN
        return self._table.get(str(raw_status).strip().lower(), OrderStatus.OPEN)

    def known_statuses(self):
        return sorted(self._table)

    def __contains__(self, raw_status: str) -> bool:
        return str(raw_status).lower() in self._table
