"""
fulfillment_engines.filtering -- Order list filtering.

Case-insensitive search over LPO number and customer name, a status filter
("all" or one OrderStatus), and LPO-date criteria (year, month, inclusive
date range).  An order without an LPO date never matches an active date
criterion.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from fulfillment_kernel.domain.order import Order
from fulfillment_kernel.domain.values import OrderStatus, to_date
from fulfillment_kernel.logging_config import get_logger
from fulfillment_engines.records import well_formed

logger = get_logger("engines.filtering")

ALL = "all"


@dataclass(frozen=True)
class OrderFilter:
    search: str = ""
    status: OrderStatus | str = ALL
    year: int | None = None
    month: int | None = None
    date_from: date | str | None = None
    date_to: date | str | None = None

    def __post_init__(self) -> None:
        if self.status != ALL:
            object.__setattr__(self, "status", OrderStatus(self.status))
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1-12, got {self.month}")
        object.__setattr__(self, "date_from", to_date(self.date_from))
        object.__setattr__(self, "date_to", to_date(self.date_to))

    @property
    def has_date_criteria(self) -> bool:
        return any(
            v is not None for v in (self.year, self.month, self.date_from, self.date_to)
        )

    def matches(self, order: Order) -> bool:
        term = self.search.strip().lower()
        if term and term not in order.lpo_number.lower() and term not in order.customer.lower():
            return False
        if self.status != ALL and order.status != self.status:
            return False
        if not self.has_date_criteria:
            return True

        d = order.lpo_date
        if d is None:
            return False
        if self.year is not None and d.year != self.year:
            return False
        if self.month is not None and d.month != self.month:
            return False
        if self.date_from is not None and d < self.date_from:
            return False
        if self.date_to is not None and d > self.date_to:
            return False
        return True


def filter_orders(orders: Iterable[Any], criteria: OrderFilter | None = None) -> list[Order]:
    """Orders matching ``criteria``, in input order."""
    criteria = criteria or OrderFilter()
    return [
        order
        for order in well_formed(orders, logger, "filter_order_skipped")
        if criteria.matches(order)
    ]
