"""
fulfillment_engines.rollup -- Rollup Aggregator (per customer, per product).

Responsibility:
    Group a snapshot of orders into summary tables: one row per customer
    (status counts plus item sums) and one row per distinct item name
    (pending / shipped / canceled touches).  Also produces the tracked-item
    worklist: one row per still-missing or canceled item.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Customer rows are sorted by total descending; ties keep first-seen
      order.  Product rows likewise by total touches.
    - Malformed records are skipped with a warning.

Customer identity:
    The default key is the customer display name, so two customers that
    share a name merge into one row.  ``key="id"`` groups by customer_id
    instead, falling back to the name for orders without one; the row's
    ``customer`` label is the first name seen for that key.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from fulfillment_kernel.domain.values import OrderStatus
from fulfillment_kernel.logging_config import get_logger
from fulfillment_engines.records import well_formed
from fulfillment_engines.tracer import traced_engine

logger = get_logger("engines.rollup")

CUSTOMER_KEYS = ("name", "id")


@dataclass
class CustomerStat:
    customer: str
    customer_id: str | None = None
    total: int = 0
    delivered: int = 0
    partial: int = 0
    pending: int = 0
    with_cancel: int = 0
    missing_count: int = 0
    reshipped_count: int = 0
    canceled_count: int = 0


@dataclass
class ProductStat:
    item_name: str
    pending: int = 0
    shipped: int = 0
    canceled: int = 0

    @property
    def total(self) -> int:
        return self.pending + self.shipped + self.canceled


@dataclass(frozen=True)
class TrackedItem:
    """One worklist row: an item still missing ("pending") or canceled."""

    lpo_id: str
    lpo_number: str
    lpo_date: date | None
    customer: str
    item_name: str
    state: str


class RollupAggregator:
    """
    Pure grouping engine.

    Contract:
        Read-only over its input; returns fresh lists on every call.
    """

    def __init__(self, customer_key: str = "name"):
        if customer_key not in CUSTOMER_KEYS:
            raise ValueError(f"customer_key must be one of {CUSTOMER_KEYS}, got {customer_key!r}")
        self.customer_key = customer_key

    @traced_engine("rollup_customer", "1.0")
    def group_by_customer(self, orders: Iterable[Any]) -> list[CustomerStat]:
        groups: dict[str, CustomerStat] = {}
        for order in well_formed(orders, logger, "rollup_order_skipped"):
            if self.customer_key == "id" and order.customer_id:
                key = order.customer_id
            else:
                key = order.customer
            row = groups.get(key)
            if row is None:
                row = CustomerStat(customer=order.customer, customer_id=order.customer_id)
                groups[key] = row

            row.total += 1
            if order.status == OrderStatus.DELIVERED:
                row.delivered += 1
            elif order.status == OrderStatus.PARTIAL:
                row.partial += 1
            elif order.status == OrderStatus.PENDING:
                row.pending += 1
            elif order.status == OrderStatus.DELIVERED_WITH_CANCEL:
                row.with_cancel += 1
            row.missing_count += len(order.missing_items)
            row.reshipped_count += len(order.shipped_items)
            row.canceled_count += len(order.canceled_items)

        # sorted() is stable
        return sorted(groups.values(), key=lambda r: r.total, reverse=True)

    @traced_engine("rollup_product", "1.0")
    def group_by_product(self, orders: Iterable[Any]) -> list[ProductStat]:
        products: dict[str, ProductStat] = {}

        def row_for(name: str) -> ProductStat:
            row = products.get(name)
            if row is None:
                row = products[name] = ProductStat(item_name=name)
            return row

        for order in well_formed(orders, logger, "rollup_order_skipped"):
            for name in order.missing_items:
                row_for(name).pending += 1
            for name in order.shipped_items:
                row_for(name).shipped += 1
            for name in order.canceled_items:
                row_for(name).canceled += 1

        return sorted(products.values(), key=lambda r: r.total, reverse=True)

    def tracked_items(self, orders: Iterable[Any]) -> list[TrackedItem]:
        rows: list[TrackedItem] = []
        for order in well_formed(orders, logger, "rollup_order_skipped"):
            for state, items in (("pending", order.missing_items), ("canceled", order.canceled_items)):
                for name in items:
                    rows.append(
                        TrackedItem(
                            lpo_id=order.lpo_id,
                            lpo_number=order.lpo_number,
                            lpo_date=order.lpo_date,
                            customer=order.customer,
                            item_name=name,
                            state=state,
                        )
                    )
        return rows


_BY_NAME = RollupAggregator()


def group_by_customer(orders: Iterable[Any], key: str = "name") -> list[CustomerStat]:
    aggregator = _BY_NAME if key == "name" else RollupAggregator(customer_key=key)
    return aggregator.group_by_customer(orders)


def group_by_product(orders: Iterable[Any]) -> list[ProductStat]:
    return _BY_NAME.group_by_product(orders)


def tracked_items(orders: Iterable[Any]) -> list[TrackedItem]:
    return _BY_NAME.tracked_items(orders)
