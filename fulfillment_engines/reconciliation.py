"""
fulfillment_engines.reconciliation -- Reconciliation Calculator.

Responsibility:
    Compute the fulfillment KPIs and the aggregate financial variance
    (short-billed "favor", over-billed "against", and their net) over a
    snapshot of orders.  Recomputed in full on every snapshot change; there
    is no incremental cache.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - net == against - favor for any set of orders.
    - favor and against only accumulate orders with invoice_value > 0 and
      lpo_value > 0.
    - A malformed record is skipped with a warning; the aggregation never
      aborts wholesale.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from fulfillment_kernel.domain.order import Order
from fulfillment_kernel.domain.values import ZERO, OrderStatus
from fulfillment_kernel.logging_config import get_logger
from fulfillment_engines.records import well_formed
from fulfillment_engines.tracer import traced_engine

logger = get_logger("engines.reconciliation")


@dataclass(frozen=True)
class Stats:
    """Snapshot KPIs.  Money fields are Decimal."""

    total: int = 0
    delivered: int = 0
    pending: int = 0
    partial: int = 0
    with_cancel: int = 0
    reship: int = 0
    missing_count: int = 0
    disc_count: int = 0
    favor: Decimal = ZERO
    favor_count: int = 0
    against: Decimal = ZERO
    against_count: int = 0
    shipped_count: int = 0
    canceled_count: int = 0
    skipped: int = 0

    @property
    def net(self) -> Decimal:
        """Over-billed minus short-billed."""
        return self.against - self.favor

    @property
    def total_tracked(self) -> int:
        """Items still missing plus items canceled."""
        return self.missing_count + self.canceled_count


def order_variance(order: Order) -> Decimal:
    """invoice_value - lpo_value when invoiced, else 0."""
    return order.variance


class ReconciliationCalculator:
    """
    Pure KPI calculator.

    Contract:
        Read-only over its input; tolerates stale or partially-updated
        snapshots by skipping records it cannot use.
    Non-goals:
        - Currency conversion; all values are assumed to share one currency.
    """

    @traced_engine("reconciliation", "1.0")
    def compute_stats(self, orders: Iterable[Any]) -> Stats:
        counts = {
            "total": 0,
            "delivered": 0,
            "pending": 0,
            "partial": 0,
            "with_cancel": 0,
            "reship": 0,
            "missing_count": 0,
            "disc_count": 0,
            "favor_count": 0,
            "against_count": 0,
            "shipped_count": 0,
            "canceled_count": 0,
        }
        favor = ZERO
        against = ZERO
        records = list(orders)

        for order in well_formed(records, logger, "stats_order_skipped"):
            counts["total"] += 1
            if order.status == OrderStatus.DELIVERED:
                counts["delivered"] += 1
            elif order.status == OrderStatus.PENDING:
                counts["pending"] += 1
            elif order.status == OrderStatus.PARTIAL:
                counts["partial"] += 1
            elif order.status == OrderStatus.DELIVERED_WITH_CANCEL:
                counts["with_cancel"] += 1

            if order.reship:
                counts["reship"] += 1
            counts["missing_count"] += len(order.missing_items)
            counts["shipped_count"] += len(order.shipped_items)
            counts["canceled_count"] += len(order.canceled_items)

            if order.invoice_value > ZERO and order.invoice_value != order.lpo_value:
                counts["disc_count"] += 1

            if order.invoice_value > ZERO and order.lpo_value > ZERO:
                diff = order.invoice_value - order.lpo_value
                if diff < ZERO:
                    favor += -diff
                    counts["favor_count"] += 1
                elif diff > ZERO:
                    against += diff
                    counts["against_count"] += 1

        stats = Stats(
            favor=favor,
            against=against,
            skipped=len(records) - counts["total"],
            **counts,
        )
        logger.debug(
            "stats_computed",
            extra={
                "total": stats.total,
                "skipped": stats.skipped,
                "net": str(stats.net),
            },
        )
        return stats


_CALCULATOR = ReconciliationCalculator()


def compute_stats(orders: Iterable[Any]) -> Stats:
    """Module-level shortcut for ``ReconciliationCalculator().compute_stats``."""
    return _CALCULATOR.compute_stats(orders)
