"""
Module: fulfillment_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for fulfillment_services
    and for batch jobs.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import fulfillment_kernel (and sibling engine modules).
    MUST NOT import fulfillment_services or fulfillment_config.

Invariants enforced:
    - Engines never read the clock; timestamps are stamped by services.
    - Decimal-only arithmetic for money.
    - Orders are immutable; every operation returns new values.

Usage:
    from fulfillment_engines import apply_edit, resolve_item, compute_stats

    outcome = resolve_item(order, 0, "ship", Decimal("100"))
    stats = compute_stats([outcome.order])
"""

from fulfillment_engines.filtering import OrderFilter, filter_orders
from fulfillment_engines.ledger import (
    ItemLedger,
    ResolutionOutcome,
    derive_status,
    resolve_item,
)
from fulfillment_engines.lifecycle import (
    EditOutcome,
    OrderLifecycleEngine,
    apply_edit,
    newly_missing,
)
from fulfillment_engines.reconciliation import (
    ReconciliationCalculator,
    Stats,
    compute_stats,
    order_variance,
)
from fulfillment_engines.records import coerce_order
from fulfillment_engines.rollup import (
    CustomerStat,
    ProductStat,
    RollupAggregator,
    TrackedItem,
    group_by_customer,
    group_by_product,
    tracked_items,
)

__all__ = [
    "CustomerStat",
    "EditOutcome",
    "ItemLedger",
    "OrderFilter",
    "OrderLifecycleEngine",
    "ProductStat",
    "ReconciliationCalculator",
    "ResolutionOutcome",
    "RollupAggregator",
    "Stats",
    "TrackedItem",
    "apply_edit",
    "coerce_order",
    "compute_stats",
    "derive_status",
    "filter_orders",
    "group_by_customer",
    "group_by_product",
    "newly_missing",
    "order_variance",
    "resolve_item",
    "tracked_items",
]
