"""Pure domain types for LPO fulfillment tracking (zero I/O)."""

from fulfillment_kernel.domain.order import (
    CandidateRow,
    Customer,
    LedgerEntry,
    LedgerIntent,
    NewOrderRow,
    Order,
    OrderEdit,
    check_invariants,
)
from fulfillment_kernel.domain.values import (
    ZERO,
    ItemStatus,
    OrderStatus,
    ResolutionAction,
    to_date,
    to_decimal,
)

__all__ = [
    "CandidateRow",
    "Customer",
    "ItemStatus",
    "LedgerEntry",
    "LedgerIntent",
    "NewOrderRow",
    "Order",
    "OrderEdit",
    "OrderStatus",
    "ResolutionAction",
    "ZERO",
    "check_invariants",
    "to_date",
    "to_decimal",
]
