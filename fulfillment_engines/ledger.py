"""
fulfillment_engines.ledger -- Item Ledger: positional ship/cancel resolution.

Responsibility:
    Resolve one still-missing item of an order, addressed by its position in
    the current missing-item sequence, as shipped (with an amount that is
    added to the invoice value) or canceled.  Re-derive the order's status
    and reship flag from the resulting ledger state, and describe the ledger
    entry the caller must append.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import fulfillment_kernel (domain, exceptions, logging_config).
    ``derive_status`` is shared with the Order Lifecycle Engine.

Invariants enforced:
    - Stable removal: the remaining missing items keep their relative order.
    - Each resolved item moves exactly once to shipped or canceled.
    - invoice_value only increases, by the ship amount.
    - Finished (no missing items) => status in {delivered_with_cancel,
      delivered, pending} and reship False; otherwise partial and reship True.

Failure modes:
    - InvalidItemIndexError: index is not an int in [0, len(missing)).
      Negative indices are rejected, not wrapped.
    - InvalidShipAmountError: ship amount absent, unparseable or <= 0.
    - ValueError: action is not "ship" or "cancel".
    In every failure case the input order is untouched (orders are immutable).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Sequence

from fulfillment_kernel.domain.order import LedgerIntent, Order
from fulfillment_kernel.domain.values import (
    ZERO,
    ItemStatus,
    OrderStatus,
    ResolutionAction,
    to_decimal,
)
from fulfillment_kernel.exceptions import InvalidItemIndexError, InvalidShipAmountError
from fulfillment_kernel.logging_config import get_logger
from fulfillment_engines.tracer import traced_engine

logger = get_logger("engines.ledger")


def derive_status(
    missing_items: Sequence[str],
    canceled_items: Sequence[str],
    invoice_value: Decimal,
) -> tuple[OrderStatus, bool]:
    """
    Derive (status, reship) from ledger state.

    A finished order with any canceled item is delivered_with_cancel even
    when nothing was ever invoiced.
    """
    if missing_items:
        return OrderStatus.PARTIAL, True
    if canceled_items:
        return OrderStatus.DELIVERED_WITH_CANCEL, False
    if invoice_value > ZERO:
        return OrderStatus.DELIVERED, False
    return OrderStatus.PENDING, False


@dataclass(frozen=True)
class ResolutionOutcome:
    """The resolved order plus the one ledger entry to append for it."""

    order: Order
    ledger_intent: LedgerIntent


class ItemLedger:
    """
    Pure resolver for missing items.

    Contract:
        No I/O, no clock access.  Returns a new Order; never mutates input.
    Guarantees:
        - Resolution is by position; duplicate item names are never looked up.
        - Cancel ignores any amount given and records value 0.
    Non-goals:
        - Does not persist anything or bump version / ledger_sequence; the
          service owns the two-phase write.
    """

    @traced_engine("item_ledger", "1.0", fingerprint_fields=("order", "index", "action", "amount"))
    def resolve_item(
        self,
        order: Order,
        index: int,
        action: ResolutionAction | str,
        amount: Decimal | int | str | None = None,
    ) -> ResolutionOutcome:
        """
        Resolve the missing item at ``index``.

        Preconditions:
            ``index`` addresses the order's *current* missing items.

        Postconditions:
            The item is removed from missing_items and appended to
            shipped_items (ship) or canceled_items (cancel).  Status and
            reship are re-derived.

        Raises:
            InvalidItemIndexError, InvalidShipAmountError, ValueError.
        """
        action = ResolutionAction(action)
        missing = order.missing_items

        if (
            isinstance(index, bool)
            or not isinstance(index, int)
            or index < 0
            or index >= len(missing)
        ):
            logger.warning(
                "item_resolution_rejected",
                extra={
                    "lpo_id": order.lpo_id,
                    "reason": "invalid_index",
                    "index": repr(index),
                    "missing_count": len(missing),
                },
            )
            raise InvalidItemIndexError(order.lpo_id, index, len(missing))

        if action == ResolutionAction.SHIP:
            value = self._ship_amount(order, amount)
        else:
            value = ZERO

        item_name = missing[index]
        remaining = missing[:index] + missing[index + 1:]
        shipped = order.shipped_items
        canceled = order.canceled_items
        invoice_value = order.invoice_value

        if action == ResolutionAction.SHIP:
            shipped = shipped + (item_name,)
            invoice_value = invoice_value + value
            item_status = ItemStatus.SHIPPED
        else:
            canceled = canceled + (item_name,)
            item_status = ItemStatus.CANCELED

        status, reship = derive_status(remaining, canceled, invoice_value)

        resolved = replace(
            order,
            missing_items=remaining,
            shipped_items=shipped,
            canceled_items=canceled,
            invoice_value=invoice_value,
            status=status,
            reship=reship,
        )

        logger.info(
            "item_resolved",
            extra={
                "lpo_id": order.lpo_id,
                "item_name": item_name,
                "action": action.value,
                "value": str(value),
                "status_before": order.status.value,
                "status_after": status.value,
                "remaining_missing": len(remaining),
            },
        )

        return ResolutionOutcome(
            order=resolved,
            ledger_intent=LedgerIntent(
                lpo_id=order.lpo_id,
                item_name=item_name,
                status=item_status,
                value=value,
            ),
        )

    @staticmethod
    def _ship_amount(order: Order, amount: Any) -> Decimal:
        try:
            value = to_decimal(amount)
        except ValueError:
            value = None
        if value is None or value <= ZERO:
            logger.warning(
                "item_resolution_rejected",
                extra={
                    "lpo_id": order.lpo_id,
                    "reason": "invalid_ship_amount",
                    "amount": repr(amount),
                },
            )
            raise InvalidShipAmountError(order.lpo_id, amount)
        return value


_LEDGER = ItemLedger()


def resolve_item(
    order: Order,
    index: int,
    action: ResolutionAction | str,
    amount: Decimal | int | str | None = None,
) -> ResolutionOutcome:
    """Module-level shortcut for ``ItemLedger().resolve_item``."""
    return _LEDGER.resolve_item(order, index, action, amount)
