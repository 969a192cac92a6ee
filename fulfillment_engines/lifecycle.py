"""
fulfillment_engines.lifecycle -- Order Lifecycle Engine: validated manual edits.

Responsibility:
    Validate a manual edit (invoice fields, status, notes, the missing-item
    list, reship flag) against the fulfillment business rules and produce
    the edited order plus one "missing" ledger intent per newly added item.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Depends on fulfillment_engines.ledger for the status-derivation rule.

Validation order (first failure wins):
    1. MissingInvoiceDateError -- the edit sets invoice_value > 0 and the
       resulting invoice date is empty.
    2. InvalidInvoiceValueError -- the resulting invoice value is 0, negative
       or unparseable.
    3. MissingItemsRequiredForPartialError -- resulting status is partial
       with no missing items.
    4. NoteRequiredForMissingItemsError -- missing items with a blank note.
    5. DeliveredLockedWhileMissingError -- a delivered status is requested
       while items are missing.

Invariants enforced:
    - reship always equals bool(missing_items) on the result.
    - A requested ``delivered`` on an order with canceled items becomes
      ``delivered_with_cancel``; a requested ``delivered_with_cancel`` with
      no canceled items becomes ``delivered``.  Both are logged.
    - When the edit leaves status unset but changes the missing list, status
      is re-derived, so adding an item to a delivered order reopens it as
      partial.
    - "Newly present" items are the multiset difference against the prior
      missing list, so re-adding a duplicate name is detected.

Failure modes:
    - OrderValidationError subclasses as listed above; the input order is
      never modified.
    - ValueError if the requested status is not an OrderStatus value.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Iterable

from fulfillment_kernel.domain.order import LedgerIntent, Order, OrderEdit
from fulfillment_kernel.domain.values import (
    ZERO,
    ItemStatus,
    OrderStatus,
    to_date,
    to_decimal,
)
from fulfillment_kernel.exceptions import (
    DeliveredLockedWhileMissingError,
    InvalidInvoiceValueError,
    MissingInvoiceDateError,
    MissingItemsRequiredForPartialError,
    NoteRequiredForMissingItemsError,
    OrderValidationError,
)
from fulfillment_kernel.logging_config import get_logger
from fulfillment_engines.ledger import derive_status
from fulfillment_engines.tracer import traced_engine

logger = get_logger("engines.lifecycle")

_DELIVERED_STATES = (OrderStatus.DELIVERED, OrderStatus.DELIVERED_WITH_CANCEL)


@dataclass(frozen=True)
class EditOutcome:
    """The edited order plus the ledger entries to append before saving it."""

    order: Order
    ledger_intents: tuple[LedgerIntent, ...] = ()


def newly_missing(before: Iterable[str], after: Iterable[str]) -> list[str]:
    """
    Items present in ``after`` beyond their count in ``before``.

    The earliest occurrences of a name are matched to the prior ones, so a
    re-added duplicate is reported at its own position.
    """
    prior = Counter(before)
    added: list[str] = []
    for item in after:
        if prior[item] > 0:
            prior[item] -= 1
        else:
            added.append(item)
    return added


def _clean_items(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(item.strip() for item in items if item and item.strip())


class OrderLifecycleEngine:
    """
    Pure validator/applier for manual order edits.

    Contract:
        No I/O, no clock access.  Returns an EditOutcome or raises an
        OrderValidationError; the input order is never mutated.
    Guarantees:
        - Shipped and canceled sequences are never touched by an edit.
        - Only fields the edit sets are changed, apart from status and
          reship which are normalized.
    Non-goals:
        - Does not persist, bump version or advance ledger_sequence.
    """

    @traced_engine("order_lifecycle", "1.0", fingerprint_fields=("order", "edit"))
    def apply_edit(self, order: Order, edit: OrderEdit) -> EditOutcome:
        """
        Validate and apply ``edit`` to ``order``.

        Raises:
            OrderValidationError: see the module docstring for the order in
                which rules are checked.
        """
        try:
            edited = self._apply(order, edit)
        except OrderValidationError as e:
            logger.warning(
                "edit_rejected",
                extra={
                    "lpo_id": order.lpo_id,
                    "error_code": e.code,
                    "fields": sorted(edit.changed_fields()),
                },
            )
            raise

        intents = tuple(
            LedgerIntent(
                lpo_id=order.lpo_id,
                item_name=item,
                status=ItemStatus.MISSING,
                value=ZERO,
            )
            for item in newly_missing(order.missing_items, edited.missing_items)
        )

        logger.info(
            "edit_applied",
            extra={
                "lpo_id": order.lpo_id,
                "fields": sorted(edit.changed_fields()),
                "status_before": order.status.value,
                "status_after": edited.status.value,
                "new_missing_count": len(intents),
            },
        )
        return EditOutcome(order=edited, ledger_intents=intents)

    def _apply(self, order: Order, edit: OrderEdit) -> Order:
        changes = edit.changed_fields()
        lpo_id = order.lpo_id

        invoice_date = order.invoice_date
        if "invoice_date" in changes:
            try:
                invoice_date = to_date(edit.invoice_date)
            except ValueError:
                invoice_date = None

        invoice_value = self._invoice_value(order, edit, changes)

        # 1
        if "invoice_value" in changes and invoice_value > ZERO and invoice_date is None:
            raise MissingInvoiceDateError(lpo_id)

        # 2
        if invoice_value <= ZERO:
            raise InvalidInvoiceValueError(lpo_id, str(invoice_value))

        missing = order.missing_items
        if "missing_items" in changes:
            if isinstance(edit.missing_items, str):
                raise TypeError("missing_items must be a sequence of item names")
            missing = _clean_items(edit.missing_items)

        requested = OrderStatus(edit.status) if "status" in changes else None
        if requested is not None:
            status = requested
        elif missing != order.missing_items:
            status, _ = derive_status(missing, order.canceled_items, invoice_value)
        else:
            status = order.status

        notes = edit.notes if "notes" in changes else order.notes

        # 3
        if status == OrderStatus.PARTIAL and not missing:
            raise MissingItemsRequiredForPartialError(lpo_id)

        # 4
        if missing and not (notes or "").strip():
            raise NoteRequiredForMissingItemsError(lpo_id, len(missing))

        # 5
        if requested in _DELIVERED_STATES and missing:
            raise DeliveredLockedWhileMissingError(lpo_id, len(missing))

        status = self._normalize_delivered(order, status)

        reship = bool(missing)
        if "reship" in changes and bool(edit.reship) != reship:
            logger.info(
                "reship_flag_normalized",
                extra={"lpo_id": lpo_id, "requested": bool(edit.reship), "applied": reship},
            )

        return replace(
            order,
            invoice_date=invoice_date,
            invoice_number=(
                edit.invoice_number if "invoice_number" in changes else order.invoice_number
            ),
            invoice_value=invoice_value,
            status=status,
            missing_items=missing,
            reship=reship,
            notes=notes,
        )

    @staticmethod
    def _invoice_value(order: Order, edit: OrderEdit, changes: dict[str, Any]) -> Decimal:
        if "invoice_value" not in changes:
            return order.invoice_value
        try:
            return to_decimal(edit.invoice_value)
        except ValueError as e:
            raise InvalidInvoiceValueError(order.lpo_id, repr(edit.invoice_value)) from e

    @staticmethod
    def _normalize_delivered(order: Order, status: OrderStatus) -> OrderStatus:
        normalized = status
        if status == OrderStatus.DELIVERED and order.canceled_items:
            normalized = OrderStatus.DELIVERED_WITH_CANCEL
        elif status == OrderStatus.DELIVERED_WITH_CANCEL and not order.canceled_items:
            normalized = OrderStatus.DELIVERED
        if normalized != status:
            logger.info(
                "status_normalized",
                extra={
                    "lpo_id": order.lpo_id,
                    "requested": status.value,
                    "applied": normalized.value,
                    "canceled_count": len(order.canceled_items),
                },
            )
        return normalized


_ENGINE = OrderLifecycleEngine()


def apply_edit(order: Order, edit: OrderEdit) -> EditOutcome:
    """Module-level shortcut for ``OrderLifecycleEngine().apply_edit``."""
    return _ENGINE.apply_edit(order, edit)
