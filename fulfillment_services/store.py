"""
fulfillment_services.store -- Order Store Adapter interface and in-memory adapter.

Responsibility:
    ``OrderStore`` is the contract the core consumes for persistence: order
    rows, the customer reference list and the append-only item ledger.
    ``InMemoryOrderStore`` implements it over a row-ordered "sheet" (a list
    of raw records) with its own lpo_id -> row position index, the same
    shape as the spreadsheet store the core was built against.

Architecture position:
    Services -- imperative shell.  Adapters may import fulfillment_kernel
    only.

Invariants enforced:
    - Rows are addressed by lpo_id only.  The position index is private and
      rebuilt after every delete, so deleting a row never invalidates the
      address of another.
    - update_order compares ``expected_version`` with the stored version
      and bumps it on success.
    - append_ledger_entry is idempotent on (lpo_id, sequence).

Failure modes:
    - OrderNotFoundError: unknown lpo_id.
    - StaleOrderVersionError: version mismatch on update.
    - LedgerSequenceConflictError: a different entry holds the sequence.
    - StoreReadError / StoreWriteError: raised by real backends; the
      in-memory adapter only raises them when a subclass injects faults.
    - Malformed rows are skipped by list_orders with a warning.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from fulfillment_kernel.domain.order import (
    Customer,
    LedgerEntry,
    LedgerIntent,
    NewOrderRow,
    Order,
)
from fulfillment_kernel.domain.values import ItemStatus, OrderStatus, to_decimal
from fulfillment_kernel.exceptions import (
    LedgerSequenceConflictError,
    OrderNotFoundError,
    StaleOrderVersionError,
    StoreWriteError,
)
from fulfillment_kernel.logging_config import get_logger

logger = get_logger("services.store")

# Order fields a caller may change through update_order.
UPDATABLE_FIELDS = frozenset({
    "invoice_value",
    "invoice_date",
    "invoice_number",
    "status",
    "missing_items",
    "shipped_items",
    "canceled_items",
    "reship",
    "notes",
    "ledger_sequence",
})


def summary_fields(order: Order) -> dict[str, Any]:
    """The updatable fields of ``order`` as a plain mapping."""
    return {name: getattr(order, name) for name in sorted(UPDATABLE_FIELDS)}


def check_update_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"not updatable: {sorted(unknown)}")


def format_row_id(prefix: str, width: int, number: int) -> str:
    return f"{prefix}{number:0{width}d}"


class OrderStore(ABC):
    """
    Order Store Adapter.

    Contract:
        Every method is a single request/response against the backing store.
        There are no cross-call transactions; the service layer orders its
        writes (ledger first, then order row) to stay recoverable.
    """

    @abstractmethod
    def list_orders(self) -> list[Order]:
        """All well-formed orders in store order."""

    @abstractmethod
    def list_customers(self) -> list[Customer]:
        ...

    @abstractmethod
    def get_order(self, lpo_id: str) -> Order:
        """Raises OrderNotFoundError."""

    @abstractmethod
    def append_orders(self, rows: Sequence[NewOrderRow]) -> None:
        """Append new pending orders (version 1, empty ledgers)."""

    @abstractmethod
    def update_order(
        self,
        lpo_id: str,
        fields: Mapping[str, Any],
        expected_version: int,
    ) -> int:
        """
        Write ``fields`` to the order if its version is ``expected_version``.

        Returns:
            The new version.

        Raises:
            OrderNotFoundError, StaleOrderVersionError, StoreWriteError.
        """

    @abstractmethod
    def delete_order(self, lpo_id: str) -> None:
        """Raises OrderNotFoundError."""

    @abstractmethod
    def append_ledger_entry(
        self,
        lpo_id: str,
        item_name: str,
        status: ItemStatus | str,
        value: Decimal,
        *,
        sequence: int,
        recorded_at: datetime | None = None,
    ) -> LedgerEntry:
        """
        Append one ledger entry at (lpo_id, sequence).

        Re-sending an identical entry returns the stored one unchanged.

        Raises:
            LedgerSequenceConflictError: a different entry holds the slot.
            StoreWriteError: transient failure; safe to retry.
        """

    @abstractmethod
    def list_ledger_entries(self, lpo_id: str | None = None) -> list[LedgerEntry]:
        """Entries in append order, optionally for one order."""


def _raw_row(order: Order) -> dict[str, Any]:
    return {
        "lpoId": order.lpo_id,
        "lpoNumber": order.lpo_number,
        "lpoDate": order.lpo_date.isoformat() if order.lpo_date else "",
        "customerName": order.customer,
        "customerId": order.customer_id,
        "lpoValue": str(order.lpo_value),
        "invoiceValue": str(order.invoice_value),
        "invoiceDate": order.invoice_date.isoformat() if order.invoice_date else "",
        "invoiceNumber": order.invoice_number,
        "status": order.status.value,
        "missingItems": list(order.missing_items),
        "shippedItems": list(order.shipped_items),
        "canceledItems": list(order.canceled_items),
        "reshipFlag": order.reship,
        "notes": order.notes,
        "version": order.version,
        "ledgerSequence": order.ledger_sequence,
    }


_RAW_KEYS = {
    "invoice_value": "invoiceValue",
    "invoice_date": "invoiceDate",
    "invoice_number": "invoiceNumber",
    "status": "status",
    "missing_items": "missingItems",
    "shipped_items": "shippedItems",
    "canceled_items": "canceledItems",
    "reship": "reshipFlag",
    "notes": "notes",
    "ledger_sequence": "ledgerSequence",
}


def _raw_value(value: Any) -> Any:
    if isinstance(value, OrderStatus):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, tuple):
        return list(value)
    if value is None:
        return ""
    return value


class InMemoryOrderStore(OrderStore):
    """
    Sheet-shaped in-memory adapter.

    Rows are raw camelCase records, as a spreadsheet backend would return
    them; they are coerced to ``Order`` on read.
    """

    def __init__(
        self,
        rows: Iterable[Mapping[str, Any]] = (),
        customers: Iterable[Customer] = (),
        *,
        row_id_prefix: str = "R-",
        row_id_width: int = 3,
    ):
        self._rows: list[dict[str, Any]] = [dict(r) for r in rows]
        self._customers: list[Customer] = list(customers)
        self._ledger: list[LedgerEntry] = []
        self._row_id_prefix = row_id_prefix
        self._row_id_width = row_id_width
        self._index: dict[str, int] = {}
        self._rebuild_index()

    @classmethod
    def from_orders(cls, orders: Iterable[Order], **kwargs: Any) -> InMemoryOrderStore:
        return cls(rows=[_raw_row(o) for o in orders], **kwargs)

    def _rebuild_index(self) -> None:
        self._index = {}
        for position, row in enumerate(self._rows):
            lpo_id = row.get("lpoId") or row.get("lpo_id")
            if lpo_id:
                self._index[lpo_id] = position

    def _position(self, lpo_id: str) -> int:
        position = self._index.get(lpo_id)
        if position is None:
            raise OrderNotFoundError(lpo_id)
        return position

    # -- orders -----------------------------------------------------------

    def list_orders(self) -> list[Order]:
        orders: list[Order] = []
        for position, row in enumerate(self._rows):
            try:
                orders.append(Order.from_mapping(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(
                    "store_row_skipped",
                    extra={"position": position, "reason": str(e)},
                )
        return orders

    def list_customers(self) -> list[Customer]:
        return list(self._customers)

    def add_customers(self, customers: Iterable[Customer]) -> None:
        self._customers.extend(customers)

    def get_order(self, lpo_id: str) -> Order:
        return Order.from_mapping(self._rows[self._position(lpo_id)])

    def append_orders(self, rows: Sequence[NewOrderRow]) -> None:
        for row in rows:
            if row.lpo_id in self._index:
                raise StoreWriteError("append_orders", f"duplicate lpo_id {row.lpo_id}")
        for row in rows:
            order = row.to_order()
            self._rows.append(_raw_row(order) | {"version": 1})
            self._index[row.lpo_id] = len(self._rows) - 1
        logger.info("orders_appended", extra={"count": len(rows)})

    def update_order(
        self,
        lpo_id: str,
        fields: Mapping[str, Any],
        expected_version: int,
    ) -> int:
        check_update_fields(fields)
        row = self._rows[self._position(lpo_id)]
        actual = int(row.get("version") or 0)
        if actual != expected_version:
            raise StaleOrderVersionError(lpo_id, expected_version, actual)
        for name, value in fields.items():
            row[_RAW_KEYS[name]] = _raw_value(value)
        row["version"] = actual + 1
        return actual + 1

    def delete_order(self, lpo_id: str) -> None:
        del self._rows[self._position(lpo_id)]
        self._rebuild_index()
        logger.info("order_deleted", extra={"lpo_id": lpo_id})

    # -- ledger -----------------------------------------------------------

    def append_ledger_entry(
        self,
        lpo_id: str,
        item_name: str,
        status: ItemStatus | str,
        value: Decimal,
        *,
        sequence: int,
        recorded_at: datetime | None = None,
    ) -> LedgerEntry:
        intent = LedgerIntent(lpo_id=lpo_id, item_name=item_name, status=status, value=value)
        for existing in self._ledger:
            if existing.lpo_id == lpo_id and existing.sequence == sequence:
                if existing.matches(intent):
                    return existing
                raise LedgerSequenceConflictError(lpo_id, sequence)

        entry = LedgerEntry(
            row_id=format_row_id(self._row_id_prefix, self._row_id_width, len(self._ledger) + 1),
            lpo_id=lpo_id,
            sequence=sequence,
            item_name=item_name,
            status=intent.status,
            value=to_decimal(value),
            recorded_at=recorded_at,
        )
        self._ledger.append(entry)
        return entry

    def list_ledger_entries(self, lpo_id: str | None = None) -> list[LedgerEntry]:
        if lpo_id is None:
            return list(self._ledger)
        return [e for e in self._ledger if e.lpo_id == lpo_id]
