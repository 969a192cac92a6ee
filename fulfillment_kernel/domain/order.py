"""
Order -- immutable fulfillment value objects.

Responsibility:
    The authoritative in-memory shape of an LPO and its item ledger, plus
    the records exchanged with the Order Store Adapter (customers, candidate
    rows, new rows, ledger intents and persisted ledger entries) and the
    manual edit request.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines, services and the SQL models' mappers.

Invariants enforced (construction):
    - Amounts are Decimal; dates are ``date`` or None; item sequences are
      tuples of strings (order preserved).
    - status is an OrderStatus member.

Invariants checked (``check_invariants``):
    - delivered => no missing, no canceled, invoice value > 0
    - delivered_with_cancel => no missing, canceled non-empty
    - partial => missing non-empty
    - reship <=> missing non-empty

Failure modes:
    - ValueError / TypeError on construction with unusable field values.
      Store adapters catch these per row and skip the record with a warning.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from fulfillment_kernel.domain.values import (
    ZERO,
    ItemStatus,
    OrderStatus,
    to_date,
    to_decimal,
)


def _to_items(value: Iterable[str] | None, field_name: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        raise TypeError(f"{field_name} must be a sequence of item names, got str")
    items = tuple(value)
    for item in items:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} contains a non-string item: {item!r}")
    return items


@dataclass(frozen=True, slots=True)
class Order:
    """
    A tracked LPO.

    Contract:
        ``lpo_id`` is the stable identifier ("L-001"); stores address rows by
        it and keep their own id-to-row index.  ``version`` and
        ``ledger_sequence`` are concurrency bookkeeping owned by the store:
        the row version for stale-write detection and the count of ledger
        entries already reflected in the summary fields.

    Guarantees:
        - Immutable; every mutation produces a new Order via
          ``dataclasses.replace``.
        - missing/shipped/canceled keep insertion order.  Duplicate item names
          are allowed; resolution addresses items by position.
    """

    lpo_id: str
    lpo_number: str
    lpo_date: date | None
    customer: str
    lpo_value: Decimal
    invoice_value: Decimal = ZERO
    invoice_date: date | None = None
    invoice_number: str = ""
    status: OrderStatus = OrderStatus.PENDING
    missing_items: tuple[str, ...] = ()
    shipped_items: tuple[str, ...] = ()
    canceled_items: tuple[str, ...] = ()
    reship: bool = False
    notes: str = ""
    customer_id: str | None = None
    version: int = 0
    ledger_sequence: int = 0

    def __post_init__(self) -> None:
        if not self.lpo_id:
            raise ValueError("lpo_id is required")
        object.__setattr__(self, "lpo_value", to_decimal(self.lpo_value))
        object.__setattr__(self, "invoice_value", to_decimal(self.invoice_value))
        object.__setattr__(self, "lpo_date", to_date(self.lpo_date))
        object.__setattr__(self, "invoice_date", to_date(self.invoice_date))
        object.__setattr__(self, "status", OrderStatus(self.status))
        object.__setattr__(self, "missing_items", _to_items(self.missing_items, "missing_items"))
        object.__setattr__(self, "shipped_items", _to_items(self.shipped_items, "shipped_items"))
        object.__setattr__(self, "canceled_items", _to_items(self.canceled_items, "canceled_items"))
        object.__setattr__(self, "reship", bool(self.reship))
        object.__setattr__(self, "notes", self.notes or "")
        object.__setattr__(self, "invoice_number", self.invoice_number or "")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> Order:
        """
        Build an Order from a raw store record.

        Accepts snake_case keys or the camelCase keys used by sheet-backed
        stores (``lpoId``, ``invoiceValue``, ``missingItems``, ``reshipFlag``...).

        Raises:
            KeyError: a required field (lpo id, lpo number, customer, lpo
                value) is absent.
            ValueError / TypeError: a field cannot be coerced.
        """

        def pick(*keys: str, default: Any = None, required: bool = False) -> Any:
            for key in keys:
                if key in data and data[key] is not None and data[key] != "":
                    return data[key]
            if required:
                raise KeyError(keys[0])
            return default

        return cls(
            lpo_id=pick("lpo_id", "lpoId", required=True),
            lpo_number=str(pick("lpo_number", "lpoNumber", required=True)),
            lpo_date=pick("lpo_date", "lpoDate"),
            customer=str(pick("customer", "customer_name", "customerName", required=True)),
            lpo_value=pick("lpo_value", "lpoValue", required=True),
            invoice_value=pick("invoice_value", "invoiceValue", default=ZERO),
            invoice_date=pick("invoice_date", "invoiceDate"),
            invoice_number=str(pick("invoice_number", "invoiceNumber", default="")),
            status=pick("status", default=OrderStatus.PENDING),
            missing_items=pick("missing_items", "missingItems", default=()),
            shipped_items=pick("shipped_items", "shippedItems", default=()),
            canceled_items=pick("canceled_items", "canceledItems", default=()),
            reship=pick("reship", "reshipFlag", default=False),
            notes=str(pick("notes", default="")),
            customer_id=pick("customer_id", "customerId"),
            version=int(pick("version", default=0)),
            ledger_sequence=int(pick("ledger_sequence", "ledgerSequence", default=0)),
        )

    @property
    def id(self) -> str:
        """Alias for ``lpo_id``; orders have a single stable identifier."""
        return self.lpo_id

    @property
    def is_finished(self) -> bool:
        """True when no item is awaiting resolution."""
        return not self.missing_items

    @property
    def variance(self) -> Decimal:
        """invoice - lpo when invoiced, else 0."""
        if self.invoice_value > ZERO:
            return self.invoice_value - self.lpo_value
        return ZERO


@dataclass(frozen=True, slots=True)
class Customer:
    """Reference customer owned by the store; read-only to the core."""

    id: str
    name: str


@dataclass(frozen=True, slots=True)
class CandidateRow:
    """
    Pre-parsed bulk import row, as handed over by the import normalizer.

    Values are raw (strings, numbers); validation happens in
    ``BulkImportService``.
    """

    lpo_number: Any
    lpo_date: Any
    customer_name: Any
    lpo_value: Any

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> CandidateRow:
        """Accept either snake_case or the normalizer's camelCase keys."""
        return cls(
            lpo_number=data.get("lpo_number", data.get("lpoNumber")),
            lpo_date=data.get("lpo_date", data.get("lpoDate")),
            customer_name=data.get("customer_name", data.get("customerName")),
            lpo_value=data.get("lpo_value", data.get("lpoValue")),
        )


@dataclass(frozen=True, slots=True)
class NewOrderRow:
    """A validated row with its assigned lpo_id, ready for ``append_orders``."""

    lpo_id: str
    lpo_number: str
    lpo_date: date
    customer_name: str
    lpo_value: Decimal
    customer_id: str | None = None

    def to_order(self) -> Order:
        """A freshly created order: pending, empty ledgers, invoice 0."""
        return Order(
            lpo_id=self.lpo_id,
            lpo_number=self.lpo_number,
            lpo_date=self.lpo_date,
            customer=self.customer_name,
            lpo_value=self.lpo_value,
            customer_id=self.customer_id,
        )


@dataclass(frozen=True, slots=True)
class LedgerIntent:
    """An instruction to append one item ledger entry."""

    lpo_id: str
    item_name: str
    status: ItemStatus
    value: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", ItemStatus(self.status))
        object.__setattr__(self, "value", to_decimal(self.value))


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """
    A persisted item ledger entry.

    ``sequence`` is 1-based per lpo_id; ``(lpo_id, sequence)`` is the
    idempotency key for appends.  ``row_id`` ("R-001") is store-assigned.
    """

    row_id: str
    lpo_id: str
    sequence: int
    item_name: str
    status: ItemStatus
    value: Decimal
    recorded_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", ItemStatus(self.status))
        object.__setattr__(self, "value", to_decimal(self.value))

    def matches(self, intent: LedgerIntent) -> bool:
        """True when this entry records exactly the given intent."""
        return (
            self.lpo_id == intent.lpo_id
            and self.item_name == intent.item_name
            and self.status == intent.status
            and self.value == intent.value
        )


@dataclass(frozen=True)
class OrderEdit:
    """
    Proposed manual changes to an order.  None means "leave unchanged".

    ``missing_items`` is the full resulting missing-item sequence as edited
    (items added and/or removed), not a delta.
    """

    invoice_date: date | str | None = None
    invoice_number: str | None = None
    invoice_value: Decimal | int | str | None = None
    status: OrderStatus | str | None = None
    missing_items: tuple[str, ...] | list[str] | None = None
    reship: bool | None = None
    notes: str | None = None

    def changed_fields(self) -> dict[str, Any]:
        """Fields the edit explicitly sets."""
        return {
            name: getattr(self, name)
            for name in (
                "invoice_date",
                "invoice_number",
                "invoice_value",
                "status",
                "missing_items",
                "reship",
                "notes",
            )
            if getattr(self, name) is not None
        }


# Invariant violation codes
DELIVERED_WITH_MISSING = "DELIVERED_WITH_MISSING"
DELIVERED_WITH_CANCELED = "DELIVERED_WITH_CANCELED"
DELIVERED_WITHOUT_INVOICE = "DELIVERED_WITHOUT_INVOICE"
WITH_CANCEL_HAS_MISSING = "WITH_CANCEL_HAS_MISSING"
WITH_CANCEL_WITHOUT_CANCELED = "WITH_CANCEL_WITHOUT_CANCELED"
PARTIAL_WITHOUT_MISSING = "PARTIAL_WITHOUT_MISSING"
RESHIP_FLAG_MISMATCH = "RESHIP_FLAG_MISMATCH"


def check_invariants(order: Order) -> list[str]:
    """Return the codes of all data-model invariants the order violates."""
    violations: list[str] = []
    if order.status == OrderStatus.DELIVERED:
        if order.missing_items:
            violations.append(DELIVERED_WITH_MISSING)
        if order.canceled_items:
            violations.append(DELIVERED_WITH_CANCELED)
        if order.invoice_value <= ZERO:
            violations.append(DELIVERED_WITHOUT_INVOICE)
    elif order.status == OrderStatus.DELIVERED_WITH_CANCEL:
        if order.missing_items:
            violations.append(WITH_CANCEL_HAS_MISSING)
        if not order.canceled_items:
            violations.append(WITH_CANCEL_WITHOUT_CANCELED)
    elif order.status == OrderStatus.PARTIAL:
        if not order.missing_items:
            violations.append(PARTIAL_WITHOUT_MISSING)
    if order.reship != bool(order.missing_items):
        violations.append(RESHIP_FLAG_MISMATCH)
    return violations
