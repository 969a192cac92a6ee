"""
fulfillment_services.sql_store -- SQLAlchemy-backed Order Store Adapter.

Responsibility:
    Implements ``OrderStore`` over the lpo_records / lpo_item_log /
    lpo_customers tables.  Each call runs in its own ``session_scope``
    transaction; there is no transaction spanning calls.

Architecture position:
    Services -- imperative shell over fulfillment_kernel.models.

Invariants enforced:
    - update_order is a single ``UPDATE ... WHERE lpo_id = :id AND
      version = :expected``; zero affected rows means stale or missing.
    - (lpo_id, sequence) uniqueness is enforced by the database; a
      concurrent duplicate insert is resolved by re-reading the slot.

Failure modes:
    - SQLAlchemyError on reads -> StoreReadError; on writes (including the
      slot read inside append_ledger_entry) -> StoreWriteError.
    - OrderNotFoundError, StaleOrderVersionError, LedgerSequenceConflictError
      as documented on ``OrderStore``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fulfillment_kernel.db.engine import session_scope
from fulfillment_kernel.domain.order import (
    Customer,
    LedgerEntry,
    LedgerIntent,
    NewOrderRow,
    Order,
)
from fulfillment_kernel.domain.values import ItemStatus, OrderStatus
from fulfillment_kernel.exceptions import (
    LedgerSequenceConflictError,
    OrderNotFoundError,
    StaleOrderVersionError,
    StoreReadError,
    StoreWriteError,
)
from fulfillment_kernel.logging_config import get_logger
from fulfillment_kernel.models import LpoCustomer, LpoItemLogEntry, LpoRecord
from fulfillment_services.store import OrderStore, check_update_fields, format_row_id

logger = get_logger("services.sql_store")


def _to_order(record: LpoRecord) -> Order:
    return Order(
        lpo_id=record.lpo_id,
        lpo_number=record.lpo_number,
        lpo_date=record.lpo_date,
        customer=record.customer_name,
        customer_id=record.customer_id,
        lpo_value=record.lpo_value,
        invoice_value=record.invoice_value,
        invoice_date=record.invoice_date,
        invoice_number=record.invoice_number,
        status=record.status,
        missing_items=record.missing_items or (),
        shipped_items=record.shipped_items or (),
        canceled_items=record.canceled_items or (),
        reship=record.reship,
        notes=record.notes,
        version=record.version,
        ledger_sequence=record.ledger_sequence,
    )


def _to_entry(row: LpoItemLogEntry) -> LedgerEntry:
    return LedgerEntry(
        row_id=row.row_id,
        lpo_id=row.lpo_id,
        sequence=row.sequence,
        item_name=row.item_name,
        status=row.status,
        value=row.value,
        recorded_at=row.recorded_at,
    )


def _column_values(fields: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name, value in fields.items():
        if isinstance(value, OrderStatus):
            value = value.value
        elif isinstance(value, tuple):
            value = list(value)
        values[name] = value
    return values


class SqlOrderStore(OrderStore):
    """Order store on a SQLAlchemy session factory."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        row_id_prefix: str = "R-",
        row_id_width: int = 3,
    ):
        self._factory = session_factory
        self._row_id_prefix = row_id_prefix
        self._row_id_width = row_id_width

    # -- reads ------------------------------------------------------------

    def list_orders(self) -> list[Order]:
        try:
            with session_scope(self._factory) as session:
                records = session.scalars(
                    select(LpoRecord).order_by(LpoRecord.row_number)
                ).all()
                orders: list[Order] = []
                for record in records:
                    try:
                        orders.append(_to_order(record))
                    except (TypeError, ValueError) as e:
                        logger.warning(
                            "store_row_skipped",
                            extra={"record_lpo_id": record.lpo_id, "reason": str(e)},
                        )
                return orders
        except SQLAlchemyError as e:
            raise StoreReadError("list_orders", str(e)) from e

    def list_customers(self) -> list[Customer]:
        try:
            with session_scope(self._factory) as session:
                rows = session.scalars(
                    select(LpoCustomer).order_by(LpoCustomer.customer_code)
                ).all()
                return [Customer(id=r.customer_code, name=r.name) for r in rows]
        except SQLAlchemyError as e:
            raise StoreReadError("list_customers", str(e)) from e

    def get_order(self, lpo_id: str) -> Order:
        try:
            with session_scope(self._factory) as session:
                record = session.scalars(
                    select(LpoRecord).where(LpoRecord.lpo_id == lpo_id)
                ).one_or_none()
                if record is None:
                    raise OrderNotFoundError(lpo_id)
                return _to_order(record)
        except SQLAlchemyError as e:
            raise StoreReadError("get_order", str(e)) from e

    def list_ledger_entries(self, lpo_id: str | None = None) -> list[LedgerEntry]:
        stmt = select(LpoItemLogEntry)
        if lpo_id is not None:
            stmt = stmt.where(LpoItemLogEntry.lpo_id == lpo_id)
        stmt = stmt.order_by(func.length(LpoItemLogEntry.row_id), LpoItemLogEntry.row_id)
        try:
            with session_scope(self._factory) as session:
                return [_to_entry(row) for row in session.scalars(stmt).all()]
        except SQLAlchemyError as e:
            raise StoreReadError("list_ledger_entries", str(e)) from e

    # -- writes -----------------------------------------------------------

    def add_customers(self, customers: Iterable[Customer]) -> None:
        try:
            with session_scope(self._factory) as session:
                for customer in customers:
                    session.add(LpoCustomer(customer_code=customer.id, name=customer.name))
        except SQLAlchemyError as e:
            raise StoreWriteError("add_customers", str(e)) from e

    def append_orders(self, rows: Sequence[NewOrderRow]) -> None:
        try:
            with session_scope(self._factory) as session:
                last = session.scalar(select(func.max(LpoRecord.row_number))) or 0
                for offset, row in enumerate(rows, start=1):
                    session.add(
                        LpoRecord(
                            row_number=last + offset,
                            lpo_id=row.lpo_id,
                            lpo_number=row.lpo_number,
                            lpo_date=row.lpo_date,
                            customer_name=row.customer_name,
                            customer_id=row.customer_id,
                            lpo_value=row.lpo_value,
                            invoice_value=Decimal("0"),
                            invoice_number="",
                            status=OrderStatus.PENDING.value,
                            missing_items=[],
                            shipped_items=[],
                            canceled_items=[],
                            reship=False,
                            notes="",
                            version=1,
                            ledger_sequence=0,
                        )
                    )
        except SQLAlchemyError as e:
            raise StoreWriteError("append_orders", str(e)) from e
        logger.info("orders_appended", extra={"count": len(rows)})

    def update_order(
        self,
        lpo_id: str,
        fields: Mapping[str, Any],
        expected_version: int,
    ) -> int:
        check_update_fields(fields)
        new_version = expected_version + 1
        try:
            with session_scope(self._factory) as session:
                result = session.execute(
                    update(LpoRecord)
                    .where(
                        LpoRecord.lpo_id == lpo_id,
                        LpoRecord.version == expected_version,
                    )
                    .values(**_column_values(fields), version=new_version)
                )
                if result.rowcount == 1:
                    return new_version
                actual = session.scalar(
                    select(LpoRecord.version).where(LpoRecord.lpo_id == lpo_id)
                )
        except SQLAlchemyError as e:
            raise StoreWriteError("update_order", str(e)) from e

        if actual is None:
            raise OrderNotFoundError(lpo_id)
        raise StaleOrderVersionError(lpo_id, expected_version, actual)

    def delete_order(self, lpo_id: str) -> None:
        try:
            with session_scope(self._factory) as session:
                record = session.scalars(
                    select(LpoRecord).where(LpoRecord.lpo_id == lpo_id)
                ).one_or_none()
                if record is None:
                    raise OrderNotFoundError(lpo_id)
                session.delete(record)
        except SQLAlchemyError as e:
            raise StoreWriteError("delete_order", str(e)) from e
        logger.info("order_deleted", extra={"lpo_id": lpo_id})

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

        existing = self._ledger_slot(lpo_id, sequence)
        if existing is not None:
            if existing.matches(intent):
                return existing
            raise LedgerSequenceConflictError(lpo_id, sequence)

        try:
            with session_scope(self._factory) as session:
                count = session.scalar(select(func.count(LpoItemLogEntry.id))) or 0
                row = LpoItemLogEntry(
                    row_id=format_row_id(self._row_id_prefix, self._row_id_width, count + 1),
                    lpo_id=lpo_id,
                    sequence=sequence,
                    item_name=item_name,
                    status=intent.status.value,
                    value=intent.value,
                    recorded_at=recorded_at,
                )
                session.add(row)
                session.flush()
                return _to_entry(row)
        except IntegrityError as e:
            # Lost a race for the slot; identical content is still a success.
            winner = self._ledger_slot(lpo_id, sequence)
            if winner is not None and winner.matches(intent):
                return winner
            if winner is not None:
                raise LedgerSequenceConflictError(lpo_id, sequence) from e
            raise StoreWriteError("append_ledger_entry", str(e)) from e
        except SQLAlchemyError as e:
            raise StoreWriteError("append_ledger_entry", str(e)) from e

    def _ledger_slot(self, lpo_id: str, sequence: int) -> LedgerEntry | None:
        # Part of an append: a failed read is a failed, retryable write.
        try:
            with session_scope(self._factory) as session:
                row = session.scalars(
                    select(LpoItemLogEntry).where(
                        LpoItemLogEntry.lpo_id == lpo_id,
                        LpoItemLogEntry.sequence == sequence,
                    )
                ).one_or_none()
                return _to_entry(row) if row is not None else None
        except SQLAlchemyError as e:
            raise StoreWriteError("append_ledger_entry", str(e)) from e
