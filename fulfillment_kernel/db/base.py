"""
Module: fulfillment_kernel.db.base
Responsibility: Declarative base shared by the lpo_records, lpo_item_log and
    lpo_customers models, with the column-type conventions they rely on.
Architecture position: Kernel > DB.  Imported by models/; imports nothing
    from the fulfillment packages.

Invariants enforced:
    - Every table has a uuid4 surrogate ``id`` stored as String(36), so the
      same schema runs on SQLite and PostgreSQL.  Business keys (lpo_id,
      row_id) are separate unique columns.
    - ``Decimal`` columns are Numeric(38, 9); amounts never go through float.
    - ``list[str]`` columns (item sequences) are JSON, order preserved.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import JSON, Date, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID <-> String(36), identical on every dialect."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        date: Date,
        UUID: UUIDString(),
        list[str]: JSON,
    }

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
