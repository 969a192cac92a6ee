"""
Module: fulfillment_kernel.models.lpo_record
Responsibility: ORM persistence for LPO summary rows: the order header,
    invoice fields, derived status and the three item sequences.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - lpo_id is unique (uq_lpo_record_lpo_id); it is the only address the
      store exposes, so deleting other rows never invalidates it.
    - version increments on every successful update; the SQL store issues
      ``UPDATE ... WHERE version = :expected`` and treats zero affected rows
      as a stale write.
    - ledger_sequence counts the lpo_item_log entries already reflected in
      this row's summary fields.

Failure modes:
    - IntegrityError on duplicate lpo_id.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fulfillment_kernel.db.base import Base


class LpoRecord(Base):
    """One tracked LPO (purchase order) and its fulfillment summary."""

    __tablename__ = "lpo_records"

    __table_args__ = (
        UniqueConstraint("lpo_id", name="uq_lpo_record_lpo_id"),
        Index("idx_lpo_record_customer", "customer_name"),
        Index("idx_lpo_record_status", "status"),
    )

    # Sheet position; defines list order
    row_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # Business identifier ("L-001")
    lpo_id: Mapped[str] = mapped_column(String(32), nullable=False)

    lpo_number: Mapped[str] = mapped_column(String(100), nullable=False)
    lpo_date: Mapped[date | None] = mapped_column(nullable=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    lpo_value: Mapped[Decimal] = mapped_column(nullable=False)

    # Invoice side
    invoice_value: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    invoice_date: Mapped[date | None] = mapped_column(nullable=True)
    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")

    # Item sequences, order preserved
    missing_items: Mapped[list[str]] = mapped_column(nullable=False, default=list)
    shipped_items: Mapped[list[str]] = mapped_column(nullable=False, default=list)
    canceled_items: Mapped[list[str]] = mapped_column(nullable=False, default=list)

    reship: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Concurrency bookkeeping
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    ledger_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<LpoRecord {self.lpo_id} {self.status} v{self.version}>"
