"""
Module: fulfillment_kernel.models.lpo_item_log
Responsibility: ORM persistence for the append-only item ledger (one row per
    missing / shipped / canceled event).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (lpo_id, sequence) is unique (uq_lpo_item_log_sequence): this is the
      idempotency key that makes ledger appends safe to retry.
    - row_id ("R-001") is unique.
    - Rows are never updated or deleted by the core.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fulfillment_kernel.db.base import Base


class LpoItemLogEntry(Base):
    """One item ledger event."""

    __tablename__ = "lpo_item_log"

    __table_args__ = (
        UniqueConstraint("lpo_id", "sequence", name="uq_lpo_item_log_sequence"),
        UniqueConstraint("row_id", name="uq_lpo_item_log_row_id"),
        Index("idx_lpo_item_log_lpo", "lpo_id"),
    )

    row_id: Mapped[str] = mapped_column(String(32), nullable=False)
    lpo_id: Mapped[str] = mapped_column(String(32), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    value: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    recorded_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<LpoItemLogEntry {self.row_id} {self.lpo_id}#{self.sequence} {self.status}>"
