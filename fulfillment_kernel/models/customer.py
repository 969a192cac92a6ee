"""
Module: fulfillment_kernel.models.customer
Responsibility: ORM persistence for the customer reference list.  The core
    reads it for labeling and import validation; it never writes it.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fulfillment_kernel.db.base import Base


class LpoCustomer(Base):
    """A customer the organization receives LPOs from."""

    __tablename__ = "lpo_customers"

    __table_args__ = (
        UniqueConstraint("customer_code", name="uq_lpo_customer_code"),
    )

    customer_code: Mapped[str] = mapped_column(String(50), nullable=False)

    # Display name; LPO rows reference customers by this name
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<LpoCustomer {self.customer_code}: {self.name}>"
