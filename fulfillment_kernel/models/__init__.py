"""ORM models backing the SQL order store."""

from fulfillment_kernel.models.customer import LpoCustomer
from fulfillment_kernel.models.lpo_item_log import LpoItemLogEntry
from fulfillment_kernel.models.lpo_record import LpoRecord

__all__ = [
    "LpoCustomer",
    "LpoItemLogEntry",
    "LpoRecord",
]
