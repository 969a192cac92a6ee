"""
Module: fulfillment_services
Responsibility:
    Imperative shell around the pure engines: Order Store Adapters, the
    confirmed-write repository, the fulfillment service (two-phase writes),
    bulk import validation and the ledger reconciliation sweep.

Architecture position:
    Services -- may import fulfillment_kernel, fulfillment_engines and
    fulfillment_config.schema.  Nothing below imports from here.
"""

from fulfillment_services.factory import build_store
from fulfillment_services.fulfillment_service import FulfillmentService
from fulfillment_services.import_service import (
    BulkImportService,
    ImportIssue,
    ImportReport,
    ValidatedRow,
)
from fulfillment_services.ledger_sweep import (
    LedgerReconciliationSweep,
    SweepFinding,
    SweepReport,
)
from fulfillment_services.repository import OrderRepository
from fulfillment_services.sql_store import SqlOrderStore
from fulfillment_services.store import InMemoryOrderStore, OrderStore

__all__ = [
    "BulkImportService",
    "FulfillmentService",
    "ImportIssue",
    "ImportReport",
    "InMemoryOrderStore",
    "LedgerReconciliationSweep",
    "OrderRepository",
    "OrderStore",
    "SqlOrderStore",
    "SweepFinding",
    "SweepReport",
    "ValidatedRow",
    "build_store",
]
