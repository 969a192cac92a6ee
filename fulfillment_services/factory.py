"""Build the configured Order Store Adapter."""

from __future__ import annotations

from fulfillment_config.schema import FulfillmentSettings
from fulfillment_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from fulfillment_kernel.logging_config import get_logger
from fulfillment_services.sql_store import SqlOrderStore
from fulfillment_services.store import InMemoryOrderStore, OrderStore

logger = get_logger("services.factory")


def build_store(settings: FulfillmentSettings) -> OrderStore:
    ledger = settings.ledger
    if settings.store.backend == "sql":
        init_engine_from_url(settings.store.database_url, echo=settings.store.echo)
        create_tables()
        store: OrderStore = SqlOrderStore(
            get_session_factory(),
            row_id_prefix=ledger.row_id_prefix,
            row_id_width=ledger.row_id_width,
        )
    else:
        store = InMemoryOrderStore(
            row_id_prefix=ledger.row_id_prefix,
            row_id_width=ledger.row_id_width,
        )
    logger.info("store_built", extra={"backend": settings.store.backend})
    return store
