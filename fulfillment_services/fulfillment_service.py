"""
fulfillment_services.fulfillment_service -- Orchestration of edits, resolutions and rollups.

Responsibility:
    The caller-facing surface of the core.  Runs the pure engines against
    the confirmed snapshot and persists their results through the Order
    Store Adapter with a two-phase write:

        1. append the action's ledger entries at sequences
           ``ledger_sequence + 1 ...`` (idempotent, retried on
           StoreWriteError with backoff);
        2. write the order row once, advancing ``ledger_sequence`` and
           guarded by the version read with the snapshot.

    Only after step 2 succeeds is the snapshot updated.

Architecture position:
    Services -- imperative shell.  Composes fulfillment_engines with an
    ``OrderStore``.  Receives settings, clock and sleep by injection.

Invariants enforced:
    - No order write is issued unless every ledger entry of the action is
      stored.
    - The order write is never retried; ship amounts are not idempotent.
    - Retrying a whole action after a failed order write re-sends the same
      ledger entries at the same sequences, which the store treats as
      no-ops.

Failure modes:
    - OrderValidationError / ItemError from the engines: nothing written.
    - LedgerAppendFailedError: retries exhausted; nothing further written.
    - LedgerSequenceConflictError: a different unapplied entry occupies the
      slot (see LedgerReconciliationSweep).
    - StaleOrderVersionError / StoreWriteError from the order write: the
      ledger entries stay unapplied and are reported by the sweep.
    - ImportRowError from create_orders when rows fail validation.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import replace
from decimal import Decimal
from typing import Any

from fulfillment_config.schema import FulfillmentSettings
from fulfillment_engines import (
    CustomerStat,
    ItemLedger,
    OrderFilter,
    OrderLifecycleEngine,
    ProductStat,
    ReconciliationCalculator,
    RollupAggregator,
    Stats,
    TrackedItem,
    filter_orders,
)
from fulfillment_kernel.domain.clock import Clock, SystemClock
from fulfillment_kernel.domain.order import (
    CandidateRow,
    LedgerEntry,
    LedgerIntent,
    NewOrderRow,
    Order,
    OrderEdit,
)
from fulfillment_kernel.domain.values import ResolutionAction
from fulfillment_kernel.exceptions import (
    ImportRowError,
    LedgerAppendFailedError,
    StoreWriteError,
)
from fulfillment_kernel.logging_config import LogContext, get_logger
from fulfillment_services.import_service import BulkImportService
from fulfillment_services.repository import OrderRepository
from fulfillment_services.store import OrderStore, summary_fields

logger = get_logger("services.fulfillment")


class FulfillmentService:
    """
    Stateful façade over one Order Store Adapter.

    Usage:
        service = FulfillmentService(store, get_active_settings())
        service.refresh()
        service.resolve_item("L-004", 0, "ship", Decimal("100"))
        stats = service.stats()
    """

    def __init__(
        self,
        store: OrderStore,
        settings: FulfillmentSettings | None = None,
        clock: Clock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._store = store
        self._settings = settings or FulfillmentSettings()
        self._clock = clock or SystemClock()
        self._sleep = sleep
        self._repository = OrderRepository(store)
        self._lifecycle = OrderLifecycleEngine()
        self._ledger = ItemLedger()
        self._calculator = ReconciliationCalculator()
        self._rollup = RollupAggregator(customer_key=self._settings.rollup.customer_key)
        self._importer = BulkImportService()

    # -- snapshot ---------------------------------------------------------

    @property
    def orders(self) -> tuple[Order, ...]:
        return self._repository.snapshot

    @property
    def revision(self) -> int:
        return self._repository.revision

    def refresh(self) -> tuple[Order, ...]:
        return self._repository.refresh()

    def get_order(self, lpo_id: str) -> Order:
        return self._repository.get(lpo_id)

    # -- mutations --------------------------------------------------------

    def apply_edit(self, lpo_id: str, edit: OrderEdit) -> Order:
        with LogContext.bind(lpo_id=lpo_id):
            order = self._repository.get(lpo_id)
            outcome = self._lifecycle.apply_edit(order, edit)
            return self._commit(order, outcome.order, outcome.ledger_intents)

    def resolve_item(
        self,
        lpo_id: str,
        index: int,
        action: ResolutionAction | str,
        amount: Decimal | int | str | None = None,
    ) -> Order:
        with LogContext.bind(lpo_id=lpo_id):
            order = self._repository.get(lpo_id)
            outcome = self._ledger.resolve_item(order, index, action, amount)
            return self._commit(order, outcome.order, (outcome.ledger_intent,))

    def create_orders(
        self,
        rows: Iterable[CandidateRow | Mapping[str, Any]],
        *,
        skip_invalid: bool = False,
    ) -> list[Order]:
        """
        Validate candidate rows and append them as pending orders.

        Ids continue after the highest numeric suffix among existing orders
        and ledger entries, so a deleted order's id is never handed out again
        while its ledger history remains.

        Raises:
            ImportRowError: some rows are invalid and skip_invalid is False.
                Nothing is appended in that case.
        """
        report = self._importer.validate(rows)
        if report.errors and not skip_invalid:
            raise ImportRowError(report.errors)
        if not report.valid:
            return []

        self._repository.refresh()
        customers = {c.name.strip().lower(): c.id for c in self._store.list_customers()}
        ids = self._next_lpo_ids(len(report.valid))

        new_rows = [
            NewOrderRow(
                lpo_id=lpo_id,
                lpo_number=row.lpo_number,
                lpo_date=row.lpo_date,
                customer_name=row.customer_name,
                lpo_value=row.lpo_value,
                customer_id=customers.get(row.customer_name.lower()),
            )
            for lpo_id, row in zip(ids, report.valid)
        ]
        self._store.append_orders(new_rows)
        self._repository.refresh()

        logger.info(
            "orders_created",
            extra={
                "count": len(new_rows),
                "first_lpo_id": ids[0],
                "skipped_rows": sorted(report.errors),
            },
        )
        return [self._repository.get(lpo_id) for lpo_id in ids]

    def delete_order(self, lpo_id: str) -> None:
        self._store.delete_order(lpo_id)
        self._repository.remove(lpo_id)

    # -- read models ------------------------------------------------------

    def stats(self) -> Stats:
        return self._calculator.compute_stats(self.orders)

    def customer_rollup(self) -> list[CustomerStat]:
        return self._rollup.group_by_customer(self.orders)

    def product_rollup(self) -> list[ProductStat]:
        return self._rollup.group_by_product(self.orders)

    def tracked_items(self) -> list[TrackedItem]:
        return self._rollup.tracked_items(self.orders)

    def filter(self, criteria: OrderFilter | None = None) -> list[Order]:
        return filter_orders(self.orders, criteria)

    def ledger(self, lpo_id: str | None = None) -> list[LedgerEntry]:
        return self._store.list_ledger_entries(lpo_id)

    # -- two-phase write --------------------------------------------------

    def _commit(
        self,
        before: Order,
        after: Order,
        intents: Sequence[LedgerIntent],
    ) -> Order:
        sequence = before.ledger_sequence
        for intent in intents:
            sequence += 1
            self._append_with_retry(intent, sequence)

        fields = summary_fields(replace(after, ledger_sequence=sequence))
        try:
            version = self._store.update_order(
                before.lpo_id, fields, expected_version=before.version
            )
        except Exception:
            logger.error(
                "order_write_failed",
                extra={
                    "lpo_id": before.lpo_id,
                    "expected_version": before.version,
                    "unapplied_sequences": list(range(before.ledger_sequence + 1, sequence + 1)),
                },
                exc_info=True,
            )
            raise

        confirmed = replace(after, version=version, ledger_sequence=sequence)
        self._repository.confirm(confirmed)
        logger.info(
            "order_saved",
            extra={
                "lpo_id": confirmed.lpo_id,
                "version": version,
                "ledger_sequence": sequence,
                "status": confirmed.status.value,
            },
        )
        return confirmed

    def _append_with_retry(self, intent: LedgerIntent, sequence: int) -> LedgerEntry:
        attempts = self._settings.ledger.append_max_attempts
        backoff = self._settings.ledger.append_backoff_seconds
        last_error: StoreWriteError | None = None
        for attempt in range(1, attempts + 1):
            if last_error is not None:
                self._sleep(backoff * (attempt - 1))
            try:
                return self._store.append_ledger_entry(
                    intent.lpo_id,
                    intent.item_name,
                    intent.status,
                    intent.value,
                    sequence=sequence,
                    recorded_at=self._clock.now(),
                )
            except StoreWriteError as e:
                last_error = e
                if attempt < attempts:
                    logger.warning(
                        "ledger_append_retry",
                        extra={
                            "lpo_id": intent.lpo_id,
                            "sequence": sequence,
                            "attempt": attempt,
                            "reason": e.reason,
                        },
                    )

        logger.error(
            "ledger_append_failed",
            extra={"lpo_id": intent.lpo_id, "sequence": sequence, "attempts": attempts},
        )
        raise LedgerAppendFailedError(
            intent.lpo_id, sequence, attempts, last_error.reason if last_error else "no attempt made"
        ) from last_error

    def _next_lpo_ids(self, count: int) -> list[str]:
        prefix = self._settings.identifiers.lpo_id_prefix
        width = self._settings.identifiers.lpo_id_width
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        # Deleted orders keep their ledger entries, so their ids stay taken.
        issued = {order.lpo_id for order in self.orders}
        issued.update(entry.lpo_id for entry in self._store.list_ledger_entries())
        highest = 0
        for lpo_id in issued:
            match = pattern.match(lpo_id)
            if match:
                highest = max(highest, int(match.group(1)))
        return [f"{prefix}{n:0{width}d}" for n in range(highest + 1, highest + count + 1)]
