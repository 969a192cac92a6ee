"""
fulfillment_services.ledger_sweep -- Ledger reconciliation sweep.

Responsibility:
    Find ledger entries that were appended but never reflected in their
    order row (sequence beyond the order's ``ledger_sequence``), entries
    whose order no longer exists, and orders whose stored summary breaks a
    data-model invariant.  Each finding is logged at WARNING and returned.

Architecture position:
    Services -- read-only batch job over an ``OrderStore``.

Invariants enforced:
    - The sweep never writes.  Re-applying an order write is not
      idempotent for ship amounts, so findings are for an operator to
      resolve.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from fulfillment_kernel.domain.order import check_invariants
from fulfillment_kernel.logging_config import get_logger
from fulfillment_services.store import OrderStore

logger = get_logger("services.ledger_sweep")

UNAPPLIED_ENTRY = "unapplied_entry"
ORPHAN_ENTRY = "orphan_entry"
INVARIANT_VIOLATION = "invariant_violation"


@dataclass(frozen=True)
class SweepFinding:
    kind: str
    lpo_id: str
    detail: str
    sequence: int | None = None
    row_id: str | None = None


@dataclass
class SweepReport:
    orders_checked: int = 0
    entries_checked: int = 0
    findings: list[SweepFinding] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.findings

    def of_kind(self, kind: str) -> list[SweepFinding]:
        return [f for f in self.findings if f.kind == kind]


class LedgerReconciliationSweep:
    def __init__(self, store: OrderStore):
        self._store = store

    def run(self) -> SweepReport:
        orders = {o.lpo_id: o for o in self._store.list_orders()}
        entries = self._store.list_ledger_entries()
        report = SweepReport(orders_checked=len(orders), entries_checked=len(entries))

        for entry in entries:
            order = orders.get(entry.lpo_id)
            if order is None:
                self._record(
                    report,
                    SweepFinding(
                        kind=ORPHAN_ENTRY,
                        lpo_id=entry.lpo_id,
                        detail=f"{entry.status.value} {entry.item_name!r}: order not found",
                        sequence=entry.sequence,
                        row_id=entry.row_id,
                    ),
                )
            elif entry.sequence > order.ledger_sequence:
                self._record(
                    report,
                    SweepFinding(
                        kind=UNAPPLIED_ENTRY,
                        lpo_id=entry.lpo_id,
                        detail=(
                            f"{entry.status.value} {entry.item_name!r} value {entry.value} "
                            f"not reflected (order at sequence {order.ledger_sequence})"
                        ),
                        sequence=entry.sequence,
                        row_id=entry.row_id,
                    ),
                )

        for order in orders.values():
            for code in check_invariants(order):
                self._record(
                    report,
                    SweepFinding(kind=INVARIANT_VIOLATION, lpo_id=order.lpo_id, detail=code),
                )

        logger.info(
            "ledger_sweep_completed",
            extra={
                "orders_checked": report.orders_checked,
                "entries_checked": report.entries_checked,
                "findings": len(report.findings),
            },
        )
        return report

    @staticmethod
    def _record(report: SweepReport, finding: SweepFinding) -> None:
        report.findings.append(finding)
        logger.warning(
            "ledger_sweep_finding",
            extra={
                "kind": finding.kind,
                "lpo_id": finding.lpo_id,
                "sequence": finding.sequence,
                "row_id": finding.row_id,
                "detail": finding.detail,
            },
        )
