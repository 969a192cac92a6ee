#!/usr/bin/env python3
"""
Run the ledger reconciliation sweep against the configured order store and
print its findings, optionally followed by the snapshot KPIs.

Usage:
    python3 scripts/run_ledger_sweep.py [--config settings.yaml] [--stats]

Exit status is 1 when the sweep reports any finding, so the script can gate
a scheduled job.
"""

from __future__ import annotations

import argparse
import sys
import uuid
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from fulfillment_config import get_active_settings
from fulfillment_kernel.logging_config import LogContext, configure_logging
from fulfillment_services import FulfillmentService, LedgerReconciliationSweep, build_store


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Report ledger entries not reflected in their order rows.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings YAML (default: packaged defaults.yaml).",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Also print the reconciliation KPIs for the current snapshot.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_active_settings(args.config)
    configure_logging(level=settings.logging.level)

    with LogContext.bind(batch_id=str(uuid.uuid4())):
        store = build_store(settings)
        report = LedgerReconciliationSweep(store).run()

        print(f"Orders checked:  {report.orders_checked}")
        print(f"Entries checked: {report.entries_checked}")
        print(f"Findings:        {len(report.findings)}")
        for finding in report.findings:
            where = f"{finding.lpo_id}#{finding.sequence}" if finding.sequence else finding.lpo_id
            print(f"  [{finding.kind}] {where}: {finding.detail}")

        if args.stats:
            service = FulfillmentService(store, settings)
            service.refresh()
            stats = service.stats()
            print()
            print(f"Total {stats.total}  delivered {stats.delivered}  partial {stats.partial}  "
                  f"pending {stats.pending}  with cancel {stats.with_cancel}")
            print(f"Favor {stats.favor} ({stats.favor_count})  against {stats.against} "
                  f"({stats.against_count})  net {stats.net}")

    return 0 if report.is_clean else 1


if __name__ == "__main__":
    sys.exit(main())
