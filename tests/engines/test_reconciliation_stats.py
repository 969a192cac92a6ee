"""Tests for the Reconciliation Calculator."""

from decimal import Decimal

import pytest

from fulfillment_engines.reconciliation import (
    ReconciliationCalculator,
    Stats,
    compute_stats,
    order_variance,
)


class TestVariance:
    def test_favor_and_against(self, make_order):
        stats = compute_stats(
            [
                make_order(lpo_id="L-001", invoice_value=Decimal("900"), lpo_value=Decimal("1000")),
                make_order(lpo_id="L-002", invoice_value=Decimal("1200"), lpo_value=Decimal("1000")),
            ]
        )
        assert stats.favor == Decimal("100")
        assert stats.favor_count == 1
        assert stats.against == Decimal("200")
        assert stats.against_count == 1
        assert stats.net == Decimal("100")

    def test_uninvoiced_orders_ignored(self, make_order):
        stats = compute_stats([make_order(invoice_value=Decimal("0"))])
        assert stats.favor == stats.against == Decimal("0")
        assert stats.disc_count == 0

    def test_zero_lpo_value_excluded_from_variance_but_counted_as_discrepancy(self, make_order):
        stats = compute_stats([make_order(lpo_value=Decimal("0"), invoice_value=Decimal("50"))])
        assert stats.against_count == 0
        assert stats.disc_count == 1

    def test_exact_match_is_not_a_discrepancy(self, make_order):
        stats = compute_stats([make_order(invoice_value=Decimal("1000"))])
        assert stats.disc_count == 0
        assert stats.favor_count == stats.against_count == 0

    def test_order_variance(self, make_order):
        assert order_variance(make_order(invoice_value=Decimal("1100"))) == Decimal("100")
        assert order_variance(make_order()) == Decimal("0")


class TestCounts:
    def test_status_and_item_counts(self, make_order):
        orders = [
            make_order(lpo_id="L-001"),
            make_order(lpo_id="L-002", status="partial", missing_items=["A", "B"], reship=True,
                       shipped_items=["C"]),
            make_order(lpo_id="L-003", status="delivered", invoice_value=Decimal("1000"),
                       shipped_items=["D", "E"]),
            make_order(lpo_id="L-004", status="delivered_with_cancel", canceled_items=["F"]),
        ]
        stats = compute_stats(orders)

        assert stats.total == 4
        assert (stats.pending, stats.partial, stats.delivered, stats.with_cancel) == (1, 1, 1, 1)
        assert stats.reship == 1
        assert stats.missing_count == 2
        assert stats.shipped_count == 3
        assert stats.canceled_count == 1
        assert stats.total_tracked == 3

    def test_empty_snapshot(self):
        assert compute_stats([]) == Stats()


class TestMalformedRecords:
    def test_skipped_with_warning(self, make_order, captured_logs):
        records = [
            make_order(lpo_id="L-001", invoice_value=Decimal("900")),
            {"lpoId": "L-002", "lpoNumber": "PO-2", "customerName": "Acme"},
            {"lpoId": "L-003", "lpoNumber": "PO-3", "customerName": "Acme",
             "lpoValue": "100", "lpoDate": "not a date"},
            "garbage",
        ]
        stats = ReconciliationCalculator().compute_stats(records)

        assert stats.total == 1
        assert stats.skipped == 3
        assert stats.favor == Decimal("100")
        skipped = [r for r in captured_logs() if r["message"] == "stats_order_skipped"]
        assert [r["record_lpo_id"] for r in skipped] == ["L-002", "L-003", None]

    def test_raw_mapping_records_are_usable(self):
        stats = compute_stats(
            [{"lpoId": "L-9", "lpoNumber": "9", "customerName": "X", "lpoValue": "10",
              "invoiceValue": "12", "status": "delivered"}]
        )
        assert stats.delivered == 1
        assert stats.against == Decimal("2")

    def test_generator_input(self, make_order):
        stats = compute_stats(make_order(lpo_id=f"L-{i}") for i in range(3))
        assert stats.total == 3
        assert stats.skipped == 0
