"""Tests for the Rollup Aggregator."""

from decimal import Decimal

import pytest

from fulfillment_engines.rollup import (
    RollupAggregator,
    group_by_customer,
    group_by_product,
    tracked_items,
)


class TestGroupByCustomer:
    def test_counts_and_sums(self, make_order):
        orders = [
            make_order(lpo_id="L-001", customer="Acme", status="partial",
                       missing_items=["A"], reship=True, shipped_items=["B"]),
            make_order(lpo_id="L-002", customer="Acme", status="delivered_with_cancel",
                       canceled_items=["C", "D"]),
            make_order(lpo_id="L-003", customer="Globex"),
        ]
        rows = group_by_customer(orders)

        assert [r.customer for r in rows] == ["Acme", "Globex"]
        acme = rows[0]
        assert (acme.total, acme.partial, acme.with_cancel, acme.pending) == (2, 1, 1, 0)
        assert acme.missing_count == 1
        assert acme.reshipped_count == 1
        assert acme.canceled_count == 2

    def test_sorted_by_total_descending_stable(self, make_order):
        orders = [
            make_order(lpo_id="L-1", customer="B"),
            make_order(lpo_id="L-2", customer="A"),
            make_order(lpo_id="L-3", customer="C"),
            make_order(lpo_id="L-4", customer="C"),
        ]
        assert [r.customer for r in group_by_customer(orders)] == ["C", "B", "A"]

    def test_same_display_name_merges_distinct_customers(self, make_order):
        # Known limitation: grouping is by display name, so two different
        # customers called "Acme" collapse into one row.
        orders = [
            make_order(lpo_id="L-1", customer="Acme", customer_id="C-1"),
            make_order(lpo_id="L-2", customer="Acme", customer_id="C-2"),
        ]
        rows = group_by_customer(orders)
        assert len(rows) == 1
        assert rows[0].total == 2

    def test_group_by_id_keeps_them_apart(self, make_order):
        orders = [
            make_order(lpo_id="L-1", customer="Acme", customer_id="C-1"),
            make_order(lpo_id="L-2", customer="Acme", customer_id="C-2"),
            make_order(lpo_id="L-3", customer="Acme", customer_id="C-1"),
        ]
        rows = group_by_customer(orders, key="id")
        assert [(r.customer_id, r.total) for r in rows] == [("C-1", 2), ("C-2", 1)]

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            RollupAggregator(customer_key="email")


class TestGroupByProduct:
    def test_touches_per_item(self, make_order):
        orders = [
            make_order(lpo_id="L-1", missing_items=["Bolt"], shipped_items=["Nut", "Bolt"]),
            make_order(lpo_id="L-2", canceled_items=["Bolt"], missing_items=["Washer"]),
        ]
        rows = group_by_product(orders)

        assert [r.item_name for r in rows] == ["Bolt", "Nut", "Washer"]
        bolt = rows[0]
        assert (bolt.pending, bolt.shipped, bolt.canceled, bolt.total) == (1, 1, 1, 3)

    def test_malformed_record_skipped(self, make_order, captured_logs):
        rows = group_by_product([make_order(missing_items=["A"]), {"lpoId": "L-X"}])
        assert [r.item_name for r in rows] == ["A"]
        assert any(r["message"] == "rollup_order_skipped" for r in captured_logs())


class TestTrackedItems:
    def test_one_row_per_pending_or_canceled_item(self, make_order):
        orders = [
            make_order(lpo_id="L-1", missing_items=["A", "B"], shipped_items=["S"]),
            make_order(lpo_id="L-2", lpo_number="PO-2", canceled_items=["C"]),
        ]
        rows = tracked_items(orders)
        assert [(r.lpo_id, r.item_name, r.state) for r in rows] == [
            ("L-1", "A", "pending"),
            ("L-1", "B", "pending"),
            ("L-2", "C", "canceled"),
        ]
        assert rows[2].lpo_number == "PO-2"
