"""Tests for the Order Lifecycle Engine (validated manual edits)."""

from datetime import date
from decimal import Decimal

import pytest

from fulfillment_engines.lifecycle import OrderLifecycleEngine, apply_edit, newly_missing
from fulfillment_kernel.domain.order import OrderEdit
from fulfillment_kernel.domain.values import ItemStatus, OrderStatus
from fulfillment_kernel.exceptions import (
    DeliveredLockedWhileMissingError,
    InvalidInvoiceValueError,
    MissingInvoiceDateError,
    MissingItemsRequiredForPartialError,
    NoteRequiredForMissingItemsError,
    OrderValidationError,
)


@pytest.fixture
def invoiced_order(make_order):
    return make_order(
        invoice_value=Decimal("1000"),
        invoice_date="2024-01-20",
        invoice_number="INV-1",
        status="delivered",
    )


class TestScenarios:
    def test_first_invoice_delivers_pending_order(self, make_order):
        order = make_order(lpo_value=Decimal("1000"))
        outcome = apply_edit(
            order,
            OrderEdit(invoice_date="2024-01-01", invoice_value=Decimal("1000"), status="delivered"),
        )
        assert outcome.order.status == OrderStatus.DELIVERED
        assert outcome.order.invoice_value == Decimal("1000")
        assert outcome.order.invoice_date == date(2024, 1, 1)
        assert outcome.ledger_intents == ()

    def test_delivered_locked_while_missing(self, make_order):
        order = make_order(
            status="partial",
            missing_items=["A"],
            reship=True,
            invoice_value=Decimal("400"),
            invoice_date="2024-01-20",
            notes="A backordered",
        )
        with pytest.raises(DeliveredLockedWhileMissingError) as exc_info:
            apply_edit(order, OrderEdit(status="delivered"))
        assert exc_info.value.code == "DELIVERED_LOCKED_WHILE_MISSING"
        assert exc_info.value.missing_count == 1


class TestValidationOrder:
    def test_invoice_date_required_with_value(self, make_order):
        with pytest.raises(MissingInvoiceDateError):
            apply_edit(make_order(), OrderEdit(invoice_value=Decimal("10")))

    def test_blank_invoice_date_counts_as_missing(self, invoiced_order):
        with pytest.raises(MissingInvoiceDateError):
            apply_edit(invoiced_order, OrderEdit(invoice_value=Decimal("10"), invoice_date=""))

    def test_existing_invoice_date_satisfies_rule(self, invoiced_order):
        outcome = apply_edit(invoiced_order, OrderEdit(invoice_value=Decimal("1200")))
        assert outcome.order.invoice_value == Decimal("1200")

    def test_invoice_value_required_to_save(self, make_order):
        with pytest.raises(InvalidInvoiceValueError):
            apply_edit(make_order(), OrderEdit(notes="just a note"))

    @pytest.mark.parametrize("value", [Decimal("0"), Decimal("-5"), "abc"])
    def test_non_positive_invoice_value(self, make_order, value):
        with pytest.raises(InvalidInvoiceValueError):
            apply_edit(make_order(), OrderEdit(invoice_value=value, invoice_date="2024-01-01"))

    def test_date_rule_wins_over_value_rule(self, make_order):
        with pytest.raises(MissingInvoiceDateError):
            apply_edit(make_order(), OrderEdit(invoice_value=Decimal("5"), missing_items=["A"]))

    def test_partial_requires_missing(self, invoiced_order):
        with pytest.raises(MissingItemsRequiredForPartialError):
            apply_edit(invoiced_order, OrderEdit(status="partial"))

    def test_note_required_for_missing(self, invoiced_order):
        with pytest.raises(NoteRequiredForMissingItemsError) as exc_info:
            apply_edit(invoiced_order, OrderEdit(missing_items=["A", "B"], notes="   "))
        assert exc_info.value.missing_count == 2

    def test_note_rule_wins_over_delivered_lock(self, invoiced_order):
        with pytest.raises(NoteRequiredForMissingItemsError):
            apply_edit(invoiced_order, OrderEdit(missing_items=["A"], status="delivered"))

    def test_delivered_with_cancel_also_locked(self, invoiced_order):
        with pytest.raises(DeliveredLockedWhileMissingError):
            apply_edit(
                invoiced_order,
                OrderEdit(missing_items=["A"], notes="short", status="delivered_with_cancel"),
            )

    def test_rejection_is_a_validation_error(self, make_order):
        with pytest.raises(OrderValidationError) as exc_info:
            apply_edit(make_order(), OrderEdit(invoice_value=Decimal("10")))
        assert exc_info.value.lpo_id == "L-001"


class TestMissingItems:
    def test_adding_items_reopens_delivered_order(self, invoiced_order):
        outcome = apply_edit(invoiced_order, OrderEdit(missing_items=["Bolt"], notes="1 bolt short"))
        assert outcome.order.status == OrderStatus.PARTIAL
        assert outcome.order.reship is True
        assert [(i.item_name, i.status) for i in outcome.ledger_intents] == [
            ("Bolt", ItemStatus.MISSING)
        ]
        assert outcome.ledger_intents[0].value == Decimal("0")

    def test_only_new_items_emit_intents(self, invoiced_order):
        first = apply_edit(invoiced_order, OrderEdit(missing_items=["A"], notes="n")).order
        outcome = apply_edit(first, OrderEdit(missing_items=["A", "B", "A"]))
        assert [i.item_name for i in outcome.ledger_intents] == ["B", "A"]

    def test_removing_last_missing_item_rederives_status(self, invoiced_order):
        partial = apply_edit(invoiced_order, OrderEdit(missing_items=["A"], notes="n")).order
        outcome = apply_edit(partial, OrderEdit(missing_items=[]))
        assert outcome.order.status == OrderStatus.DELIVERED
        assert outcome.order.reship is False
        assert outcome.ledger_intents == ()

    def test_blank_item_names_dropped(self, invoiced_order):
        outcome = apply_edit(invoiced_order, OrderEdit(missing_items=[" Nut ", "", "  "], notes="n"))
        assert outcome.order.missing_items == ("Nut",)

    def test_shipped_and_canceled_untouched(self, make_order):
        order = make_order(
            status="delivered_with_cancel",
            invoice_value=Decimal("50"),
            invoice_date="2024-01-02",
            shipped_items=["A"],
            canceled_items=["B"],
        )
        outcome = apply_edit(order, OrderEdit(missing_items=["C"], notes="C lost"))
        assert outcome.order.shipped_items == ("A",)
        assert outcome.order.canceled_items == ("B",)


class TestNormalization:
    def test_reship_follows_missing(self, invoiced_order, captured_logs):
        outcome = apply_edit(invoiced_order, OrderEdit(reship=True))
        assert outcome.order.reship is False
        assert any(r["message"] == "reship_flag_normalized" for r in captured_logs())

    def test_delivered_with_canceled_items_becomes_with_cancel(self, make_order):
        order = make_order(
            status="pending",
            invoice_value=Decimal("50"),
            invoice_date="2024-01-02",
            canceled_items=["B"],
        )
        outcome = apply_edit(order, OrderEdit(status="delivered"))
        assert outcome.order.status == OrderStatus.DELIVERED_WITH_CANCEL

    def test_with_cancel_without_canceled_items_becomes_delivered(self, invoiced_order):
        outcome = apply_edit(invoiced_order, OrderEdit(status="delivered_with_cancel"))
        assert outcome.order.status == OrderStatus.DELIVERED

    def test_status_unchanged_when_not_requested(self, make_order):
        order = make_order(invoice_value=Decimal("10"), invoice_date="2024-01-02")
        outcome = apply_edit(order, OrderEdit(invoice_number="INV-9"))
        assert outcome.order.status == OrderStatus.PENDING
        assert outcome.order.invoice_number == "INV-9"

    def test_input_order_not_mutated(self, invoiced_order):
        OrderLifecycleEngine().apply_edit(
            invoiced_order, OrderEdit(missing_items=["A"], notes="n")
        )
        assert invoiced_order.missing_items == ()
        assert invoiced_order.status == OrderStatus.DELIVERED


class TestNewlyMissing:
    def test_multiset_difference(self):
        assert newly_missing(["A", "B"], ["B", "A", "A", "C"]) == ["A", "C"]

    def test_removals_are_not_additions(self):
        assert newly_missing(["A", "B"], ["A"]) == []
