"""Tests for bulk import row validation."""

from datetime import date
from decimal import Decimal

import pytest

from fulfillment_kernel.domain.order import CandidateRow
from fulfillment_services.import_service import (
    BulkImportService,
    validate_batch_uniqueness,
    validate_lpo_date,
    validate_lpo_value,
    validate_required_fields,
)


def _row(number="PO-1", when="2024-03-04", customer="Acme", value="100"):
    return CandidateRow(lpo_number=number, lpo_date=when, customer_name=customer, lpo_value=value)


class TestRecordValidators:
    def test_blank_fields(self):
        issues = validate_required_fields(_row(number="  ", customer=None))
        assert [(i.code, i.field) for i in issues] == [
            ("MISSING_REQUIRED_FIELD", "lpo_number"),
            ("MISSING_REQUIRED_FIELD", "customer_name"),
        ]

    @pytest.mark.parametrize("when", ["04/03/2024", "2024-13-01", "soon"])
    def test_bad_dates(self, when):
        assert [i.code for i in validate_lpo_date(_row(when=when))] == ["INVALID_DATE"]

    @pytest.mark.parametrize(
        "value, code",
        [("abc", "INVALID_AMOUNT"), ("NaN", "INVALID_AMOUNT"), ("0", "NON_POSITIVE_AMOUNT"), (-3, "NON_POSITIVE_AMOUNT")],
    )
    def test_bad_amounts(self, value, code):
        assert [i.code for i in validate_lpo_value(_row(value=value))] == [code]

    def test_blank_values_only_reported_once(self):
        row = _row(when="", value="")
        assert validate_lpo_date(row) == []
        assert validate_lpo_value(row) == []
        assert len(validate_required_fields(row)) == 2


class TestBatch:
    def test_every_duplicate_occurrence_is_flagged(self):
        rows = [_row("PO-1"), _row("PO-2"), _row(" PO-1 ")]
        issues = validate_batch_uniqueness(rows)
        assert sorted(issues) == [0, 2]
        assert issues[0][0].code == "DUPLICATE_VALUE_IN_BATCH"

    def test_report_splits_valid_and_invalid(self, captured_logs):
        report = BulkImportService().validate(
            [
                {"lpoNumber": "PO-1", "lpoDate": "2024-03-04", "customerName": " Acme ", "lpoValue": "1,250.50"},
                {"lpoNumber": "PO-2", "lpoDate": "", "customerName": "Acme", "lpoValue": "x"},
                _row("PO-3"),
            ]
        )

        assert report.row_count == 3
        assert not report.is_clean
        assert [r.row_index for r in report.valid] == [0, 2]
        first = report.valid[0]
        assert first.customer_name == "Acme"
        assert first.lpo_value == Decimal("1250.50")
        assert first.lpo_date == date(2024, 3, 4)
        assert [i.code for i in report.errors[1]] == ["MISSING_REQUIRED_FIELD", "INVALID_AMOUNT"]

        (record,) = [r for r in captured_logs() if r["message"] == "import_validated"]
        assert (record["valid"], record["invalid"]) == (2, 1)
