"""
fulfillment_services.import_service -- Bulk import validation.

Responsibility:
    Validate the pre-parsed candidate rows handed over by the import
    normalizer (``{lpoNumber, lpoDate, customerName, lpoValue}``) and report,
    per row, either the normalized values or the list of problems found.
    File and format parsing happen upstream; nothing here reads files.

Checks (record-level, then batch-level):
    - MISSING_REQUIRED_FIELD: any of the four fields blank.
    - INVALID_DATE: lpoDate not an ISO date.
    - INVALID_AMOUNT / NON_POSITIVE_AMOUNT: lpoValue not a number, or <= 0.
    - DUPLICATE_VALUE_IN_BATCH: lpoNumber repeated within the batch (every
      occurrence is flagged).
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from fulfillment_kernel.domain.order import CandidateRow
from fulfillment_kernel.domain.values import ZERO, to_date, to_decimal
from fulfillment_kernel.logging_config import get_logger

logger = get_logger("services.import")

_FIELDS = ("lpo_number", "lpo_date", "customer_name", "lpo_value")


@dataclass(frozen=True)
class ImportIssue:
    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ValidatedRow:
    row_index: int
    lpo_number: str
    lpo_date: date
    customer_name: str
    lpo_value: Decimal


@dataclass
class ImportReport:
    valid: list[ValidatedRow] = field(default_factory=list)
    errors: dict[int, list[ImportIssue]] = field(default_factory=dict)

    @property
    def is_clean(self) -> bool:
        return not self.errors

    @property
    def row_count(self) -> int:
        return len(self.valid) + len(self.errors)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_required_fields(row: CandidateRow) -> list[ImportIssue]:
    return [
        ImportIssue("MISSING_REQUIRED_FIELD", f"{name} is required", name)
        for name in _FIELDS
        if _blank(getattr(row, name))
    ]


def validate_lpo_date(row: CandidateRow) -> list[ImportIssue]:
    if _blank(row.lpo_date):
        return []
    try:
        to_date(row.lpo_date)
    except ValueError:
        return [ImportIssue("INVALID_DATE", f"lpo_date is not an ISO date: {row.lpo_date!r}", "lpo_date")]
    return []


def validate_lpo_value(row: CandidateRow) -> list[ImportIssue]:
    if _blank(row.lpo_value):
        return []
    try:
        value = to_decimal(row.lpo_value)
    except ValueError:
        return [ImportIssue("INVALID_AMOUNT", f"lpo_value is not a number: {row.lpo_value!r}", "lpo_value")]
    if value <= ZERO:
        return [ImportIssue("NON_POSITIVE_AMOUNT", "lpo_value must be > 0", "lpo_value")]
    return []


def validate_batch_uniqueness(rows: Sequence[CandidateRow]) -> dict[int, list[ImportIssue]]:
    """Row index -> duplicate lpo_number issue, for every occurrence."""
    indices: dict[str, list[int]] = defaultdict(list)
    for i, row in enumerate(rows):
        if not _blank(row.lpo_number):
            indices[str(row.lpo_number).strip()].append(i)
    result: dict[int, list[ImportIssue]] = {}
    for number, where in indices.items():
        if len(where) > 1:
            for i in where:
                result[i] = [
                    ImportIssue(
                        "DUPLICATE_VALUE_IN_BATCH",
                        f"lpo_number {number!r} appears in rows {where}",
                        "lpo_number",
                    )
                ]
    return result


_RECORD_VALIDATORS = (validate_required_fields, validate_lpo_date, validate_lpo_value)


class BulkImportService:
    """Stateless validator for candidate rows."""

    def validate(self, rows: Iterable[CandidateRow | Mapping[str, Any]]) -> ImportReport:
        candidates = [
            r if isinstance(r, CandidateRow) else CandidateRow.from_mapping(dict(r))
            for r in rows
        ]
        batch_issues = validate_batch_uniqueness(candidates)
        report = ImportReport()

        for i, row in enumerate(candidates):
            issues: list[ImportIssue] = []
            for validator in _RECORD_VALIDATORS:
                issues.extend(validator(row))
            issues.extend(batch_issues.get(i, []))
            if issues:
                report.errors[i] = issues
                continue
            report.valid.append(
                ValidatedRow(
                    row_index=i,
                    lpo_number=str(row.lpo_number).strip(),
                    lpo_date=to_date(row.lpo_date),
                    customer_name=str(row.customer_name).strip(),
                    lpo_value=to_decimal(row.lpo_value),
                )
            )

        logger.info(
            "import_validated",
            extra={"rows": report.row_count, "valid": len(report.valid), "invalid": len(report.errors)},
        )
        return report
