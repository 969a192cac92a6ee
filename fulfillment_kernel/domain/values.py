"""
Values -- status enums and amount/date coercion.

Responsibility:
    Defines the closed vocabularies of the fulfillment domain (order status,
    item ledger status, resolution action) and the ONLY sanctioned helpers
    for turning raw store or import values into ``Decimal`` amounts and
    ``date`` objects.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Monetary amounts are ``Decimal``, never float.  Floats arriving from a
      store are converted through ``str`` so no binary noise leaks in.
    - Non-finite amounts (NaN, Infinity) are rejected at the boundary.

Failure modes:
    - ValueError from ``to_decimal`` / ``to_date`` on unparseable input.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

ZERO = Decimal("0")


class OrderStatus(str, Enum):
    """Derived fulfillment status of an LPO."""

    PENDING = "pending"
    PARTIAL = "partial"
    DELIVERED = "delivered"
    DELIVERED_WITH_CANCEL = "delivered_with_cancel"


class ItemStatus(str, Enum):
    """Status recorded on an item ledger entry."""

    MISSING = "missing"
    SHIPPED = "shipped"
    CANCELED = "canceled"


class ResolutionAction(str, Enum):
    """How a missing item is resolved."""

    SHIP = "ship"
    CANCEL = "cancel"


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a raw value to a finite Decimal.

    Preconditions:
        value is a Decimal, int, float or numeric string.  Thousands
        separators (",") in strings are tolerated.

    Raises:
        ValueError: if value is None, a bool, empty, unparseable or non-finite.
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            raise ValueError("Invalid amount: empty string")
        try:
            result = Decimal(text)
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    else:
        raise ValueError(f"Invalid amount type: {type(value).__name__}")

    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r} is not finite")
    return result


def to_date(value: Any) -> date | None:
    """
    Coerce a raw value to a date; empty values become None.

    Accepts ``date``, ``datetime`` (date part) and ISO strings
    (``YYYY-MM-DD``, optionally followed by a time part).

    Raises:
        ValueError: if value is a non-empty string that is not an ISO date,
            or an unsupported type.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text[:10])
        except ValueError as e:
            raise ValueError(f"Invalid date: {value!r}") from e
    raise ValueError(f"Invalid date type: {type(value).__name__}")
