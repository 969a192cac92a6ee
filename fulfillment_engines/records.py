"""
fulfillment_engines.records -- Snapshot record coercion for read-only aggregations.

Aggregations run against whatever snapshot the caller holds, which may be
stale or half-written.  ``coerce_order`` turns one record into an ``Order``
or raises ``MalformedOrderError``; ``well_formed`` iterates a snapshot,
logging and skipping the records that cannot be used.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from fulfillment_kernel.domain.order import Order
from fulfillment_kernel.exceptions import MalformedOrderError


def coerce_order(record: Any) -> Order:
    """Return ``record`` as an Order or raise MalformedOrderError."""
    if isinstance(record, Order):
        return record
    if isinstance(record, Mapping):
        lpo_id = record.get("lpo_id", record.get("lpoId"))
        try:
            return Order.from_mapping(dict(record))
        except KeyError as e:
            raise MalformedOrderError(lpo_id, f"missing field {e.args[0]}") from e
        except (TypeError, ValueError) as e:
            raise MalformedOrderError(lpo_id, str(e)) from e
    raise MalformedOrderError(None, f"unsupported record type {type(record).__name__}")


def well_formed(
    records: Iterable[Any],
    logger: logging.Logger,
    event: str,
) -> Iterator[Order]:
    """Yield usable orders; log ``event`` at WARNING for each skipped record."""
    for position, record in enumerate(records):
        try:
            yield coerce_order(record)
        except MalformedOrderError as e:
            logger.warning(
                event,
                extra={
                    "position": position,
                    "record_lpo_id": e.lpo_id,
                    "reason": e.reason,
                    "error_code": e.code,
                },
            )
