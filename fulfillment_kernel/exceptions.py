"""
Typed Exception Hierarchy for the fulfillment kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (a UI, a batch job) must react differently to "re-prompt the user",
"the store is down" and "someone else edited this order".  Each of those is
a distinct exception type with a machine-readable ``code`` class attribute and
its context kept as attributes, so nobody has to parse message strings.

Example:
    try:
        service.resolve_item("L-004", index=0, action="ship", amount=amount)
    except InvalidShipAmountError as e:
        reprompt(field="amount", code=e.code)
    except StaleOrderVersionError as e:
        reload_and_retry(e.lpo_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    FulfillmentError (base)
    |
    +-- OrderValidationError
    |   +-- MissingInvoiceDateError
    |   +-- InvalidInvoiceValueError
    |   +-- MissingItemsRequiredForPartialError
    |   +-- NoteRequiredForMissingItemsError
    |   +-- DeliveredLockedWhileMissingError
    |
    +-- ItemError
    |   +-- InvalidItemIndexError
    |   +-- InvalidShipAmountError
    |
    +-- StoreError
    |   +-- StoreReadError
    |   +-- StoreWriteError
    |   |   +-- LedgerAppendFailedError
    |   +-- OrderNotFoundError
    |
    +-- ConcurrencyError
    |   +-- StaleOrderVersionError
    |   +-- LedgerSequenceConflictError
    |
    +-- ImportRowError
    +-- MalformedOrderError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                               | When Raised
----------------|------------------------------------|-------------------------------------
Validation      | MISSING_INVOICE_DATE               | Invoice value set without a date
                | INVALID_INVOICE_VALUE              | Invoice value 0 or absent on save
                | MISSING_ITEMS_REQUIRED_FOR_PARTIAL | Partial status with no missing items
                | NOTE_REQUIRED_FOR_MISSING_ITEMS    | Missing items without a note
                | DELIVERED_LOCKED_WHILE_MISSING     | Delivered chosen while items missing
----------------|------------------------------------|-------------------------------------
Item            | INVALID_ITEM_INDEX                 | Position outside missing items
                | INVALID_SHIP_AMOUNT                | Ship amount <= 0 or not a number
----------------|------------------------------------|-------------------------------------
Store           | STORE_READ_FAILED                  | Adapter could not read
                | STORE_WRITE_FAILED                 | Adapter could not write
                | LEDGER_APPEND_FAILED               | Ledger append retries exhausted
                | ORDER_NOT_FOUND                    | No order with that lpo id
----------------|------------------------------------|-------------------------------------
Concurrency     | STALE_ORDER_VERSION                | Order changed since it was read
                | LEDGER_SEQUENCE_CONFLICT           | Different entry already at sequence
----------------|------------------------------------|-------------------------------------
Import          | INVALID_IMPORT_ROW                 | Candidate rows failed validation
Aggregation     | MALFORMED_ORDER                    | Record unusable for aggregation

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation and item errors are recovered locally: nothing was mutated,
   the caller re-prompts.
2. Store errors surface to the user as a failed save.  The in-memory
   snapshot is untouched when the order write did not go through.
3. Concurrency errors mean "reload and redo"; they are never retried
   blindly because ship amounts are not idempotent.
4. MalformedOrderError never escapes an aggregation; the record is skipped
   with a warning.
"""


class FulfillmentError(Exception):
    """
    Base exception for all fulfillment errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "FULFILLMENT_ERROR"


# Validation exceptions (applyEdit)


class OrderValidationError(FulfillmentError):
    """Base exception for rejected manual edits."""

    code: str = "ORDER_VALIDATION_ERROR"

    def __init__(self, lpo_id: str, message: str):
        self.lpo_id = lpo_id
        super().__init__(f"Edit rejected for {lpo_id}: {message}")


class MissingInvoiceDateError(OrderValidationError):
    """Invoice value was set without an invoice date."""

    code: str = "MISSING_INVOICE_DATE"

    def __init__(self, lpo_id: str):
        super().__init__(lpo_id, "invoice date is required when an invoice value is set")


class InvalidInvoiceValueError(OrderValidationError):
    """Invoice value is zero, negative or absent."""

    code: str = "INVALID_INVOICE_VALUE"

    def __init__(self, lpo_id: str, invoice_value: str):
        self.invoice_value = invoice_value
        super().__init__(lpo_id, f"invoice value must be > 0, got {invoice_value}")


class MissingItemsRequiredForPartialError(OrderValidationError):
    """Status ``partial`` requires at least one missing item."""

    code: str = "MISSING_ITEMS_REQUIRED_FOR_PARTIAL"

    def __init__(self, lpo_id: str):
        super().__init__(lpo_id, "partial status requires at least one missing item")


class NoteRequiredForMissingItemsError(OrderValidationError):
    """A note must document why items are missing."""

    code: str = "NOTE_REQUIRED_FOR_MISSING_ITEMS"

    def __init__(self, lpo_id: str, missing_count: int):
        self.missing_count = missing_count
        super().__init__(
            lpo_id, f"a note is required for {missing_count} missing item(s)"
        )


class DeliveredLockedWhileMissingError(OrderValidationError):
    """``delivered`` cannot be selected while items are still missing."""

    code: str = "DELIVERED_LOCKED_WHILE_MISSING"

    def __init__(self, lpo_id: str, missing_count: int):
        self.missing_count = missing_count
        super().__init__(
            lpo_id, f"cannot mark delivered while {missing_count} item(s) are missing"
        )


# Item ledger exceptions (resolveItem)


class ItemError(FulfillmentError):
    """Base exception for rejected item resolutions."""

    code: str = "ITEM_ERROR"


class InvalidItemIndexError(ItemError):
    """Index does not address a position in the current missing items."""

    code: str = "INVALID_ITEM_INDEX"

    def __init__(self, lpo_id: str, index: object, missing_count: int):
        self.lpo_id = lpo_id
        self.index = index
        self.missing_count = missing_count
        super().__init__(
            f"Invalid item index {index!r} for {lpo_id}: "
            f"{missing_count} missing item(s)"
        )


class InvalidShipAmountError(ItemError):
    """Shipping requires a positive amount."""

    code: str = "INVALID_SHIP_AMOUNT"

    def __init__(self, lpo_id: str, amount: object):
        self.lpo_id = lpo_id
        self.amount = amount
        super().__init__(f"Invalid ship amount {amount!r} for {lpo_id}: must be > 0")


# Store exceptions


class StoreError(FulfillmentError):
    """Base exception for Order Store Adapter failures."""

    code: str = "STORE_ERROR"


class StoreReadError(StoreError):
    """The store could not be read."""

    code: str = "STORE_READ_FAILED"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store read failed during {operation}: {reason}")


class StoreWriteError(StoreError):
    """The store rejected or failed a write."""

    code: str = "STORE_WRITE_FAILED"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store write failed during {operation}: {reason}")


class LedgerAppendFailedError(StoreWriteError):
    """
    Ledger append did not succeed within the configured attempts.

    No order-row write was issued for the action.
    """

    code: str = "LEDGER_APPEND_FAILED"

    def __init__(self, lpo_id: str, sequence: int, attempts: int, reason: str):
        self.lpo_id = lpo_id
        self.sequence = sequence
        self.attempts = attempts
        super().__init__(
            "append_ledger_entry",
            f"{lpo_id}#{sequence} failed after {attempts} attempt(s): {reason}",
        )


class OrderNotFoundError(StoreError):
    """No order with the given lpo id."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, lpo_id: str):
        self.lpo_id = lpo_id
        super().__init__(f"Order not found: {lpo_id}")


# Concurrency exceptions


class ConcurrencyError(FulfillmentError):
    """Base exception for concurrent-modification conflicts."""

    code: str = "CONCURRENCY_ERROR"


class StaleOrderVersionError(ConcurrencyError):
    """The order was modified after it was read."""

    code: str = "STALE_ORDER_VERSION"

    def __init__(self, lpo_id: str, expected_version: int, actual_version: int):
        self.lpo_id = lpo_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Stale write on {lpo_id}: expected version {expected_version}, "
            f"store has {actual_version}"
        )


class LedgerSequenceConflictError(ConcurrencyError):
    """A different ledger entry already occupies this sequence slot."""

    code: str = "LEDGER_SEQUENCE_CONFLICT"

    def __init__(self, lpo_id: str, sequence: int):
        self.lpo_id = lpo_id
        self.sequence = sequence
        super().__init__(
            f"Ledger sequence {sequence} for {lpo_id} already holds a different entry"
        )


# Import / aggregation exceptions


class ImportRowError(FulfillmentError):
    """One or more candidate rows failed validation."""

    code: str = "INVALID_IMPORT_ROW"

    def __init__(self, errors_by_row: dict[int, list]):
        self.errors_by_row = errors_by_row
        super().__init__(
            f"{len(errors_by_row)} candidate row(s) failed validation: "
            f"rows {sorted(errors_by_row)}"
        )


class MalformedOrderError(FulfillmentError):
    """A record cannot be used by an aggregation."""

    code: str = "MALFORMED_ORDER"

    def __init__(self, lpo_id: str | None, reason: str):
        self.lpo_id = lpo_id
        self.reason = reason
        super().__init__(f"Malformed order {lpo_id or '<unknown>'}: {reason}")
