"""
FulfillmentSettings schema.

Typed, frozen view of the YAML settings file.  The loader parses raw YAML
into these types; ``get_active_settings()`` is the only runtime entry point.
"""

from __future__ import annotations

from dataclasses import dataclass, field

STORE_BACKENDS = ("memory", "sql")
CUSTOMER_KEYS = ("name", "id")


@dataclass(frozen=True)
class StoreSettings:
    """Which Order Store Adapter to build."""

    backend: str = "memory"
    database_url: str | None = None
    echo: bool = False


@dataclass(frozen=True)
class LedgerSettings:
    """Ledger append retry policy and row id format."""

    append_max_attempts: int = 3
    append_backoff_seconds: float = 0.2
    row_id_prefix: str = "R-"
    row_id_width: int = 3


@dataclass(frozen=True)
class IdentifierSettings:
    """LPO id format: ``prefix`` + zero-padded counter."""

    lpo_id_prefix: str = "L-"
    lpo_id_width: int = 3


@dataclass(frozen=True)
class RollupSettings:
    customer_key: str = "name"


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class FulfillmentSettings:
    """Root settings object.  ``checksum`` identifies the source document."""

    store: StoreSettings = field(default_factory=StoreSettings)
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    identifiers: IdentifierSettings = field(default_factory=IdentifierSettings)
    rollup: RollupSettings = field(default_factory=RollupSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
    source: str = ""
