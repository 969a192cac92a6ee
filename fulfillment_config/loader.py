"""
Settings loader (``fulfillment_config.loader``).

Responsibility
--------------
Loads the YAML settings file and parses it into the frozen dataclasses of
``fulfillment_config.schema``.  Callers use
``fulfillment_config.get_active_settings()``; this module is the tooling
behind it.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages.  Unknown keys are rejected rather than ignored.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  document for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from fulfillment_config.schema import (
    CUSTOMER_KEYS,
    STORE_BACKENDS,
    FulfillmentSettings,
    IdentifierSettings,
    LedgerSettings,
    LoggingSettings,
    RollupSettings,
    StoreSettings,
)

_SECTIONS = {
    "store": StoreSettings,
    "ledger": LedgerSettings,
    "identifiers": IdentifierSettings,
    "rollup": RollupSettings,
    "logging": LoggingSettings,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _parse_section(name: str, raw: Any) -> Any:
    cls = _SECTIONS[name]
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ValueError(f"settings section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"unknown key(s) in '{name}': {sorted(unknown)}")
    return cls(**raw)


def parse_settings(data: dict[str, Any], source: str = "") -> FulfillmentSettings:
    """
    Parse a raw settings document.

    Raises:
        ValueError: unknown section or key, or a value outside its domain.
    """
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"unknown settings section(s): {sorted(unknown)}")

    sections = {name: _parse_section(name, data.get(name)) for name in _SECTIONS}

    store: StoreSettings = sections["store"]
    if store.backend not in STORE_BACKENDS:
        raise ValueError(f"store.backend must be one of {STORE_BACKENDS}, got {store.backend!r}")
    if store.backend == "sql" and not store.database_url:
        raise ValueError("store.database_url is required when store.backend is 'sql'")

    ledger: LedgerSettings = sections["ledger"]
    if int(ledger.append_max_attempts) < 1:
        raise ValueError("ledger.append_max_attempts must be >= 1")
    if float(ledger.append_backoff_seconds) < 0:
        raise ValueError("ledger.append_backoff_seconds must be >= 0")

    ids: IdentifierSettings = sections["identifiers"]
    if int(ids.lpo_id_width) < 1 or int(ledger.row_id_width) < 1:
        raise ValueError("id widths must be >= 1")

    rollup: RollupSettings = sections["rollup"]
    if rollup.customer_key not in CUSTOMER_KEYS:
        raise ValueError(
            f"rollup.customer_key must be one of {CUSTOMER_KEYS}, got {rollup.customer_key!r}"
        )

    return FulfillmentSettings(
        **sections,
        checksum=compute_checksum(data),
        source=source,
    )
