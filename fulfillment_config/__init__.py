"""
fulfillment_config -- single public entrypoint for fulfillment settings.

Responsibility:
    ``get_active_settings()`` is the only way services and batch jobs obtain
    configuration.  It loads a YAML file (the packaged ``defaults.yaml``
    unless a path is given), parses it into a frozen ``FulfillmentSettings``
    and emits a ``FULFILLMENT_CONFIG_TRACE`` log record carrying the
    document checksum.

Architecture position:
    Configuration -- sits above ``fulfillment_kernel`` and beside
    ``fulfillment_engines``.  The kernel and engines MUST NOT import from
    here; services receive settings by injection.

Failure modes:
    - ``FileNotFoundError`` -- config_path does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` -- unknown keys or out-of-domain values.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fulfillment_config.loader import load_yaml_file, parse_settings
from fulfillment_config.schema import FulfillmentSettings

_logger = logging.getLogger("fulfillment.config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_settings(config_path: Path | str | None = None) -> FulfillmentSettings:
    """Load, validate and trace the active settings."""
    path = Path(config_path) if config_path is not None else DEFAULT_SETTINGS_PATH
    settings = parse_settings(load_yaml_file(path), source=str(path))

    _logger.info(
        "FULFILLMENT_CONFIG_TRACE",
        extra={
            "trace_type": "FULFILLMENT_CONFIG_TRACE",
            "source": settings.source,
            "checksum": settings.checksum,
            "store_backend": settings.store.backend,
            "customer_key": settings.rollup.customer_key,
            "ledger_append_max_attempts": settings.ledger.append_max_attempts,
        },
    )
    return settings


__all__ = ["DEFAULT_SETTINGS_PATH", "FulfillmentSettings", "get_active_settings"]
