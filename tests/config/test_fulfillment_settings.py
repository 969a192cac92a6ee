"""Tests for fulfillment settings loading and validation."""

import pytest
import yaml

from fulfillment_config import DEFAULT_SETTINGS_PATH, get_active_settings
from fulfillment_config.loader import compute_checksum, load_yaml_file, parse_settings
from fulfillment_config.schema import FulfillmentSettings
from fulfillment_services.factory import build_store
from fulfillment_services.sql_store import SqlOrderStore
from fulfillment_services.store import InMemoryOrderStore


class TestDefaults:
    def test_packaged_defaults_match_dataclass_defaults(self):
        settings = get_active_settings()
        baseline = FulfillmentSettings()
        assert settings.store == baseline.store
        assert settings.ledger == baseline.ledger
        assert settings.identifiers == baseline.identifiers
        assert settings.rollup == baseline.rollup
        assert settings.source == str(DEFAULT_SETTINGS_PATH)
        assert len(settings.checksum) == 64

    def test_config_trace_is_logged(self, captured_logs):
        settings = get_active_settings()
        traces = [r for r in captured_logs() if r["message"] == "FULFILLMENT_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["checksum"] == settings.checksum
        assert traces[0]["store_backend"] == "memory"


class TestOverrides:
    def test_partial_file_keeps_other_defaults(self, tmp_path):
        path = tmp_path / "fulfillment.yaml"
        path.write_text(
            yaml.safe_dump({"ledger": {"append_max_attempts": 5}, "rollup": {"customer_key": "id"}})
        )
        settings = get_active_settings(path)
        assert settings.ledger.append_max_attempts == 5
        assert settings.ledger.row_id_prefix == "R-"
        assert settings.rollup.customer_key == "id"

    def test_checksum_tracks_content(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_empty_file_is_all_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}
        assert get_active_settings(path).store.backend == "memory"


class TestValidation:
    @pytest.mark.parametrize(
        "document, message",
        [
            ({"stores": {}}, "unknown settings section"),
            ({"ledger": {"retries": 2}}, "unknown key"),
            ({"store": {"backend": "sheets"}}, "store.backend"),
            ({"store": {"backend": "sql"}}, "database_url"),
            ({"ledger": {"append_max_attempts": 0}}, "append_max_attempts"),
            ({"ledger": {"append_backoff_seconds": -1}}, "append_backoff_seconds"),
            ({"identifiers": {"lpo_id_width": 0}}, "widths"),
            ({"rollup": {"customer_key": "email"}}, "customer_key"),
            ({"rollup": ["name"]}, "must be a mapping"),
        ],
    )
    def test_rejects(self, document, message):
        with pytest.raises(ValueError, match=message):
            parse_settings(document)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="top level"):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_settings(tmp_path / "absent.yaml")


class TestBuildStore:
    def test_memory_backend(self):
        store = build_store(FulfillmentSettings())
        assert isinstance(store, InMemoryOrderStore)

    def test_sql_backend(self):
        from fulfillment_kernel.db.engine import reset_engine

        settings = parse_settings({"store": {"backend": "sql", "database_url": "sqlite:///:memory:"}})
        try:
            store = build_store(settings)
            assert isinstance(store, SqlOrderStore)
            assert store.list_orders() == []
        finally:
            reset_engine()
