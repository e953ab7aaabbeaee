"""
Tests for workflow configuration loading.

Covers:
- Packaged default YAML
- Environment overrides (thresholds, database url, log level)
- Config path resolution (argument, PROCUREMENT_CONFIG, default)
- Validation failures
- get_active_config caching and its audit log entry
- bridges.build_orchestrator end to end
"""

from __future__ import annotations

from decimal import Decimal

import pytest
import yaml

from procurement_config import get_active_config, reset_active_config
from procurement_config.bridges import build_orchestrator
from procurement_config.loader import (
    CONFIG_PATH_ENV,
    DEFAULT_CONFIG_PATH,
    apply_env_overrides,
    load_workflow_config,
    resolve_config_path,
)
from procurement_kernel.db.engine import create_tables, drop_tables, reset_engine
from procurement_kernel.db.immutability import unregister_immutability_listeners
from procurement_kernel.domain.stages import Stage
from procurement_kernel.domain.state_machine import compute_path
from procurement_kernel.exceptions import ConfigurationError, InvalidThresholdsError


def write_config(path, **overrides):
    data = {
        "config_id": "test",
        "version": 3,
        "thresholds": {"area": "1000", "executive": "9000"},
        "database": {"url": "sqlite:///:memory:"},
        "logging": {"level": "debug"},
    }
    data.update(overrides)
    path.write_text(yaml.safe_dump(data))
    return path


@pytest.fixture
def active_config_reset():
    reset_active_config()
    yield
    reset_active_config()


# =========================================================================
# Loader
# =========================================================================


class TestDefaultConfig:

    def test_packaged_default_loads(self):
        config = load_workflow_config(DEFAULT_CONFIG_PATH, environ={})
        assert config.config_id == "default"
        assert config.thresholds.area == Decimal("5000000")
        assert config.thresholds.executive == Decimal("20000000")
        assert config.database.url.startswith("sqlite")
        assert config.log_level == "INFO"
        assert config.source == str(DEFAULT_CONFIG_PATH)

    def test_file_values_are_parsed(self, tmp_path):
        path = write_config(tmp_path / "workflow.yaml")
        config = load_workflow_config(path, environ={})
        assert config.config_id == "test"
        assert config.version == 3
        assert config.thresholds.area == Decimal("1000")
        assert config.database.pool_size == 10
        assert config.log_level == "DEBUG"

    def test_config_id_defaults_to_file_stem(self, tmp_path):
        path = tmp_path / "regional.yaml"
        path.write_text(yaml.safe_dump({
            "thresholds": {"area": 1, "executive": 2},
            "database": {"url": "sqlite://"},
        }))
        assert load_workflow_config(path, environ={}).config_id == "regional"


class TestEnvOverrides:

    def test_overrides_replace_file_values(self, tmp_path):
        path = write_config(tmp_path / "workflow.yaml")
        config = load_workflow_config(path, environ={
            "PROCUREMENT_AREA_THRESHOLD": "2500",
            "PROCUREMENT_EXECUTIVE_THRESHOLD": "12000.50",
            "DATABASE_URL": "postgresql://u:p@db/procurement",
            "PROCUREMENT_LOG_LEVEL": "warning",
        })
        assert config.thresholds.area == Decimal("2500")
        assert config.thresholds.executive == Decimal("12000.50")
        assert config.database.url == "postgresql://u:p@db/procurement"
        assert config.log_level == "WARNING"

    def test_empty_values_are_ignored(self, tmp_path):
        path = write_config(tmp_path / "workflow.yaml")
        config = load_workflow_config(path, environ={"PROCUREMENT_AREA_THRESHOLD": ""})
        assert config.thresholds.area == Decimal("1000")

    def test_input_is_not_mutated(self):
        data = {"thresholds": {"area": 1}}
        merged = apply_env_overrides(data, {"PROCUREMENT_AREA_THRESHOLD": "7"})
        assert merged["thresholds"]["area"] == "7"
        assert data["thresholds"]["area"] == 1

    def test_missing_section_is_created(self):
        merged = apply_env_overrides({}, {"DATABASE_URL": "sqlite://"})
        assert merged == {"database": {"url": "sqlite://"}}


class TestResolvePath:

    def test_explicit_path_wins(self, tmp_path):
        explicit = tmp_path / "a.yaml"
        assert resolve_config_path(explicit, {CONFIG_PATH_ENV: "/elsewhere.yaml"}) == explicit

    def test_environment_path(self, tmp_path):
        target = str(tmp_path / "b.yaml")
        assert str(resolve_config_path(None, {CONFIG_PATH_ENV: target})) == target

    def test_default_path(self):
        assert resolve_config_path(None, {}) == DEFAULT_CONFIG_PATH


class TestValidation:

    def test_inverted_thresholds(self, tmp_path):
        path = write_config(tmp_path / "w.yaml", thresholds={"area": 9000, "executive": 1000})
        with pytest.raises(InvalidThresholdsError):
            load_workflow_config(path, environ={})

    def test_negative_threshold(self, tmp_path):
        path = write_config(tmp_path / "w.yaml", thresholds={"area": -1, "executive": 1000})
        with pytest.raises(InvalidThresholdsError):
            load_workflow_config(path, environ={})

    def test_missing_threshold(self, tmp_path):
        path = write_config(tmp_path / "w.yaml", thresholds={"area": 1000})
        with pytest.raises(ConfigurationError, match="thresholds.executive"):
            load_workflow_config(path, environ={})

    @pytest.mark.parametrize("value", ["lots", "NaN", "Infinity"])
    def test_unusable_threshold(self, tmp_path, value):
        path = write_config(tmp_path / "w.yaml")
        with pytest.raises(ConfigurationError):
            load_workflow_config(path, environ={"PROCUREMENT_AREA_THRESHOLD": value})

    def test_missing_database_url(self, tmp_path):
        path = write_config(tmp_path / "w.yaml", database={"pool_size": 3})
        with pytest.raises(ConfigurationError, match="database.url"):
            load_workflow_config(path, environ={})

    @pytest.mark.parametrize("key", ["pool_size", "max_overflow", "pool_timeout"])
    def test_non_numeric_pool_setting(self, tmp_path, key):
        path = write_config(
            tmp_path / "w.yaml", database={"url": "sqlite://", key: "plenty"},
        )
        with pytest.raises(ConfigurationError, match=f"database.{key}"):
            load_workflow_config(path, environ={})

    def test_unknown_log_level(self, tmp_path):
        path = write_config(tmp_path / "w.yaml", logging={"level": "chatty"})
        with pytest.raises(ConfigurationError, match="log level"):
            load_workflow_config(path, environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_workflow_config(tmp_path / "absent.yaml", environ={})

    def test_configuration_errors_share_a_code(self):
        assert InvalidThresholdsError(2, 1).code == ConfigurationError("x").code


# =========================================================================
# Active config
# =========================================================================


class TestActiveConfig:

    def test_loaded_once_and_cached(self, tmp_path, monkeypatch, active_config_reset):
        path = write_config(tmp_path / "active.yaml")
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))
        for name in ("PROCUREMENT_AREA_THRESHOLD", "PROCUREMENT_EXECUTIVE_THRESHOLD",
                     "DATABASE_URL", "PROCUREMENT_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        first = get_active_config()
        path.write_text("not: [valid")
        assert get_active_config() is first
        assert first.thresholds.executive == Decimal("9000")

    def test_reset_forces_reload(self, tmp_path, monkeypatch, active_config_reset):
        path = write_config(tmp_path / "active.yaml")
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))
        monkeypatch.delenv("PROCUREMENT_AREA_THRESHOLD", raising=False)
        first = get_active_config()

        write_config(path, version=4)
        reset_active_config()
        second = get_active_config()
        assert second is not first
        assert second.version == 4

    def test_load_is_logged(self, tmp_path, monkeypatch, active_config_reset, captured_logs):
        path = write_config(tmp_path / "active.yaml")
        monkeypatch.setenv(CONFIG_PATH_ENV, str(path))
        monkeypatch.delenv("PROCUREMENT_AREA_THRESHOLD", raising=False)
        monkeypatch.delenv("PROCUREMENT_EXECUTIVE_THRESHOLD", raising=False)

        get_active_config()
        get_active_config()

        loaded = [r for r in captured_logs() if r["message"] == "workflow_config_loaded"]
        assert len(loaded) == 1
        assert loaded[0]["config_id"] == "test"
        assert loaded[0]["config_version"] == 3
        assert loaded[0]["area_threshold"] == "1000"
        assert loaded[0]["config_source"] == str(path)


# =========================================================================
# Bridges
# =========================================================================


class TestBuildOrchestrator:

    def test_orchestrator_uses_configured_thresholds(self, tmp_path, deterministic_clock):
        db_path = tmp_path / "bridge.db"
        path = write_config(tmp_path / "w.yaml", database={"url": f"sqlite:///{db_path}"})
        config = load_workflow_config(path, environ={})

        orchestrator = build_orchestrator(config, clock=deterministic_clock)
        try:
            create_tables()
            assert orchestrator.thresholds == config.thresholds
            assert orchestrator.list_pending("admin") == []
            assert compute_path(Decimal("1000"), orchestrator.thresholds)[1] is Stage.PENDING_EXECUTIVE
        finally:
            unregister_immutability_listeners()
            drop_tables()
            reset_engine()
