"""
Configuration Loader (``procurement_config.loader``).

Responsibility
--------------
Reads a YAML configuration file, applies environment overrides and parses
the result into the frozen ``procurement_config.schema`` dataclasses.
Runtime callers go through ``procurement_config.get_active_config()``;
this module is used directly only by tests and operator scripts.

Environment overrides
---------------------
* ``PROCUREMENT_AREA_THRESHOLD``       -> ``thresholds.area``
* ``PROCUREMENT_EXECUTIVE_THRESHOLD``  -> ``thresholds.executive``
* ``DATABASE_URL``                     -> ``database.url``
* ``PROCUREMENT_LOG_LEVEL``            -> ``logging.level``

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing or non-numeric thresholds  -> ``ConfigurationError``.
* ``area > executive`` or negative thresholds  -> ``InvalidThresholdsError``.
"""

from __future__ import annotations

import logging
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml

from procurement_config.schema import DatabaseSettings, WorkflowConfig
from procurement_kernel.domain.threshold_policy import ApprovalThresholds
from procurement_kernel.exceptions import ConfigurationError

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "PROCUREMENT_CONFIG"

# (environment variable, section, key)
ENV_OVERRIDES: tuple[tuple[str, str, str], ...] = (
    ("PROCUREMENT_AREA_THRESHOLD", "thresholds", "area"),
    ("PROCUREMENT_EXECUTIVE_THRESHOLD", "thresholds", "executive"),
    ("DATABASE_URL", "database", "url"),
    ("PROCUREMENT_LOG_LEVEL", "logging", "level"),
)

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def apply_env_overrides(
    data: dict[str, Any],
    environ: Mapping[str, str],
) -> dict[str, Any]:
    """Return a copy of ``data`` with any set environment overrides applied."""
    merged = {key: dict(value) if isinstance(value, dict) else value
              for key, value in data.items()}
    for variable, section, key in ENV_OVERRIDES:
        value = environ.get(variable)
        if value:
            merged.setdefault(section, {})[key] = value
    return merged


def _parse_amount(value: Any, key: str) -> Decimal:
    if value is None:
        raise ConfigurationError(f"Missing required setting thresholds.{key}")
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(
            f"thresholds.{key} must be a number, got {value!r}"
        ) from None
    if not amount.is_finite():
        raise ConfigurationError(f"thresholds.{key} must be finite, got {value!r}")
    return amount


def parse_thresholds(data: dict[str, Any]) -> ApprovalThresholds:
    """Parse and validate the approval tier boundaries."""
    return ApprovalThresholds(
        area=_parse_amount(data.get("area"), "area"),
        executive=_parse_amount(data.get("executive"), "executive"),
    )


def _parse_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"database.{key} must be an integer, got {value!r}"
        ) from None


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    if not data.get("url"):
        raise ConfigurationError("Missing required setting database.url")
    return DatabaseSettings(
        url=str(data["url"]),
        pool_size=_parse_int(data, "pool_size", 10),
        max_overflow=_parse_int(data, "max_overflow", 10),
        pool_timeout=_parse_int(data, "pool_timeout", 30),
        echo=bool(data.get("echo", False)),
    )


def parse_log_level(data: dict[str, Any]) -> str:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level {level!r}")
    return level


def resolve_config_path(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Explicit path, else ``$PROCUREMENT_CONFIG``, else the packaged default."""
    if path is not None:
        return Path(path)
    environ = os.environ if environ is None else environ
    if environ.get(CONFIG_PATH_ENV):
        return Path(environ[CONFIG_PATH_ENV])
    return DEFAULT_CONFIG_PATH


def load_workflow_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> WorkflowConfig:
    """
    Build a ``WorkflowConfig`` from YAML plus environment overrides.

    Args:
        path: Configuration file.  See ``resolve_config_path``.
        environ: Environment to read overrides from.  Defaults to
            ``os.environ``.
    """
    environ = os.environ if environ is None else environ
    source = resolve_config_path(path, environ)
    data = apply_env_overrides(load_yaml_file(source), environ)

    return WorkflowConfig(
        config_id=str(data.get("config_id", source.stem)),
        version=int(data.get("version", 1)),
        thresholds=parse_thresholds(data.get("thresholds") or {}),
        database=parse_database(data.get("database") or {}),
        log_level=parse_log_level(data.get("logging") or {}),
        source=str(source),
    )
