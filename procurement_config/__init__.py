"""
procurement_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration -- sits above ``procurement_kernel``.  The kernel MUST
    NEVER import from ``procurement_config``; ``bridges`` translates the
    loaded configuration into kernel objects.

Invariants enforced:
    - Read once: the first successful call is cached for the life of the
      process.  ``reset_active_config()`` exists for tests.
    - Thresholds are validated (``0 <= area <= executive``) before a
      configuration is returned.

Audit relevance:
    Every load emits a ``workflow_config_loaded`` log entry with the
    config_id, version, source file and thresholds in force.
"""

from __future__ import annotations

import threading

from procurement_config.loader import load_workflow_config
from procurement_config.schema import DatabaseSettings, WorkflowConfig
from procurement_kernel.logging_config import get_logger

_logger = get_logger("config")

_active: WorkflowConfig | None = None
_lock = threading.Lock()


def get_active_config() -> WorkflowConfig:
    """The ONLY public configuration entrypoint.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ConfigurationError: If a setting is missing or invalid.
    """
    global _active
    with _lock:
        if _active is None:
            config = load_workflow_config()
            _logger.info(
                "workflow_config_loaded",
                extra={
                    "config_id": config.config_id,
                    "config_version": config.version,
                    "config_source": config.source,
                    "area_threshold": config.thresholds.area,
                    "executive_threshold": config.thresholds.executive,
                },
            )
            _active = config
        return _active


def reset_active_config() -> None:
    """Forget the cached configuration. FOR TESTING ONLY."""
    global _active
    with _lock:
        _active = None


__all__ = [
    "DatabaseSettings",
    "WorkflowConfig",
    "get_active_config",
    "reset_active_config",
]
