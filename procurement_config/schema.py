"""
Configuration Schema (``procurement_config.schema``).

Frozen dataclasses describing a loaded workflow configuration.  Instances
are produced only by ``procurement_config.loader``; callers obtain them
through ``procurement_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from procurement_kernel.domain.threshold_policy import ApprovalThresholds


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection and pool settings for the request store."""

    url: str
    pool_size: int = 10
    max_overflow: int = 10
    pool_timeout: int = 30
    echo: bool = False


@dataclass(frozen=True)
class WorkflowConfig:
    """Everything the workflow reads at process start."""

    config_id: str
    version: int
    thresholds: ApprovalThresholds
    database: DatabaseSettings
    log_level: str = "INFO"
    source: str = ""
