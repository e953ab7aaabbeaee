"""
Config-to-kernel bridges (``procurement_config.bridges``).

Turns a ``WorkflowConfig`` into running kernel objects: logging, the
engine and a workflow orchestrator.  Scripts and service entrypoints call
these instead of wiring the kernel by hand.
"""

from __future__ import annotations

from procurement_config.schema import WorkflowConfig
from procurement_kernel.db.engine import get_session_factory, init_engine_from_url
from procurement_kernel.domain.clock import Clock
from procurement_kernel.logging_config import configure_logging
from procurement_kernel.services.workflow_orchestrator import WorkflowOrchestrator


def init_engine_from_config(config: WorkflowConfig):
    """Initialize the kernel engine with the configured database settings."""
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
    )


def build_orchestrator(
    config: WorkflowConfig,
    clock: Clock | None = None,
) -> WorkflowOrchestrator:
    """Configure logging and the engine, then return an orchestrator."""
    configure_logging(level=config.log_level)
    init_engine_from_config(config)
    return WorkflowOrchestrator(
        config.thresholds,
        session_factory=get_session_factory(),
        clock=clock,
    )
