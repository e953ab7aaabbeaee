"""Pure domain layer: stages, threshold policy, state machine, DTOs, clock."""

from procurement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from procurement_kernel.domain.stages import (
    ApprovalLevel,
    LedgerAction,
    Role,
    Stage,
)
from procurement_kernel.domain.state_machine import (
    can_act,
    compute_path,
    next_stage,
    stage_ordinal,
)
from procurement_kernel.domain.threshold_policy import (
    ApprovalThresholds,
    required_levels,
)

__all__ = [
    "ApprovalLevel",
    "ApprovalThresholds",
    "Clock",
    "DeterministicClock",
    "LedgerAction",
    "Role",
    "Stage",
    "SystemClock",
    "can_act",
    "compute_path",
    "next_stage",
    "required_levels",
    "stage_ordinal",
]
