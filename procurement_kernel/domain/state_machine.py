"""
Approval state machine (``procurement_kernel.domain.state_machine``).

Responsibility
--------------
Pure functions over the stage path of a purchase request:

* ``compute_path``   -- full ordered path (pending stages + ``approved``).
* ``next_stage``     -- successor of the current stage in that path.
* ``can_act``        -- role-to-stage authorization check.
* ``stage_ordinal``  -- ledger ordinal of a pending stage.

The path is recomputed from the amount on every call rather than stored.
The amount is fixed when the request is created, so the path of a given
request is stable for its lifetime.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.

Invariants enforced
-------------------
* ``STAGE_AUTHORIZATION`` has an entry for every pending stage and for no
  other stage; checked when the module is imported.
* Every pending stage that appears in a computed path has a successor in
  that path (``approved`` is always last).
"""

from __future__ import annotations

from decimal import Decimal

from procurement_kernel.domain.stages import (
    INITIAL_STAGE,
    PENDING_STAGES,
    TERMINAL_STAGES,
    ApprovalLevel,
    Role,
    Stage,
)
from procurement_kernel.domain.threshold_policy import (
    ApprovalThresholds,
    required_levels,
)


STAGE_AUTHORIZATION: dict[Stage, frozenset[Role]] = {
    Stage.PENDING_AREA_LEAD: frozenset({Role.AREA_LEAD, Role.EXECUTIVE, Role.ADMIN}),
    Stage.PENDING_EXECUTIVE: frozenset({Role.EXECUTIVE, Role.ADMIN}),
    Stage.PENDING_TREASURY: frozenset({Role.TREASURY, Role.ADMIN}),
}

STAGE_ORDINALS: dict[Stage, int] = {
    Stage.PENDING_AREA_LEAD: 1,
    Stage.PENDING_EXECUTIVE: 2,
    Stage.PENDING_TREASURY: 3,
}


def _check_tables() -> None:
    if set(STAGE_AUTHORIZATION) != PENDING_STAGES:
        raise RuntimeError(
            "STAGE_AUTHORIZATION must cover exactly the pending stages"
        )
    if any(not roles for roles in STAGE_AUTHORIZATION.values()):
        raise RuntimeError("Every pending stage needs at least one role")
    if set(STAGE_ORDINALS) != PENDING_STAGES:
        raise RuntimeError("STAGE_ORDINALS must cover exactly the pending stages")
    if {level.pending_stage for level in ApprovalLevel} != PENDING_STAGES:
        raise RuntimeError("Every approval level must map to a pending stage")
    if PENDING_STAGES & TERMINAL_STAGES or (
        PENDING_STAGES | TERMINAL_STAGES | {INITIAL_STAGE}
    ) != set(Stage):
        raise RuntimeError("Every stage must be initial, pending or terminal")


_check_tables()


def compute_path(amount: Decimal, thresholds: ApprovalThresholds) -> tuple[Stage, ...]:
    """Full stage path for ``amount``, always ending in ``approved``."""
    levels = required_levels(amount, thresholds)
    return tuple(level.pending_stage for level in levels) + (Stage.APPROVED,)


def next_stage(
    current: Stage,
    amount: Decimal,
    thresholds: ApprovalThresholds,
) -> Stage | None:
    """Entry after ``current`` in the computed path.

    Returns None when ``current`` is the last entry or is not in the path.
    None means no further approval stage exists; callers must treat it as
    terminal.
    """
    path = compute_path(amount, thresholds)
    try:
        index = path.index(current)
    except ValueError:
        return None
    if index + 1 >= len(path):
        return None
    return path[index + 1]


def authorized_roles(current: Stage) -> frozenset[Role]:
    """Roles allowed to approve or reject at ``current`` (empty if none)."""
    return STAGE_AUTHORIZATION.get(current, frozenset())


def can_act(role: Role | str, current: Stage) -> bool:
    """True if ``role`` may approve or reject a request at ``current``."""
    try:
        role = Role(role)
    except ValueError:
        return False
    return role in authorized_roles(current)


def stage_ordinal(current: Stage) -> int:
    """Ledger ordinal for an action taken at a pending stage.

    Raises:
        KeyError: ``current`` is not a pending stage.  Callers check
            actionability first, so this is unreachable in the workflow.
    """
    return STAGE_ORDINALS[current]


def actionable_stages(role: Role | str) -> tuple[Stage, ...]:
    """Pending stages ``role`` may act on, in approval order."""
    return tuple(
        stage
        for stage in sorted(STAGE_ORDINALS, key=STAGE_ORDINALS.__getitem__)
        if can_act(role, stage)
    )
