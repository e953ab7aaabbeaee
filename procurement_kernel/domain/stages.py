"""
Workflow vocabulary (``procurement_kernel.domain.stages``).

Responsibility
--------------
Enumerations shared by the whole kernel: request stages, actor roles,
approval levels and ledger actions.  The string values are what the
database stores and what the check constraints enumerate.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    """Workflow position of a purchase request."""

    DRAFT = "draft"
    PENDING_AREA_LEAD = "pending_area_lead"
    PENDING_EXECUTIVE = "pending_executive"
    PENDING_TREASURY = "pending_treasury"
    APPROVED = "approved"
    REJECTED = "rejected"
    VOIDED = "voided"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


INITIAL_STAGE: Stage = Stage.DRAFT

PENDING_STAGES: frozenset[Stage] = frozenset({
    Stage.PENDING_AREA_LEAD,
    Stage.PENDING_EXECUTIVE,
    Stage.PENDING_TREASURY,
})

# No approval-protocol transition leaves these stages.
TERMINAL_STAGES: frozenset[Stage] = frozenset({
    Stage.APPROVED,
    Stage.REJECTED,
    Stage.VOIDED,
    Stage.IN_PROGRESS,
    Stage.COMPLETED,
})


class Role(str, Enum):
    """Organizational role of an acting user."""

    ADMIN = "admin"
    EXECUTIVE = "executive"
    AREA_LEAD = "area_lead"
    TREASURY = "treasury"
    REQUESTER = "requester"


class ApprovalLevel(str, Enum):
    """One approval tier required by the threshold policy."""

    AREA_LEAD = "area_lead"
    EXECUTIVE = "executive"
    TREASURY = "treasury"

    @property
    def pending_stage(self) -> Stage:
        """The stage a request sits in while waiting on this level."""
        return _LEVEL_STAGES[self]


_LEVEL_STAGES: dict[ApprovalLevel, Stage] = {
    ApprovalLevel.AREA_LEAD: Stage.PENDING_AREA_LEAD,
    ApprovalLevel.EXECUTIVE: Stage.PENDING_EXECUTIVE,
    ApprovalLevel.TREASURY: Stage.PENDING_TREASURY,
}


class LedgerAction(str, Enum):
    """Action tag recorded on every ledger event."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"


# Actions a reviewer may take through ``act``.
REVIEW_ACTIONS: frozenset[LedgerAction] = frozenset({
    LedgerAction.APPROVE,
    LedgerAction.REJECT,
})

SUBMISSION_ORDINAL = 0
