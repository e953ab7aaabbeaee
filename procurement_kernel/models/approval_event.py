"""
Module: procurement_kernel.models.approval_event
Responsibility: ORM persistence for the audit ledger.  One row per submit,
    approve or reject action on a purchase request.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ value types.

Invariants enforced:
    - Append-only: UPDATE and DELETE are rejected by ORM listeners
      (db/immutability.py) and by database triggers (db/triggers.py).
    - stage_ordinal in 0..3; 0 is the submission, 1..3 the pending stage the
      action was taken at (CHECK).
    - action in submit / approve / reject (CHECK).
    - A reject row always carries a non-empty comment (CHECK).
    - request_id has no cascade: a request with history cannot be deleted.

Failure modes:
    - ImmutabilityViolationError on any modification attempt.
    - IntegrityError on constraint violations.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import Base
from procurement_kernel.domain.dtos import ApprovalEventRecord
from procurement_kernel.domain.stages import LedgerAction, Role, Stage

_ACTION_VALUES = ", ".join(f"'{action.value}'" for action in LedgerAction)
_STAGE_VALUES = ", ".join(f"'{stage.value}'" for stage in Stage)


class ApprovalEvent(Base):
    """
    Immutable record of one workflow action.

    ``resulting_stage`` is the stage the request was left in by this action,
    so replaying the events in order reconstructs the request's history.
    """

    __tablename__ = "approval_events"

    __table_args__ = (
        CheckConstraint(
            "stage_ordinal BETWEEN 0 AND 3",
            name="ck_approval_events_ordinal_range",
        ),
        CheckConstraint(
            f"action IN ({_ACTION_VALUES})",
            name="ck_approval_events_valid_action",
        ),
        CheckConstraint(
            f"resulting_stage IN ({_STAGE_VALUES})",
            name="ck_approval_events_valid_resulting_stage",
        ),
        CheckConstraint(
            "action <> 'reject' OR "
            "(comment IS NOT NULL AND length(trim(comment)) > 0)",
            name="ck_approval_events_reject_comment",
        ),
        Index("ix_approval_events_history", "request_id", "created_at", "id"),
    )

    request_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_requests.id"),
        nullable=False,
    )
    stage_ordinal: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    resulting_stage: Mapped[str] = mapped_column(String(30), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalEvent {self.id} request={self.request_id} "
            f"{self.action}@{self.stage_ordinal}>"
        )

    def to_dto(
        self,
        actor_name: str | None = None,
        actor_email: str | None = None,
        actor_role: str | None = None,
    ) -> ApprovalEventRecord:
        """Convert ORM model to frozen domain DTO, with optional actor details."""
        return ApprovalEventRecord(
            id=self.id,
            request_id=self.request_id,
            stage_ordinal=self.stage_ordinal,
            action=LedgerAction(self.action),
            actor_id=self.actor_id,
            resulting_stage=Stage(self.resulting_stage),
            created_at=self.created_at,
            comment=self.comment,
            actor_name=actor_name,
            actor_email=actor_email,
            actor_role=Role(actor_role) if actor_role is not None else None,
        )
