"""
procurement_kernel.services.audit_ledger -- Append-only approval history.

Responsibility:
    Record one event per workflow action and read a request's history back
    in order, with the acting user's display attributes joined in.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - append() inserts exactly one row and never updates one.
    - history() is ordered by (created_at, id) ascending.
    - The caller checks that the request exists; the ledger does not.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterator

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from procurement_kernel.domain.dtos import ApprovalEventRecord
from procurement_kernel.domain.stages import LedgerAction, Stage
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.approval_event import ApprovalEvent
from procurement_kernel.models.directory import User
from procurement_kernel.services.base import BaseService

logger = get_logger("services.audit_ledger")


class LedgerHistory:
    """
    Lazy, finite, restartable view of one request's events.

    Each iteration runs the query again, so iterating twice inside the same
    transaction yields the same events and iterating after a later append
    includes it.
    """

    def __init__(self, session: Session, request_id: int):
        self._session = session
        self.request_id = request_id

    def __iter__(self) -> Iterator[ApprovalEventRecord]:
        stmt = (
            select(ApprovalEvent, User.full_name, User.email, User.role)
            .join(User, User.id == ApprovalEvent.actor_id)
            .where(ApprovalEvent.request_id == self.request_id)
            .order_by(ApprovalEvent.created_at, ApprovalEvent.id)
        )
        for event, name, email, role in self._session.execute(stmt):
            yield event.to_dto(actor_name=name, actor_email=email, actor_role=role)

    def __repr__(self) -> str:
        return f"<LedgerHistory request={self.request_id}>"


class AuditLedger(BaseService[ApprovalEvent]):
    """Writes and reads approval events inside the caller's transaction."""

    def append(
        self,
        *,
        request_id: int,
        stage_ordinal: int,
        action: LedgerAction,
        actor_id: int,
        resulting_stage: Stage,
        created_at: datetime,
        comment: str | None = None,
    ) -> ApprovalEventRecord:
        event = ApprovalEvent(
            request_id=request_id,
            stage_ordinal=stage_ordinal,
            action=action.value,
            comment=comment,
            actor_id=actor_id,
            resulting_stage=resulting_stage.value,
            created_at=created_at,
        )
        self.session.add(event)
        self.session.flush()

        logger.debug(
            "ledger_event_appended",
            extra={
                "event_id": event.id,
                "action": action.value,
                "stage_ordinal": stage_ordinal,
                "resulting_stage": resulting_stage.value,
            },
        )
        return event.to_dto()

    def history(self, request_id: int) -> LedgerHistory:
        return LedgerHistory(self.session, request_id)

    def count(self, request_id: int) -> int:
        return self.session.execute(
            select(func.count(ApprovalEvent.id)).where(
                ApprovalEvent.request_id == request_id
            )
        ).scalar_one()
