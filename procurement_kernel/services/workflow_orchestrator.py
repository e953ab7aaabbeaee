"""
procurement_kernel.services.workflow_orchestrator -- Purchase request workflow.

Responsibility:
    The kernel's operation boundary.  Creates requests, submits them,
    applies approve/reject actions, retires drafts and answers inspection
    and queue queries.  Each operation runs in its own UnitOfWork.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/, selectors/.

Invariants enforced:
    - Every stage change and its ledger event commit together or not at all.
    - Only the requester submits or withdraws, and only from ``draft``.
    - Approve/reject only at a pending stage, only by an authorized role.
    - Approve moves to the next stage of the path recomputed from the
      request's total; a missing successor is an error, never a no-op.
    - Reject always requires a non-empty comment.
    - Inspect re-derives the total from the line items and fails loudly on
      a mismatch.

Failure modes:
    - NotFoundError subclasses for missing requests, users and areas.
    - WorkflowValidationError subclasses for illegal operations.
    - ForbiddenError subclasses for the wrong actor.
    - StorageError when the database fails (transaction rolled back).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Sequence

from sqlalchemy.orm import Session, sessionmaker

from procurement_kernel.db.engine import get_session_factory
from procurement_kernel.db.immutability import register_immutability_listeners
from procurement_kernel.domain.clock import Clock, SystemClock
from procurement_kernel.domain.dtos import (
    AMOUNT_QUANTUM,
    MAX_AMOUNT,
    MAX_QUANTITY,
    QUANTITY_QUANTUM,
    LineItemSpec,
    PurchaseRequestRecord,
    RequestDetail,
    RequestSummary,
    TransitionOutcome,
)
from procurement_kernel.domain.stages import (
    PENDING_STAGES,
    REVIEW_ACTIONS,
    SUBMISSION_ORDINAL,
    LedgerAction,
    Role,
    Stage,
)
from procurement_kernel.domain.state_machine import (
    actionable_stages,
    authorized_roles,
    can_act,
    compute_path,
    next_stage,
    stage_ordinal,
)
from procurement_kernel.domain.threshold_policy import ApprovalThresholds
from procurement_kernel.exceptions import (
    MissingCommentError,
    NoNextStageError,
    NotDraftError,
    NotRequesterError,
    RequestValidationError,
    StageAuthorizationError,
    StageNotActionableError,
    TotalIntegrityError,
)
from procurement_kernel.logging_config import LogContext, get_logger
from procurement_kernel.services.unit_of_work import UnitOfWork

logger = get_logger("services.workflow_orchestrator")


def _require_text(value: str | None, field: str) -> str:
    if value is None or not str(value).strip():
        raise RequestValidationError(f"{field} must not be empty", field=field)
    return str(value).strip()


def _to_decimal(value, field: str) -> Decimal:
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise RequestValidationError(f"{field} must be a number", field=field)
    if not result.is_finite():
        raise RequestValidationError(f"{field} must be a number", field=field)
    return result


def _check_scale(
    value: Decimal, quantum: Decimal, limit: Decimal, field: str, label: str,
) -> Decimal:
    if value >= limit:
        raise RequestValidationError(
            f"{label} must be less than {limit:,.0f}", field=field,
        )
    places = -quantum.as_tuple().exponent
    if value != value.quantize(quantum):
        raise RequestValidationError(
            f"{label} allows at most {places} decimal places", field=field,
        )
    return value.quantize(quantum)


def _normalize_items(items: Sequence[LineItemSpec]) -> list[LineItemSpec]:
    if not items:
        raise RequestValidationError(
            "A purchase request needs at least one line item", field="items",
        )

    normalized = []
    for number, item in enumerate(items, start=1):
        quantity_field = f"items[{number}].quantity"
        price_field = f"items[{number}].unit_price"
        quantity = _to_decimal(item.quantity, quantity_field)
        unit_price = _to_decimal(item.unit_price, price_field)
        if quantity <= 0:
            raise RequestValidationError(
                "Quantity must be greater than zero", field=quantity_field,
            )
        if unit_price < 0:
            raise RequestValidationError(
                "Unit price must not be negative", field=price_field,
            )
        # finer than the column scale is rejected, never rounded
        quantity = _check_scale(
            quantity, QUANTITY_QUANTUM, MAX_QUANTITY, quantity_field, "Quantity",
        )
        unit_price = _check_scale(
            unit_price, AMOUNT_QUANTUM, MAX_AMOUNT, price_field, "Unit price",
        )
        normalized.append(
            LineItemSpec(
                description=_require_text(
                    item.description, f"items[{number}].description",
                ),
                quantity=quantity,
                unit_price=unit_price,
                budget_code=item.budget_code,
                supplier_ref=item.supplier_ref,
            )
        )

    if sum((item.subtotal for item in normalized), Decimal("0")) >= MAX_AMOUNT:
        raise RequestValidationError(
            f"Request total must be less than {MAX_AMOUNT:,.0f}", field="items",
        )
    return normalized


class WorkflowOrchestrator:
    """
    Runs the purchase request approval workflow.

    Contract:
        Stateless between calls: every operation opens its own unit of work
        and re-reads the request, so one instance may serve many threads.

    Args:
        thresholds: Amount boundaries of the approval tiers.
        session_factory: Source of sessions; defaults to the engine's.
        clock: Source of every timestamp written.
    """

    def __init__(
        self,
        thresholds: ApprovalThresholds,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._thresholds = thresholds
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or SystemClock()
        register_immutability_listeners()

    @property
    def thresholds(self) -> ApprovalThresholds:
        return self._thresholds

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_request(
        self,
        *,
        title: str,
        justification: str,
        area_id: int,
        items: Sequence[LineItemSpec],
        requester_id: int,
        project_ref: str | None = None,
        urgent: bool = False,
        required_by: date | None = None,
    ) -> PurchaseRequestRecord:
        """Create a draft request with its line items."""
        title = _require_text(title, "title")
        justification = _require_text(justification, "justification")
        specs = _normalize_items(items)

        with LogContext.bind(actor_id=requester_id, operation="create_request"):
            with UnitOfWork(self._session_factory, "create_request") as uow:
                uow.requests.get_user(requester_id)
                uow.requests.get_area(area_id)
                model = uow.requests.create(
                    title=title,
                    justification=justification,
                    area_id=area_id,
                    requester_id=requester_id,
                    items=specs,
                    created_at=self._clock.now(),
                    project_ref=project_ref,
                    urgent=bool(urgent),
                    required_by=required_by,
                )
                record = model.to_dto()

            logger.info(
                "request_created",
                extra={
                    "created_request_id": record.id,
                    "total_amount": record.total_amount,
                    "item_count": len(record.items),
                    "urgent": record.urgent,
                },
            )
        return record

    def submit(self, request_id: int, acting_user_id: int) -> PurchaseRequestRecord:
        """Send a draft into the approval chain."""
        with LogContext.bind(
            request_id=request_id, actor_id=acting_user_id, operation="submit",
        ):
            with UnitOfWork(self._session_factory, "submit") as uow:
                model = uow.requests.load(request_id)
                if model.requester_id != acting_user_id:
                    raise NotRequesterError(request_id, acting_user_id)
                if model.stage is not Stage.DRAFT:
                    raise NotDraftError(request_id, model.current_stage)
                uow.requests.get_user(acting_user_id)

                first_stage = compute_path(model.total_amount, self._thresholds)[0]
                now = self._clock.now()
                uow.requests.transition_stage(model, first_stage, acting_user_id, now)
                uow.ledger.append(
                    request_id=request_id,
                    stage_ordinal=SUBMISSION_ORDINAL,
                    action=LedgerAction.SUBMIT,
                    actor_id=acting_user_id,
                    resulting_stage=first_stage,
                    created_at=now,
                )
                record = model.to_dto()

            logger.info(
                "request_submitted",
                extra={"new_stage": first_stage.value},
            )
        return record

    def act(
        self,
        request_id: int,
        action: LedgerAction | str,
        comment: str | None,
        acting_user_id: int,
        acting_role: Role | str,
    ) -> TransitionOutcome:
        """Approve or reject a request at its current pending stage."""
        try:
            action = LedgerAction(action)
        except ValueError:
            action = None
        if action not in REVIEW_ACTIONS:
            raise RequestValidationError(
                "Action must be 'approve' or 'reject'", field="action",
            )
        if comment is not None:
            comment = str(comment).strip() or None
        if action is LedgerAction.REJECT and comment is None:
            raise MissingCommentError()

        role_value = acting_role.value if isinstance(acting_role, Role) else str(acting_role)

        with LogContext.bind(
            request_id=request_id, actor_id=acting_user_id, operation="act",
        ):
            with UnitOfWork(self._session_factory, "act") as uow:
                model = uow.requests.load(request_id)
                current = model.stage
                if current not in PENDING_STAGES:
                    raise StageNotActionableError(request_id, current.value)
                if not can_act(role_value, current):
                    required = tuple(
                        role.value
                        for role in Role
                        if role in authorized_roles(current)
                    )
                    raise StageAuthorizationError(role_value, current.value, required)
                uow.requests.get_user(acting_user_id)

                if action is LedgerAction.REJECT:
                    resulting = Stage.REJECTED
                else:
                    resulting = next_stage(current, model.total_amount, self._thresholds)
                    if resulting is None:
                        raise NoNextStageError(request_id, current.value)

                now = self._clock.now()
                uow.requests.transition_stage(model, resulting, acting_user_id, now)
                uow.ledger.append(
                    request_id=request_id,
                    stage_ordinal=stage_ordinal(current),
                    action=action,
                    actor_id=acting_user_id,
                    resulting_stage=resulting,
                    created_at=now,
                    comment=comment,
                )

            logger.info(
                "transition_applied",
                extra={
                    "action": action.value,
                    "previous_stage": current.value,
                    "new_stage": resulting.value,
                    "acting_role": role_value,
                },
            )
        return TransitionOutcome(
            request_id=request_id,
            previous_stage=current,
            new_stage=resulting,
        )

    def withdraw(self, request_id: int, acting_user_id: int) -> None:
        """Retire an unsubmitted draft (soft deletion)."""
        with LogContext.bind(
            request_id=request_id, actor_id=acting_user_id, operation="withdraw",
        ):
            with UnitOfWork(self._session_factory, "withdraw") as uow:
                model = uow.requests.load(request_id)
                if model.requester_id != acting_user_id:
                    raise NotRequesterError(request_id, acting_user_id)
                if model.stage is not Stage.DRAFT:
                    raise NotDraftError(
                        request_id, model.current_stage, operation="withdrawn",
                    )
                uow.requests.soft_delete(model, acting_user_id, self._clock.now())

            logger.info("request_withdrawn")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def inspect(self, request_id: int) -> RequestDetail:
        """Request with its full ordered history and approval path."""
        with LogContext.bind(request_id=request_id, operation="inspect"):
            with UnitOfWork(self._session_factory, "inspect") as uow:
                record = uow.requests.load(request_id).to_dto()
                computed = record.computed_total
                if computed != record.total_amount:
                    logger.error(
                        "total_integrity_violation",
                        extra={
                            "stored_total": record.total_amount,
                            "computed_total": computed,
                        },
                    )
                    raise TotalIntegrityError(
                        request_id, record.total_amount, computed,
                    )
                events = tuple(uow.ledger.history(request_id))

        return RequestDetail(
            request=record,
            events=events,
            path=compute_path(record.total_amount, self._thresholds),
        )

    def list_pending(self, role: Role | str) -> list[RequestSummary]:
        """Requests waiting at the stages ``role`` may act on."""
        stages = actionable_stages(role)
        if not stages:
            return []
        with UnitOfWork(self._session_factory, "list_pending") as uow:
            return uow.pending.list_at_stages(stages)
