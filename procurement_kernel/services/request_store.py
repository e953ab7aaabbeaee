"""
procurement_kernel.services.request_store -- Persistence of purchase requests.

Responsibility:
    Create requests with their line items, load them for a unit of work,
    move them between stages and retire them.  Also resolves the users and
    areas a request references.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - A request and its items are inserted in the same flush; the stored
      total is derived from the items, never supplied by the caller.
    - Soft-deleted requests are invisible: every load filters on
      ``deleted_at IS NULL``.
    - Every load re-reads the row (``populate_existing``); no request state
      survives between units of work.
    - Stage writes are version-checked; a stale write raises
      ConcurrentTransitionError.

Failure modes:
    - RequestNotFoundError, UserNotFoundError, AreaNotFoundError.
    - ConcurrentTransitionError when another transaction moved the request
      after it was loaded.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from procurement_kernel.domain.dtos import LineItemSpec, sum_subtotals
from procurement_kernel.domain.stages import INITIAL_STAGE, Stage
from procurement_kernel.exceptions import (
    AreaNotFoundError,
    ConcurrentTransitionError,
    RequestNotFoundError,
    UserNotFoundError,
)
from procurement_kernel.logging_config import get_logger
from procurement_kernel.models.directory import Area, User
from procurement_kernel.models.purchase_request import LineItem, PurchaseRequest
from procurement_kernel.services.base import BaseService

logger = get_logger("services.request_store")


class RequestStore(BaseService[PurchaseRequest]):
    """Purchase request persistence within one unit of work."""

    def create(
        self,
        *,
        title: str,
        justification: str,
        area_id: int,
        requester_id: int,
        items: Sequence[LineItemSpec],
        created_at: datetime,
        project_ref: str | None = None,
        urgent: bool = False,
        required_by: date | None = None,
    ) -> PurchaseRequest:
        """Insert a draft request and its line items.

        Line numbers follow the order of ``items``, starting at 1.
        """
        model = PurchaseRequest(
            title=title,
            justification=justification,
            project_ref=project_ref,
            area_id=area_id,
            requester_id=requester_id,
            total_amount=sum_subtotals(items),
            urgent=urgent,
            required_by=required_by,
            current_stage=INITIAL_STAGE.value,
            created_at=created_at,
            updated_at=created_at,
        )
        model.items = [
            LineItem(
                line_number=number,
                description=spec.description,
                quantity=spec.quantity,
                unit_price=spec.unit_price,
                budget_code=spec.budget_code,
                supplier_ref=spec.supplier_ref,
            )
            for number, spec in enumerate(items, start=1)
        ]
        self.session.add(model)
        self.session.flush()
        return model

    def load(self, request_id: int) -> PurchaseRequest:
        """Fetch a live request, refreshing any identity-map copy."""
        model = self.session.execute(
            select(PurchaseRequest)
            .where(
                PurchaseRequest.id == request_id,
                PurchaseRequest.deleted_at.is_(None),
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if model is None:
            raise RequestNotFoundError(request_id)
        return model

    def transition_stage(
        self,
        model: PurchaseRequest,
        new_stage: Stage,
        actor_id: int,
        at: datetime,
    ) -> None:
        """Write ``new_stage`` if the row is still at the version we read."""
        request_id = model.id
        read_stage = model.current_stage

        model.current_stage = new_stage.value
        model.updated_at = at
        model.updated_by_id = actor_id
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "concurrent_transition_detected",
                extra={"request_id": request_id, "read_stage": read_stage},
            )
            raise ConcurrentTransitionError(request_id, read_stage) from exc

    def soft_delete(self, model: PurchaseRequest, actor_id: int, at: datetime) -> None:
        """Retire a request; it behaves as missing from then on."""
        if model.is_deleted:
            raise RequestNotFoundError(model.id)
        request_id = model.id
        read_stage = model.current_stage

        model.deleted_at = at
        model.updated_at = at
        model.updated_by_id = actor_id
        try:
            self.session.flush()
        except StaleDataError as exc:
            raise ConcurrentTransitionError(request_id, read_stage) from exc

    def get_user(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None or not user.is_active:
            raise UserNotFoundError(user_id)
        return user

    def get_area(self, area_id: int) -> Area:
        area = self.session.get(Area, area_id)
        if area is None:
            raise AreaNotFoundError(area_id)
        return area
