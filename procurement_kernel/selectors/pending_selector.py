"""
Module: procurement_kernel.selectors.pending_selector
Responsibility: The reviewer's queue: live requests waiting at the stages a
    role may act on.
Architecture position: Kernel > Selectors.

Ordering: urgent requests first, then newest first; id breaks ties so the
order is total.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select

from procurement_kernel.domain.dtos import RequestSummary
from procurement_kernel.domain.stages import Stage
from procurement_kernel.models.directory import Area, User
from procurement_kernel.models.purchase_request import PurchaseRequest
from procurement_kernel.selectors.base import BaseSelector


class PendingRequestSelector(BaseSelector[PurchaseRequest]):
    """Read-only access to requests awaiting review."""

    def list_at_stages(self, stages: Iterable[Stage]) -> list[RequestSummary]:
        stage_values = [stage.value for stage in stages]
        if not stage_values:
            return []

        stmt = (
            select(PurchaseRequest, Area.name, User.full_name)
            .join(Area, Area.id == PurchaseRequest.area_id)
            .join(User, User.id == PurchaseRequest.requester_id)
            .where(
                PurchaseRequest.current_stage.in_(stage_values),
                PurchaseRequest.deleted_at.is_(None),
            )
            .order_by(
                PurchaseRequest.urgent.desc(),
                PurchaseRequest.created_at.desc(),
                PurchaseRequest.id.desc(),
            )
        )
        return [
            RequestSummary(
                id=request.id,
                title=request.title,
                area_id=request.area_id,
                requester_id=request.requester_id,
                total_amount=request.total_amount,
                urgent=request.urgent,
                current_stage=Stage(request.current_stage),
                created_at=request.created_at,
                area_name=area_name,
                requester_name=requester_name,
                required_by=request.required_by,
            )
            for request, area_name, requester_name in self.session.execute(stmt)
        ]
