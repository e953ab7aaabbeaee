"""
Module: procurement_kernel.models.purchase_request
Responsibility: ORM persistence for purchase requests and their line items.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ value types.

Invariants enforced:
    - current_stage is one of the Stage values (CHECK).
    - total_amount >= 0 (CHECK); equals the sum of the item subtotals, set
      once at creation and re-verified on inspection.
    - quantity > 0 and unit_price >= 0 (CHECK).
    - LineItem.subtotal is derived (hybrid attribute), never stored.
    - Line items are deleted only by cascade from their request.
    - version is bumped on every UPDATE of a request; a write against a stale
      version matches no row and fails the flush.

Failure modes:
    - IntegrityError on constraint violations.
    - StaleDataError when a concurrent transaction already moved the request.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from procurement_kernel.db.base import Base, TrackedBase
from procurement_kernel.domain.dtos import LineItemRecord, PurchaseRequestRecord
from procurement_kernel.domain.stages import Stage

STAGE_VALUES_SQL = ", ".join(f"'{stage.value}'" for stage in Stage)


class PurchaseRequest(TrackedBase):
    """
    An authorization-pending purchase.

    Contract:
        Created in ``draft`` together with its items.  Afterwards only the
        workflow orchestrator changes ``current_stage``; every change stamps
        ``updated_by_id``.  Never physically deleted: ``deleted_at`` retires it.
    """

    __tablename__ = "purchase_requests"

    __table_args__ = (
        CheckConstraint(
            f"current_stage IN ({STAGE_VALUES_SQL})",
            name="ck_purchase_requests_valid_stage",
        ),
        CheckConstraint(
            "total_amount >= 0",
            name="ck_purchase_requests_total_non_negative",
        ),
        # Pending queue: stage filter, urgent first, newest first
        Index(
            "ix_purchase_requests_queue",
            "current_stage", "urgent", "created_at",
        ),
        Index("ix_purchase_requests_requester", "requester_id"),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    justification: Mapped[str] = mapped_column(Text, nullable=False)
    project_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    area_id: Mapped[int] = mapped_column(ForeignKey("areas.id"), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0"),
    )
    urgent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    required_by: Mapped[date | None] = mapped_column(Date, nullable=True)
    requester_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    current_stage: Mapped[str] = mapped_column(
        String(30), nullable=False, default=Stage.DRAFT.value,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    items: Mapped[list["LineItem"]] = relationship(
        "LineItem",
        back_populates="request",
        order_by="LineItem.line_number",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<PurchaseRequest {self.id} stage={self.current_stage}>"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def stage(self) -> Stage:
        return Stage(self.current_stage)

    def to_dto(self) -> PurchaseRequestRecord:
        """Convert ORM model to frozen domain DTO."""
        return PurchaseRequestRecord(
            id=self.id,
            title=self.title,
            justification=self.justification,
            project_ref=self.project_ref,
            area_id=self.area_id,
            requester_id=self.requester_id,
            total_amount=self.total_amount,
            urgent=self.urgent,
            required_by=self.required_by,
            current_stage=self.stage,
            created_at=self.created_at,
            updated_at=self.updated_at,
            updated_by_id=self.updated_by_id,
            items=tuple(item.to_dto() for item in self.items),
        )


class LineItem(Base):
    """
    One priced component of a purchase request.

    Contract:
        Exclusively owned by its request; written once, together with it.
    """

    __tablename__ = "line_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_line_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_line_items_price_non_negative"),
        UniqueConstraint("request_id", "line_number", name="uq_line_items_number"),
    )

    request_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    budget_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    supplier_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)

    request: Mapped[PurchaseRequest] = relationship(
        PurchaseRequest,
        back_populates="items",
    )

    @hybrid_property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price

    def __repr__(self) -> str:
        return f"<LineItem {self.request_id}#{self.line_number}>"

    def to_dto(self) -> LineItemRecord:
        return LineItemRecord(
            id=self.id,
            line_number=self.line_number,
            description=self.description,
            quantity=self.quantity,
            unit_price=self.unit_price,
            budget_code=self.budget_code,
            supplier_ref=self.supplier_ref,
        )
