"""
Frozen DTOs crossing the service boundary (``procurement_kernel.domain.dtos``).

ORM instances never leave a unit of work; services convert them to these
records before the session closes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from procurement_kernel.domain.stages import LedgerAction, Role, Stage

# Scales and bounds of the Numeric(18, 2) money and Numeric(18, 4) quantity columns.
AMOUNT_QUANTUM = Decimal("0.01")
QUANTITY_QUANTUM = Decimal("0.0001")
MAX_AMOUNT = Decimal("1E16")
MAX_QUANTITY = Decimal("1E14")


def quantize_amount(value: Decimal) -> Decimal:
    """Round a monetary amount to cents, half up."""
    return Decimal(value).quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP)


def sum_subtotals(items: Iterable) -> Decimal:
    """Request total: the sum of the item subtotals, rounded to cents."""
    return quantize_amount(sum((item.subtotal for item in items), Decimal("0")))


@dataclass(frozen=True)
class LineItemSpec:
    """Caller-supplied line item for a new request."""

    description: str
    quantity: Decimal
    unit_price: Decimal
    budget_code: str | None = None
    supplier_ref: str | None = None

    @property
    def subtotal(self) -> Decimal:
        return Decimal(self.quantity) * Decimal(self.unit_price)


@dataclass(frozen=True)
class LineItemRecord:
    """Persisted line item."""

    id: int
    line_number: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    budget_code: str | None = None
    supplier_ref: str | None = None

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class PurchaseRequestRecord:
    """Snapshot of a purchase request and its line items."""

    id: int
    title: str
    justification: str
    area_id: int
    requester_id: int
    total_amount: Decimal
    current_stage: Stage
    urgent: bool = False
    project_ref: str | None = None
    required_by: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    updated_by_id: int | None = None
    items: tuple[LineItemRecord, ...] = ()

    @property
    def computed_total(self) -> Decimal:
        """Total re-derived from the line items."""
        return sum_subtotals(self.items)


@dataclass(frozen=True)
class ApprovalEventRecord:
    """One ledger entry, with the actor's display attributes joined in."""

    id: int
    request_id: int
    stage_ordinal: int
    action: LedgerAction
    actor_id: int
    resulting_stage: Stage
    created_at: datetime
    comment: str | None = None
    actor_name: str | None = None
    actor_email: str | None = None
    actor_role: Role | None = None


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of an approve/reject action."""

    request_id: int
    previous_stage: Stage
    new_stage: Stage


@dataclass(frozen=True)
class RequestSummary:
    """Row of a reviewer's pending queue."""

    id: int
    title: str
    area_id: int
    requester_id: int
    total_amount: Decimal
    urgent: bool
    current_stage: Stage
    created_at: datetime
    area_name: str | None = None
    requester_name: str | None = None
    required_by: date | None = None


@dataclass(frozen=True)
class RequestDetail:
    """A request joined with its complete ordered ledger history."""

    request: PurchaseRequestRecord
    events: tuple[ApprovalEventRecord, ...]
    path: tuple[Stage, ...]
