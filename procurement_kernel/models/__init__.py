"""ORM models for the procurement kernel."""

from procurement_kernel.models.approval_event import ApprovalEvent
from procurement_kernel.models.directory import Area, User
from procurement_kernel.models.purchase_request import LineItem, PurchaseRequest

__all__ = [
    "ApprovalEvent",
    "Area",
    "LineItem",
    "PurchaseRequest",
    "User",
]
