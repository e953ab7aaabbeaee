"""
ORM-Level Immutability Enforcement (Layer 1 of 2).

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity          | When Immutable           | Why
----------------|--------------------------|-----------------------------------
ApprovalEvent   | ALWAYS (from creation)   | The ledger is the audit trail
LineItem        | After INSERT             | Priced items back the stored total

SQLAlchemy fires ``before_update`` / ``before_delete`` before the SQL is sent,
so a violation aborts the flush and the surrounding unit of work rolls back.
Layer 2 (db/triggers.py) rejects the same writes inside the database for
anything that bypasses the ORM.

LineItem deletion is not blocked here: items disappear only through the
``ON DELETE CASCADE`` of their request, which the database performs without
loading them.

===============================================================================
USAGE
===============================================================================

    from procurement_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()   # idempotent

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from procurement_kernel.exceptions import ImmutabilityViolationError
from procurement_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_approval_event_update(mapper, connection, target):
    """Ledger events are never modified."""
    _blocked("ApprovalEvent", target, "UPDATE", "Approval events are append-only")


def _check_approval_event_delete(mapper, connection, target):
    """Ledger events are never deleted."""
    _blocked("ApprovalEvent", target, "DELETE", "Approval events cannot be deleted")


def _check_line_item_update(mapper, connection, target):
    """Line items are frozen once persisted."""
    _blocked("LineItem", target, "UPDATE", "Line items are immutable after creation")


def _listeners():
    from procurement_kernel.models.approval_event import ApprovalEvent
    from procurement_kernel.models.purchase_request import LineItem

    return [
        (ApprovalEvent, "before_update", _check_approval_event_update),
        (ApprovalEvent, "before_delete", _check_approval_event_delete),
        (LineItem, "before_update", _check_line_item_update),
    ]


def register_immutability_listeners() -> None:
    """Register all immutability listeners. Safe to call more than once."""
    for target, identifier, fn in _listeners():
        if not event.contains(target, identifier, fn):
            event.listen(target, identifier, fn)


def unregister_immutability_listeners() -> None:
    """Remove all immutability listeners. FOR TESTING ONLY."""
    for target, identifier, fn in _listeners():
        if event.contains(target, identifier, fn):
            event.remove(target, identifier, fn)
