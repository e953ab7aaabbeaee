"""
Typed Exception Hierarchy for the Procurement Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ProcurementKernelError:

    ProcurementKernelError (base)
    |
    +-- NotFoundError
    |   +-- RequestNotFoundError
    |   +-- UserNotFoundError
    |   +-- AreaNotFoundError
    |
    +-- WorkflowValidationError
    |   +-- RequestValidationError
    |   +-- NotDraftError
    |   +-- StageNotActionableError
    |   |   +-- ConcurrentTransitionError
    |   +-- MissingCommentError
    |   +-- NoNextStageError
    |   +-- TotalIntegrityError
    |
    +-- ForbiddenError
    |   +-- NotRequesterError
    |   +-- StageAuthorizationError
    |
    +-- ImmutabilityViolationError
    |
    +-- StorageError
    |
    +-- ConfigurationError
        +-- InvalidThresholdsError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                    | HTTP | When Raised
----------------|-------------------------|------|------------------------------------
Not found       | NOT_FOUND               | 404  | Request absent or soft-deleted,
                |                         |      | unknown user or area
----------------|-------------------------|------|------------------------------------
Validation      | VALIDATION_ERROR        | 400  | Illegal action for current stage,
                |                         |      | missing rejection comment, bad
                |                         |      | amounts, no successor stage
----------------|-------------------------|------|------------------------------------
Forbidden       | FORBIDDEN               | 403  | Non-requester submits, role not
                |                         |      | authorized for the stage
----------------|-------------------------|------|------------------------------------
Immutability    | IMMUTABILITY_VIOLATION  | 409  | UPDATE/DELETE of a ledger event or
                |                         |      | persisted line item
----------------|-------------------------|------|------------------------------------
Storage         | INTERNAL_ERROR          | 500  | Database failure; transaction was
                |                         |      | rolled back, safe to retry
----------------|-------------------------|------|------------------------------------
Configuration   | CONFIGURATION_ERROR     | 500  | Invalid thresholds or settings

Losing a concurrent transition race surfaces as VALIDATION_ERROR with the
same "cannot act" message as any other non-actionable stage; the caller may
re-inspect and retry.

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        outcome = orchestrator.act(request_id, "approve", None, user_id, role)
    except StageAuthorizationError as e:
        respond(e.to_envelope(), status=e.http_status)   # e.required_roles
    except WorkflowValidationError as e:
        respond(e.to_envelope(), status=e.http_status)
    except StorageError:
        retry_later()

===============================================================================
"""

from typing import Any


class ProcurementKernelError(Exception):
    """
    Base exception for all procurement kernel errors.

    Every subclass has a class-level ``code`` (machine-readable) and
    ``http_status`` used when the error is rendered into an envelope.
    """

    code: str = "PROCUREMENT_KERNEL_ERROR"
    http_status: int = 500

    def to_envelope(self) -> dict[str, Any]:
        """Render the structured error envelope returned to callers."""
        return {"status": "error", "code": self.code, "message": str(self)}


# Not found


class NotFoundError(ProcurementKernelError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"
    http_status: int = 404


class RequestNotFoundError(NotFoundError):
    """Purchase request does not exist or has been soft-deleted."""

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(f"Purchase request not found: {request_id}")


class UserNotFoundError(NotFoundError):
    """Referenced user does not exist or is inactive."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class AreaNotFoundError(NotFoundError):
    """Referenced organizational area does not exist."""

    def __init__(self, area_id: int):
        self.area_id = area_id
        super().__init__(f"Area not found: {area_id}")


# Validation


class WorkflowValidationError(ProcurementKernelError):
    """Base exception for rejected operations. Never retried as-is."""

    code: str = "VALIDATION_ERROR"
    http_status: int = 400


class RequestValidationError(WorkflowValidationError):
    """Operation input is malformed (empty title, bad quantity, ...)."""

    def __init__(self, reason: str, field: str | None = None):
        self.reason = reason
        self.field = field
        super().__init__(reason)


class NotDraftError(WorkflowValidationError):
    """Only draft requests may be submitted or withdrawn."""

    def __init__(self, request_id: int, current_stage: str, operation: str = "submitted"):
        self.request_id = request_id
        self.current_stage = current_stage
        super().__init__(f"Only draft requests may be {operation}")


class StageNotActionableError(WorkflowValidationError):
    """The request's stage accepts no approval action."""

    def __init__(self, request_id: int, current_stage: str):
        self.request_id = request_id
        self.current_stage = current_stage
        super().__init__(
            f"Cannot act on a request in its current stage ({current_stage})"
        )


class ConcurrentTransitionError(StageNotActionableError):
    """Another transaction advanced the stage between read and write."""

    def __init__(self, request_id: int, current_stage: str):
        super().__init__(request_id, current_stage)
        self.conflict = True


class MissingCommentError(WorkflowValidationError):
    """Rejections must carry a comment."""

    def __init__(self, action: str = "reject"):
        self.action = action
        super().__init__("A comment is required when rejecting a request")


class NoNextStageError(WorkflowValidationError):
    """
    An approval found no successor stage in the computed path.

    Unreachable while the stage invariants hold; raised instead of silently
    leaving the request where it is.
    """

    def __init__(self, request_id: int, current_stage: str):
        self.request_id = request_id
        self.current_stage = current_stage
        super().__init__(
            f"No next stage exists after {current_stage} for request {request_id}"
        )


class TotalIntegrityError(WorkflowValidationError):
    """Stored total no longer matches the sum of the line item subtotals."""

    def __init__(self, request_id: int, stored_total: Any, computed_total: Any):
        self.request_id = request_id
        self.stored_total = str(stored_total)
        self.computed_total = str(computed_total)
        super().__init__(
            f"Total mismatch on request {request_id}: "
            f"stored={stored_total}, computed={computed_total}"
        )


# Forbidden


class ForbiddenError(ProcurementKernelError):
    """Base exception for authorization failures."""

    code: str = "FORBIDDEN"
    http_status: int = 403


class NotRequesterError(ForbiddenError):
    """Only the original requester may perform this operation."""

    def __init__(self, request_id: int, actor_id: int):
        self.request_id = request_id
        self.actor_id = actor_id
        super().__init__("Only the requester may submit or withdraw this request")


class StageAuthorizationError(ForbiddenError):
    """The acting role is not in the stage's authorized set."""

    def __init__(self, role: str, current_stage: str, required_roles: tuple[str, ...]):
        self.role = role
        self.current_stage = current_stage
        self.required_roles = required_roles
        super().__init__(f"Required role: {' or '.join(required_roles)}")


# Immutability


class ImmutabilityViolationError(ProcurementKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"
    http_status: int = 409

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Infrastructure


class StorageError(ProcurementKernelError):
    """
    Database failure inside a unit of work.

    The transaction has been rolled back, so no partial effect persists and
    the caller may retry.
    """

    code: str = "INTERNAL_ERROR"
    http_status: int = 500

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Internal error during {operation}")


# Configuration


class ConfigurationError(ProcurementKernelError):
    """Base exception for invalid workflow configuration."""

    code: str = "CONFIGURATION_ERROR"
    http_status: int = 500


class InvalidThresholdsError(ConfigurationError):
    """Thresholds must satisfy 0 <= area <= executive."""

    def __init__(self, area: Any, executive: Any):
        self.area = str(area)
        self.executive = str(executive)
        super().__init__(
            f"Invalid approval thresholds: area={area}, executive={executive} "
            "(require 0 <= area <= executive)"
        )
