"""
BaseService -- abstract base for the kernel's write-side services.

Responsibility:
    Common constructor and session-handling contract for the request store
    and the audit ledger.  Services receive the SQLAlchemy ``Session`` of
    the current unit of work and persist with ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or roll back themselves.  The
      UnitOfWork owns commit/rollback, so a stage update and its ledger
      event land together or not at all.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from procurement_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Write-side service bound to one unit of work's session."""

    def __init__(self, session: Session):
        self.session = session
