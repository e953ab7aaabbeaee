"""
procurement_kernel.services.unit_of_work -- One transaction per operation.

Responsibility:
    Open a session from the pool, hand the request store, the audit ledger
    and the pending selector to the orchestrator, then commit on success or
    roll back on any exception.  The session is returned to the pool on
    every exit path.

Architecture position:
    Kernel > Services.  Used only by the workflow orchestrator.

Invariants enforced:
    - Commit happens only when the ``with`` block completes normally.
    - Any exception rolls the whole transaction back: no stage change without
      its ledger event, and no ledger event without its stage change.
    - Domain errors propagate unchanged.  SQLAlchemy errors are logged with
      traceback and re-raised as StorageError, chained to the original.

Usage:
    with UnitOfWork(session_factory, operation="submit") as uow:
        model = uow.requests.load(request_id)
        ...
"""

from __future__ import annotations

from types import TracebackType

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from procurement_kernel.exceptions import StorageError
from procurement_kernel.logging_config import get_logger
from procurement_kernel.selectors.pending_selector import PendingRequestSelector
from procurement_kernel.services.audit_ledger import AuditLedger
from procurement_kernel.services.request_store import RequestStore

logger = get_logger("services.unit_of_work")


class UnitOfWork:
    """Transactional scope for a single workflow operation."""

    session: Session
    requests: RequestStore
    ledger: AuditLedger
    pending: PendingRequestSelector

    def __init__(self, session_factory: sessionmaker[Session], operation: str):
        self._session_factory = session_factory
        self.operation = operation

    def __enter__(self) -> UnitOfWork:
        self.session = self._session_factory()
        self.requests = RequestStore(self.session)
        self.ledger = AuditLedger(self.session)
        self.pending = PendingRequestSelector(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if exc is None:
                self._commit()
            else:
                self._rollback(exc)
        finally:
            self.session.close()

    def _commit(self) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as commit_exc:
            self.session.rollback()
            self._storage_failure(commit_exc)

    def _rollback(self, exc: BaseException) -> None:
        self.session.rollback()
        logger.warning(
            "transaction_rolled_back",
            extra={
                "unit_of_work": self.operation,
                "error_type": type(exc).__name__,
            },
        )
        if isinstance(exc, SQLAlchemyError):
            self._storage_failure(exc)

    def _storage_failure(self, exc: SQLAlchemyError) -> None:
        logger.error(
            "storage_failure",
            extra={"unit_of_work": self.operation},
            exc_info=exc,
        )
        raise StorageError(self.operation) from exc
