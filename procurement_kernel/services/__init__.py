"""Kernel services: persistence, ledger, unit of work and the workflow."""

from procurement_kernel.services.audit_ledger import AuditLedger, LedgerHistory
from procurement_kernel.services.request_store import RequestStore
from procurement_kernel.services.unit_of_work import UnitOfWork
from procurement_kernel.services.workflow_orchestrator import WorkflowOrchestrator

__all__ = [
    "AuditLedger",
    "LedgerHistory",
    "RequestStore",
    "UnitOfWork",
    "WorkflowOrchestrator",
]
