"""
Concurrent approval of the same request.

Two reviewers load the request in the same stage and both try to approve
it.  Exactly one transition may win; the other must fail Validation and
leave no ledger trace.

A barrier inside the clock holds both threads after their reads and before
their writes, so the two transactions always overlap.

Run with: pytest tests/concurrency -v
Skip with: pytest -m "not slow_locks"
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from procurement_kernel.domain.clock import DeterministicClock
from procurement_kernel.domain.dtos import LineItemSpec
from procurement_kernel.domain.stages import Role, Stage
from procurement_kernel.exceptions import ConcurrentTransitionError, WorkflowValidationError
from procurement_kernel.services.workflow_orchestrator import WorkflowOrchestrator

pytestmark = pytest.mark.slow_locks


class BarrierClock(DeterministicClock):
    """Deterministic clock that, once armed, makes callers meet at a barrier."""

    def __init__(self, parties: int):
        super().__init__()
        self._barrier = Barrier(parties)
        self.armed = False

    def now(self):
        if self.armed:
            self._barrier.wait(timeout=15)
        return super().now()


@pytest.fixture
def racing(session_factory, thresholds, directory):
    """Orchestrator with a two-party barrier clock and a submitted request."""
    clock = BarrierClock(parties=2)
    orchestrator = WorkflowOrchestrator(thresholds, session_factory=session_factory, clock=clock)

    draft = orchestrator.create_request(
        title="Forklift service",
        justification="Annual maintenance",
        area_id=directory.area_id,
        items=[LineItemSpec("Service", Decimal("1"), Decimal("10000000"))],
        requester_id=directory.requester_id,
    )
    orchestrator.submit(draft.id, directory.requester_id)
    clock.armed = True
    return orchestrator, clock, draft.id


class TestDoubleApproval:

    def test_exactly_one_transition_wins(self, racing, directory):
        orchestrator, clock, request_id = racing

        def approve(user_id, role):
            try:
                return orchestrator.act(request_id, "approve", None, user_id, role)
            except WorkflowValidationError as exc:
                return exc

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [
                pool.submit(approve, directory.area_lead_id, Role.AREA_LEAD),
                pool.submit(approve, directory.executive_id, Role.EXECUTIVE),
            ]
            results = [f.result(timeout=60) for f in futures]

        outcomes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]

        assert len(outcomes) == 1
        assert outcomes[0].previous_stage is Stage.PENDING_AREA_LEAD
        assert outcomes[0].new_stage is Stage.PENDING_EXECUTIVE

        assert len(failures) == 1
        assert isinstance(failures[0], ConcurrentTransitionError)
        assert failures[0].code == "VALIDATION_ERROR"
        assert "Cannot act on a request in its current stage" in str(failures[0])

        clock.armed = False
        detail = orchestrator.inspect(request_id)
        assert detail.request.current_stage is Stage.PENDING_EXECUTIVE
        assert len(detail.events) == 2

    def test_losing_reviewer_can_retry_after_inspecting(self, racing, directory):
        orchestrator, clock, request_id = racing

        def approve(user_id, role):
            try:
                return orchestrator.act(request_id, "approve", None, user_id, role)
            except WorkflowValidationError as exc:
                return exc

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [
                pool.submit(approve, directory.executive_id, Role.EXECUTIVE),
                pool.submit(approve, directory.admin_id, Role.ADMIN),
            ]
            [f.result(timeout=60) for f in futures]

        clock.armed = False
        assert orchestrator.inspect(request_id).request.current_stage is Stage.PENDING_EXECUTIVE

        outcome = orchestrator.act(request_id, "approve", None, directory.admin_id, Role.ADMIN)
        assert outcome.new_stage is Stage.APPROVED
        assert len(orchestrator.inspect(request_id).events) == 3
