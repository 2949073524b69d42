"""Quality gate derivation.

A ticket's quality gate summarises how far its spec has matured. It is a pure
function of the ticket's current fields: status decides first, and content
only matters within a status.

    status          condition                                   gate
    completed       -                                           complete
    in_development  a verify checkpoint is unresolved           verification_pending
    in_development  otherwise                                   in_progress
    approved        has tasks                                   tasks_ready
    approved        no tasks                                    approved
    in_review       has unresolved clarifications               clarifications_needed
    in_review       otherwise                                   ready_for_approval
    draft           scenarios, requirements or spec > 50 chars  spec_complete
    draft           otherwise                                   spec_incomplete

The gate is advisory. It never blocks a mutation.
"""

from enum import Enum

from specflow.lib.constants import SPEC_TEXT_MIN_LENGTH


class QualityGate(Enum):
    """All quality gates, in workflow order."""

    SPEC_INCOMPLETE = "spec_incomplete"
    SPEC_COMPLETE = "spec_complete"
    CLARIFICATIONS_NEEDED = "clarifications_needed"
    READY_FOR_APPROVAL = "ready_for_approval"
    APPROVED = "approved"
    TASKS_READY = "tasks_ready"
    IN_PROGRESS = "in_progress"
    VERIFICATION_PENDING = "verification_pending"
    COMPLETE = "complete"


def parse_gate(value: str | None) -> QualityGate | None:
    """Parse a gate string into QualityGate.

    Returns None if the value is unknown.
    """
    if value is None:
        return None
    for gate in QualityGate:
        if gate.value == value:
            return gate
    return None


def _gate_for(
    status: str,
    has_scenarios: bool,
    has_requirements: bool,
    spec_length: int,
    has_open_clarifications: bool,
    has_tasks: bool,
    verification_pending: bool,
) -> QualityGate:
    if status == "completed":
        return QualityGate.COMPLETE
    if status == "in_development":
        if verification_pending:
            return QualityGate.VERIFICATION_PENDING
        return QualityGate.IN_PROGRESS
    if status == "approved":
        return QualityGate.TASKS_READY if has_tasks else QualityGate.APPROVED
    if status == "in_review":
        if has_open_clarifications:
            return QualityGate.CLARIFICATIONS_NEEDED
        return QualityGate.READY_FOR_APPROVAL

    # Draft, and anything unrecognised, is judged on spec content
    if has_scenarios or has_requirements or spec_length > SPEC_TEXT_MIN_LENGTH:
        return QualityGate.SPEC_COMPLETE
    return QualityGate.SPEC_INCOMPLETE


def derive_gate(ticket) -> QualityGate:
    """Derive the quality gate of a Ticket."""
    return _gate_for(
        status=ticket.status,
        has_scenarios=bool(ticket.user_scenarios),
        has_requirements=bool(ticket.requirements),
        spec_length=len(ticket.spec or ""),
        has_open_clarifications=any(not c.resolved for c in ticket.clarifications),
        has_tasks=bool(ticket.tasks),
        verification_pending=any(t.awaiting_verification for t in ticket.tasks),
    )
