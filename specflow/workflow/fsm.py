"""Ticket status flow using transitions library.

Names the usual moves a ticket makes across the board:

    draft --submit--> in_review --approve--> approved --start--> in_development
          <-withdraw-           <-send_back-                      --complete--> completed
                                                 in_development <--reopen--

The flow is advisory. The repository's move() still sets any status directly
(kanban drag and drop); advance() only accepts the triggers listed here.

Usage:
    from specflow.workflow.fsm import StatusFlow

    flow = StatusFlow("draft")
    flow.submit()
    flow.state  # "in_review"
"""

import logging
from typing import Callable

from transitions import Machine

from specflow.lib.constants import TICKET_STATUSES

logger = logging.getLogger(__name__)


STATES = list(TICKET_STATUSES)

TRANSITIONS = [
    # Spec review
    {"trigger": "submit", "source": "draft", "dest": "in_review"},
    {"trigger": "withdraw", "source": "in_review", "dest": "draft"},

    # Approval
    {"trigger": "approve", "source": "in_review", "dest": "approved"},
    {"trigger": "send_back", "source": "approved", "dest": "in_review"},

    # Execution
    {"trigger": "start", "source": "approved", "dest": "in_development"},
    {"trigger": "complete", "source": "in_development", "dest": "completed"},
    {"trigger": "reopen", "source": "completed", "dest": "in_development"},
]

TRIGGERS = sorted({t["trigger"] for t in TRANSITIONS})


def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in TRANSITIONS:
        key = (t["source"], t["dest"])
        if key not in lookup:
            lookup[key] = t["trigger"]
    return lookup


TRIGGER_FOR = _build_trigger_lookup()


class StatusFlow:
    """State machine over a single ticket's status.

    Holds no ticket data; the caller reads `state` after firing a trigger
    and writes it back to the ticket.
    """

    def __init__(
        self,
        status: str,
        ticket_label: str = "",
        on_transition: Callable[[str, str, str], None] | None = None,
    ):
        """Initialize the flow at a status.

        Args:
            status: Current ticket status
            ticket_label: Name used in log lines (e.g. "SF-007")
            on_transition: Optional callback(from_state, to_state, trigger)
        """
        self.ticket_label = ticket_label
        self.on_transition = on_transition

        initial = status
        if initial not in STATES:
            logger.warning(f"[STATUS] {ticket_label}: Unknown status '{initial}', defaulting to 'draft'")
            initial = "draft"

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=initial,
            auto_transitions=False,
            send_event=True,
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        """Callback after any transition."""
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.info(f"[STATUS] {self.ticket_label}: {from_state} -> {to_state} ({trigger})")

        if self.on_transition:
            self.on_transition(from_state, to_state, trigger)

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be fired from the current status."""
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        return self.machine.get_triggers(self.state)


def available_triggers(status: str) -> list[str]:
    """Triggers that can be fired from a status, in definition order."""
    return [t["trigger"] for t in TRANSITIONS if t["source"] == status]


def next_statuses(status: str) -> list[str]:
    """Statuses reachable in one named move from a status."""
    return [t["dest"] for t in TRANSITIONS if t["source"] == status]


def apply_trigger(status: str, trigger: str, ticket_label: str = "") -> str | None:
    """Fire a trigger from a status and return the resulting status.

    Returns None if the trigger is unknown or not available from `status`.
    """
    from transitions import MachineError

    flow = StatusFlow(status, ticket_label)
    if not flow.can(trigger):
        logger.debug(f"[STATUS] {ticket_label}: '{trigger}' not available from {flow.state}")
        return None

    try:
        getattr(flow, trigger)()
    except MachineError as e:
        logger.debug(f"[STATUS] {ticket_label}: {e}")
        return None
    return flow.state
