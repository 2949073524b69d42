"""
Ticket repository: owns the ticket collection and every mutation of it.

Mutations follow one path:
  locate ticket -> build updated copy -> replace in collection -> persist

Tickets and their nested lists are replaced, never modified in place, so a
Ticket object handed out earlier keeps showing the state it had then.

Operations addressed to a ticket or nested entity that doesn't exist are
silent no-ops and return None. The UI fires operations optimistically and
stale ids must not crash it.
"""

import json
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from specflow.lib.constants import (
    DUE_SOON_DAYS,
    NEXT_NUMBER_KEY,
    TICKET_REF_PATTERN,
    TICKETS_KEY,
)
from specflow.lib.validate import ValidationError
from specflow.tickets import filters, ids
from specflow.tickets.migrate import MigrationError
from specflow.tickets.models import (
    PROTECTED_FIELDS,
    TICKET_FIELDS,
    Assignee,
    ChatMessage,
    Clarification,
    Comment,
    Label,
    Requirement,
    Subtask,
    SuccessCriterion,
    Task,
    TaskDraft,
    TaskProgress,
    Ticket,
    TicketFilter,
    UserScenario,
)
from specflow.tickets.snapshot import dump_tickets, load_tickets
from specflow.tickets.storage import MemoryStore, SnapshotStore
from specflow.workflow.fsm import apply_trigger

logger = logging.getLogger(__name__)


def _contains(items, item_id: str) -> bool:
    return any(item.id == item_id for item in items)


class TicketRepository:
    """Explicit state container for tickets.

    Lifecycle: construct, load(), mutate (each mutation persists), close().
    """

    def __init__(
        self,
        store: SnapshotStore | None = None,
        clock: Callable[[], datetime] = datetime.now,
        due_soon_days: int = DUE_SOON_DAYS,
    ):
        self.store = store if store is not None else MemoryStore()
        self.clock = clock
        self.due_soon_days = due_soon_days

        self._tickets: list[Ticket] = []
        self._next_number = 1
        self._active_id: Optional[str] = None
        self._filter = TicketFilter()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> "TicketRepository":
        """Load tickets and the number counter from the store.

        A malformed ticket snapshot is logged and the repository starts
        empty; it never raises.
        """
        self._tickets = []
        try:
            blob = self.store.get(TICKETS_KEY)
            if blob:
                self._tickets = load_tickets(blob, self.clock())
        except (OSError, json.JSONDecodeError, MigrationError, ValidationError, ValueError, TypeError, KeyError) as e:
            logger.error(f"[STORE] Failed to load tickets, starting empty: {e}")
            self._tickets = []

        highest = max((t.number for t in self._tickets), default=0)
        self._next_number = max(self._load_next_number(), highest + 1)

        logger.debug(f"[STORE] Loaded {len(self._tickets)} ticket(s), next number {self._next_number}")
        return self

    def _load_next_number(self) -> int:
        try:
            raw = self.store.get(NEXT_NUMBER_KEY)
        except (OSError, ValueError) as e:
            logger.warning(f"[STORE] Cannot read next-number value: {e}")
            return 1
        if not raw:
            return 1
        try:
            return int(raw.strip())
        except ValueError:
            logger.warning(f"[STORE] Ignoring malformed next-number value: {raw!r}")
            return 1

    def close(self) -> None:
        self._persist()
        self.store.close()

    def _persist(self) -> None:
        """Write the snapshot. Failures are logged, never raised."""
        try:
            self.store.set(TICKETS_KEY, dump_tickets(self._tickets))
            self.store.set(NEXT_NUMBER_KEY, str(self._next_number))
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"[STORE] Failed to persist tickets: {e}")

    def _now(self, previous: Optional[datetime] = None) -> datetime:
        now = self.clock()
        if previous is not None and now <= previous:
            return previous + timedelta(microseconds=1)
        return now

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    @property
    def all(self) -> list[Ticket]:
        return list(self._tickets)

    @property
    def filter(self) -> TicketFilter:
        return self._filter

    @property
    def filtered(self) -> list[Ticket]:
        return filters.filter_tickets(self._tickets, self._filter)

    @property
    def by_status(self) -> dict[str, list[Ticket]]:
        return filters.group_by_status(self.filtered)

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active(self) -> Optional[Ticket]:
        if self._active_id is None:
            return None
        return self.get(self._active_id)

    @property
    def overdue(self) -> list[Ticket]:
        return filters.overdue(self._tickets, self.clock())

    @property
    def due_soon(self) -> list[Ticket]:
        return filters.due_soon(self._tickets, self.clock(), self.due_soon_days)

    @property
    def next_number(self) -> int:
        return self._next_number

    def get(self, ticket_id: str) -> Optional[Ticket]:
        for ticket in self._tickets:
            if ticket.id == ticket_id:
                return ticket
        return None

    def find(self, ref: str) -> Optional[Ticket]:
        """Find a ticket by id or by number (SF-007, sf-7, 7)."""
        ticket = self.get(ref)
        if ticket:
            return ticket
        match = TICKET_REF_PATTERN.match(ref.strip())
        if not match:
            return None
        number = int(match.group(1))
        for ticket in self._tickets:
            if ticket.number == number:
                return ticket
        return None

    def task_progress(self, ticket_id: str) -> Optional[TaskProgress]:
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        return filters.task_progress(ticket)

    # ------------------------------------------------------------------
    # Selection state (not persisted)
    # ------------------------------------------------------------------

    def set_active(self, ticket_id: Optional[str]) -> None:
        self._active_id = ticket_id

    def set_filter(self, query: TicketFilter) -> None:
        self._filter = query

    def clear_filter(self) -> None:
        self._filter = TicketFilter()

    # ------------------------------------------------------------------
    # Ticket CRUD
    # ------------------------------------------------------------------

    def create(self, **initial) -> Ticket:
        """Create a ticket with the next number and persist it.

        Any Ticket field may be supplied except id, number, created_at and
        updated_at, which the repository assigns.
        """
        now = self._now()
        number = self._next_number
        self._next_number += 1

        overrides = self._known_fields(initial, allow=TICKET_FIELDS - PROTECTED_FIELDS)
        ticket = Ticket(
            id=ids.new_ticket_id(now),
            number=number,
            created_at=now,
            updated_at=now,
            **overrides,
        )

        self._tickets = [*self._tickets, ticket]
        self._persist()
        logger.info(f"[TICKET] Created {ids.format_number(number)}: {ticket.title}")
        return ticket

    def update(self, ticket_id: str, **updates) -> Optional[Ticket]:
        """Merge fields into a ticket and refresh updated_at.

        id, number and created_at are ignored. Returns the updated ticket, or
        None if there is no such ticket.
        """
        current = self.get(ticket_id)
        if not current:
            logger.debug(f"update: no ticket {ticket_id}")
            return None

        changes = self._known_fields(updates, allow=TICKET_FIELDS - PROTECTED_FIELDS)
        changes["updated_at"] = self._now(previous=current.updated_at)
        updated = replace(current, **changes)

        self._tickets = [updated if t.id == ticket_id else t for t in self._tickets]
        self._persist()
        return updated

    def _known_fields(self, values: dict, allow: Iterable[str]) -> dict:
        allowed = set(allow)
        accepted = {}
        for key, value in values.items():
            if key in allowed:
                accepted[key] = value
            elif key in PROTECTED_FIELDS:
                logger.debug(f"Ignoring protected ticket field '{key}'")
            else:
                logger.warning(f"Ignoring unknown ticket field '{key}'")
        return accepted

    def delete(self, ticket_id: str) -> None:
        if not self.get(ticket_id):
            return
        self._tickets = [t for t in self._tickets if t.id != ticket_id]
        if self._active_id == ticket_id:
            self._active_id = None
        self._persist()
        logger.info(f"[TICKET] Deleted {ticket_id}")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def move(self, ticket_id: str, status: str) -> Optional[Ticket]:
        """Set a ticket's status directly, as a board drag does."""
        return self.update(ticket_id, status=status)

    def advance(self, ticket_id: str, trigger: str) -> Optional[Ticket]:
        """Apply a named status-flow trigger (submit, approve, start, ...).

        Returns None if the ticket doesn't exist or the trigger isn't
        available from its current status.
        """
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        status = apply_trigger(ticket.status, trigger, ids.format_number(ticket.number))
        if status is None:
            return None
        return self.update(ticket_id, status=status)

    # ------------------------------------------------------------------
    # Labels, assignees, comments, chat
    # ------------------------------------------------------------------

    def add_label(self, ticket_id: str, label: Label) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or any(existing.id == label.id for existing in ticket.labels):
            return None
        return self.update(ticket_id, labels=[*ticket.labels, label])

    def remove_label(self, ticket_id: str, label_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.labels, label_id):
            return None
        return self.update(ticket_id, labels=[x for x in ticket.labels if x.id != label_id])

    def add_assignee(self, ticket_id: str, assignee: Assignee) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or any(a.id == assignee.id for a in ticket.assignees):
            return None
        return self.update(ticket_id, assignees=[*ticket.assignees, assignee])

    def remove_assignee(self, ticket_id: str, assignee_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.assignees, assignee_id):
            return None
        return self.update(ticket_id, assignees=[a for a in ticket.assignees if a.id != assignee_id])

    def add_comment(self, ticket_id: str, author: str, content: str) -> Optional[Comment]:
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        now = self._now()
        comment = Comment(
            id=ids.timestamp_id("comment_", now, {c.id for c in ticket.comments}),
            author=author,
            content=content,
            timestamp=now,
        )
        self.update(ticket_id, comments=[*ticket.comments, comment])
        return comment

    def add_chat_message(self, ticket_id: str, role: str, content: str) -> Optional[ChatMessage]:
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        now = self._now()
        message = ChatMessage(
            id=ids.timestamp_id("msg_", now, {m.id for m in ticket.chat_history}),
            role=role,
            content=content,
            timestamp=now,
        )
        self.update(ticket_id, chat_history=[*ticket.chat_history, message])
        return message

    # ------------------------------------------------------------------
    # Legacy subtasks
    # ------------------------------------------------------------------

    def add_subtask(self, ticket_id: str, title: str) -> Optional[Subtask]:
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        subtask = Subtask(
            id=ids.timestamp_id("subtask_", self._now(), {s.id for s in ticket.subtasks}),
            title=title,
        )
        self.update(ticket_id, subtasks=[*ticket.subtasks, subtask])
        return subtask

    def toggle_subtask(self, ticket_id: str, subtask_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.subtasks, subtask_id):
            return None
        return self.update(ticket_id, subtasks=[
            replace(s, completed=not s.completed) if s.id == subtask_id else s
            for s in ticket.subtasks
        ])

    def delete_subtask(self, ticket_id: str, subtask_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.subtasks, subtask_id):
            return None
        return self.update(ticket_id, subtasks=[s for s in ticket.subtasks if s.id != subtask_id])

    # ------------------------------------------------------------------
    # User scenarios
    # ------------------------------------------------------------------

    def add_user_scenario(
        self,
        ticket_id: str,
        title: str,
        priority: str = "P1",
        given: str = "",
        when: str = "",
        then: str = "",
    ) -> Optional[UserScenario]:
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        n, counters = ids.next_sequence(ticket.id_counters, ids.SCENARIO_PREFIX, len(ticket.user_scenarios))
        scenario = UserScenario(
            id=ids.scenario_id(n),
            priority=priority,
            title=title,
            given=given,
            when=when,
            then=then,
        )
        self.update(ticket_id, user_scenarios=[*ticket.user_scenarios, scenario], id_counters=counters)
        return scenario

    def update_user_scenario(self, ticket_id: str, scenario_id: str, **updates) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.user_scenarios, scenario_id):
            return None
        updates.pop("id", None)
        return self.update(ticket_id, user_scenarios=[
            replace(s, **updates) if s.id == scenario_id else s
            for s in ticket.user_scenarios
        ])

    def delete_user_scenario(self, ticket_id: str, scenario_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.user_scenarios, scenario_id):
            return None
        return self.update(ticket_id, user_scenarios=[s for s in ticket.user_scenarios if s.id != scenario_id])

    # ------------------------------------------------------------------
    # Requirements
    # ------------------------------------------------------------------

    def add_requirement(
        self,
        ticket_id: str,
        description: str,
        req_type: str = "functional",
        clarification_needed: Optional[str] = None,
    ) -> Optional[Requirement]:
        """Add a requirement numbered within its type (FR-001, NFR-001)."""
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        prefix = ids.requirement_prefix(req_type)
        same_type = sum(1 for r in ticket.requirements if r.type == req_type)
        n, counters = ids.next_sequence(ticket.id_counters, prefix, same_type)
        requirement = Requirement(
            id=ids.requirement_id(req_type, n),
            type=req_type,
            description=description,
            clarification_needed=clarification_needed,
        )
        self.update(ticket_id, requirements=[*ticket.requirements, requirement], id_counters=counters)
        return requirement

    def update_requirement(self, ticket_id: str, requirement_id: str, **updates) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.requirements, requirement_id):
            return None
        updates.pop("id", None)
        return self.update(ticket_id, requirements=[
            replace(r, **updates) if r.id == requirement_id else r
            for r in ticket.requirements
        ])

    def delete_requirement(self, ticket_id: str, requirement_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.requirements, requirement_id):
            return None
        return self.update(ticket_id, requirements=[r for r in ticket.requirements if r.id != requirement_id])

    # ------------------------------------------------------------------
    # Clarifications
    # ------------------------------------------------------------------

    def add_clarification(self, ticket_id: str, question: str, context: Optional[str] = None) -> Optional[Clarification]:
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        clarification = Clarification(
            id=ids.timestamp_id("CLR-", self._now(), {c.id for c in ticket.clarifications}),
            question=question,
            context=context,
        )
        self.update(ticket_id, clarifications=[*ticket.clarifications, clarification])
        return clarification

    def resolve_clarification(self, ticket_id: str, clarification_id: str, answer: str) -> Optional[Ticket]:
        """Resolve a clarification with an answer.

        resolved_at is stamped on first resolution only; answering again
        replaces the answer but keeps the original timestamp.
        """
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.clarifications, clarification_id):
            return None
        now = self._now()
        return self.update(ticket_id, clarifications=[
            replace(c, resolved=True, answer=answer, resolved_at=c.resolved_at or now)
            if c.id == clarification_id else c
            for c in ticket.clarifications
        ])

    def delete_clarification(self, ticket_id: str, clarification_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.clarifications, clarification_id):
            return None
        return self.update(ticket_id, clarifications=[
            c for c in ticket.clarifications if c.id != clarification_id
        ])

    # ------------------------------------------------------------------
    # Success criteria
    # ------------------------------------------------------------------

    def add_success_criterion(
        self,
        ticket_id: str,
        description: str,
        metric: Optional[str] = None,
    ) -> Optional[SuccessCriterion]:
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        n, counters = ids.next_sequence(
            ticket.id_counters, ids.SUCCESS_CRITERION_PREFIX, len(ticket.success_criteria)
        )
        criterion = SuccessCriterion(id=ids.success_criterion_id(n), description=description, metric=metric)
        self.update(ticket_id, success_criteria=[*ticket.success_criteria, criterion], id_counters=counters)
        return criterion

    def toggle_success_criterion(self, ticket_id: str, criterion_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.success_criteria, criterion_id):
            return None
        return self.update(ticket_id, success_criteria=[
            replace(c, met=not c.met) if c.id == criterion_id else c
            for c in ticket.success_criteria
        ])

    def delete_success_criterion(self, ticket_id: str, criterion_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.success_criteria, criterion_id):
            return None
        return self.update(ticket_id, success_criteria=[
            c for c in ticket.success_criteria if c.id != criterion_id
        ])

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def add_task(self, ticket_id: str, draft: TaskDraft) -> Optional[Task]:
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        n, counters = ids.next_sequence(ticket.id_counters, ids.TASK_PREFIX, len(ticket.tasks))
        task = Task.from_draft(draft, ids.task_id(n))
        self.update(ticket_id, tasks=[*ticket.tasks, task], id_counters=counters)
        return task

    def update_task(self, ticket_id: str, task_id: str, **updates) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.tasks, task_id):
            return None
        updates.pop("id", None)
        return self.update(ticket_id, tasks=[
            replace(t, **updates) if t.id == task_id else t
            for t in ticket.tasks
        ])

    def update_task_status(
        self,
        ticket_id: str,
        task_id: str,
        status: str,
        commit_hash: Optional[str] = None,
    ) -> Optional[Ticket]:
        """Change a task's status. A commit hash, once recorded, is kept."""
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.tasks, task_id):
            return None
        return self.update(ticket_id, tasks=[
            replace(t, status=status, commit_hash=commit_hash or t.commit_hash) if t.id == task_id else t
            for t in ticket.tasks
        ])

    def delete_task(self, ticket_id: str, task_id: str) -> Optional[Ticket]:
        ticket = self.get(ticket_id)
        if not ticket or not _contains(ticket.tasks, task_id):
            return None
        return self.update(ticket_id, tasks=[t for t in ticket.tasks if t.id != task_id])

    def generate_tasks_from_spec(self, ticket_id: str, drafts: list[TaskDraft]) -> Optional[Ticket]:
        """Replace the whole task list with a freshly numbered batch (T001..T00N)."""
        ticket = self.get(ticket_id)
        if not ticket:
            return None
        tasks = [Task.from_draft(d, ids.task_id(i)) for i, d in enumerate(drafts, 1)]
        counters = dict(ticket.id_counters)
        counters[ids.TASK_PREFIX] = len(tasks)

        updated = self.update(ticket_id, tasks=tasks, id_counters=counters)
        logger.info(f"[TICKET] {ids.format_number(ticket.number)}: generated {len(tasks)} task(s)")
        return updated
