"""
Read-only queries over a ticket collection.

Every function here takes a list of tickets and returns a new list or dict;
nothing is modified.
"""

from datetime import datetime, timedelta

from specflow.lib.constants import DUE_SOON_DAYS, PRIORITY_RANK, TICKET_STATUSES
from specflow.tickets.ids import format_number
from specflow.tickets.models import Ticket, TicketFilter, TaskProgress

__all__ = [
    "matches_filter",
    "filter_tickets",
    "group_by_status",
    "overdue",
    "due_soon",
    "task_progress",
]


def _matches_search(ticket: Ticket, search: str) -> bool:
    needle = search.lower()
    haystacks = (
        format_number(ticket.number),
        ticket.title,
        ticket.description,
        ticket.spec,
    )
    return any(needle in (h or "").lower() for h in haystacks)


def matches_filter(ticket: Ticket, query: TicketFilter) -> bool:
    """Check a ticket against every criterion set on the filter.

    Criteria are ANDed. Search matches if any of number, title, description
    or spec text contains it.
    """
    if query.statuses and ticket.status not in query.statuses:
        return False
    if query.priorities and ticket.priority not in query.priorities:
        return False
    if query.assignee and not any(a.id == query.assignee for a in ticket.assignees):
        return False
    if query.labels:
        label_ids = {label.id for label in ticket.labels}
        if not label_ids.intersection(query.labels):
            return False
    if query.search and not _matches_search(ticket, query.search):
        return False
    return True


def filter_tickets(tickets: list[Ticket], query: TicketFilter | None) -> list[Ticket]:
    if query is None or query.is_empty():
        return list(tickets)
    return [t for t in tickets if matches_filter(t, query)]


def group_by_status(tickets: list[Ticket]) -> dict[str, list[Ticket]]:
    """Partition tickets into one bucket per status, in column order.

    Each bucket is sorted by priority rank (urgent first). The sort is stable,
    so tickets of equal priority keep their relative order.
    """
    groups: dict[str, list[Ticket]] = {status: [] for status in TICKET_STATUSES}
    for ticket in tickets:
        groups.setdefault(ticket.status, []).append(ticket)

    for status, bucket in groups.items():
        bucket.sort(key=lambda t: PRIORITY_RANK.get(t.priority, len(PRIORITY_RANK)))
    return groups


def overdue(tickets: list[Ticket], now: datetime) -> list[Ticket]:
    """Open tickets whose due date is strictly in the past."""
    return [
        t for t in tickets
        if t.due_date is not None and t.due_date < now and t.status != "completed"
    ]


def due_soon(tickets: list[Ticket], now: datetime, days: int = DUE_SOON_DAYS) -> list[Ticket]:
    """Open tickets due between now and now + days, inclusive."""
    horizon = now + timedelta(days=days)
    return [
        t for t in tickets
        if t.due_date is not None and now <= t.due_date <= horizon and t.status != "completed"
    ]


def task_progress(ticket: Ticket) -> TaskProgress | None:
    """Completion summary for a ticket's tasks, or None if it has none."""
    total = len(ticket.tasks)
    if total == 0:
        return None
    completed = sum(1 for t in ticket.tasks if t.status == "complete")
    # Half-up, so 1 of 2 is 50 and 1 of 8 is 13
    percent = int(100 * completed / total + 0.5)
    return TaskProgress(completed=completed, total=total, percent=percent)
