"""
sf board / due - Kanban and deadline views.
"""

from specflow.commands.tickets import format_row
from specflow.lib.config import SpecflowConfig
from specflow.lib.constants import STATUS_LABELS
from specflow.tickets.ids import format_number
from specflow.tickets.models import TicketFilter
from specflow.tickets.repository import TicketRepository


def cmd_board(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Show tickets grouped into status columns, highest priority first."""
    repo.set_filter(TicketFilter(
        assignee=args.assignee,
        labels=args.label or [],
        search=args.search or "",
    ))

    total = 0
    for status, tickets in repo.by_status.items():
        print(f"{STATUS_LABELS[status]} ({len(tickets)})")
        print("-" * 60)
        for ticket in tickets:
            print(format_row(ticket))
        if not tickets:
            print("  (empty)")
        print()
        total += len(tickets)

    print(f"{total} ticket(s)")
    return 0


def cmd_due(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Show overdue tickets and tickets due within the configured window."""
    overdue = repo.overdue
    due_soon = repo.due_soon

    if not overdue and not due_soon:
        print("Nothing overdue or due soon")
        return 0

    if overdue:
        print(f"Overdue ({len(overdue)})")
        print("-" * 60)
        for ticket in overdue:
            print(f"  {format_number(ticket.number):<8} {ticket.due_date.date().isoformat()}  {ticket.title}")
        print()

    if due_soon:
        print(f"Due within {repo.due_soon_days} day(s) ({len(due_soon)})")
        print("-" * 60)
        for ticket in due_soon:
            print(f"  {format_number(ticket.number):<8} {ticket.due_date.date().isoformat()}  {ticket.title}")
        print()

    return 0
