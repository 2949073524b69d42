"""
sf new / list / show / move / advance / delete - Ticket lifecycle commands.
"""

from datetime import datetime
from typing import Optional

from specflow.lib.config import SpecflowConfig
from specflow.lib.constants import PRIORITY_LABELS, STATUS_LABELS, TICKET_STATUSES
from specflow.tickets.ids import format_number
from specflow.tickets.markdown import render_ticket_markdown
from specflow.tickets.models import DEFAULT_LABELS, Assignee, Ticket, TicketFilter
from specflow.tickets.repository import TicketRepository
from specflow.workflow.fsm import TRIGGER_FOR, available_triggers, next_statuses
from specflow.workflow.gate import parse_gate


def require_ticket(repo: TicketRepository, ref: str) -> Optional[Ticket]:
    """Look up a ticket by id or number, printing an error if it's missing."""
    ticket = repo.find(ref)
    if not ticket:
        print(f"ERROR: Ticket '{ref}' not found")
    return ticket


def parse_due_date(value: str) -> datetime:
    """Parse YYYY-MM-DD (or a full ISO timestamp) from the command line."""
    return datetime.fromisoformat(value)


def format_row(ticket: Ticket) -> str:
    title = ticket.title[:40] + "..." if len(ticket.title) > 40 else ticket.title
    return (
        f"  {format_number(ticket.number):<8} {ticket.status:<15} "
        f"{ticket.priority:<7} {ticket.quality_gate.value:<24} {title}"
    )


def cmd_new(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Create a ticket."""
    fields = {
        "title": args.title,
        "description": args.description or "",
        "priority": args.priority,
    }

    if args.due:
        try:
            fields["due_date"] = parse_due_date(args.due)
        except ValueError:
            print(f"ERROR: Invalid due date '{args.due}' (expected YYYY-MM-DD)")
            return 2

    labels = []
    for label_id in args.label or []:
        label = next((x for x in DEFAULT_LABELS if x.id == label_id), None)
        if not label:
            known = ", ".join(x.id for x in DEFAULT_LABELS)
            print(f"ERROR: Unknown label '{label_id}'. Known labels: {known}")
            return 2
        if label not in labels:
            labels.append(label)
    if labels:
        fields["labels"] = labels

    if args.assignee:
        fields["assignees"] = [Assignee(id=args.assignee, name=args.assignee)]

    ticket = repo.create(**fields)
    print(f"Created {format_number(ticket.number)}: {ticket.title}")
    print(f"  ID: {ticket.id}")
    print(f"  Quality gate: {ticket.quality_gate.value}")
    return 0


def cmd_list(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """List tickets, optionally filtered."""
    gate = None
    if args.gate:
        gate = parse_gate(args.gate)
        if gate is None:
            print(f"ERROR: Unknown quality gate '{args.gate}'")
            return 2

    repo.set_filter(TicketFilter(
        statuses=args.status or [],
        priorities=args.priority or [],
        assignee=args.assignee,
        labels=args.label or [],
        search=args.search or "",
    ))
    tickets = sorted(repo.filtered, key=lambda t: t.number)
    if gate:
        tickets = [t for t in tickets if t.quality_gate is gate]

    if not tickets:
        print("No tickets" if repo.filter.is_empty() and not gate else "No tickets match the filter")
        return 0

    print(f"  {'NUMBER':<8} {'STATUS':<15} {'PRIO':<7} {'GATE':<24} TITLE")
    print("-" * 80)
    for ticket in tickets:
        print(format_row(ticket))
    print("-" * 80)
    print(f"{len(tickets)} ticket(s)")
    return 0


def cmd_show(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Show a ticket in full."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    if args.markdown:
        print(render_ticket_markdown(ticket))
        return 0

    print(f"Ticket: {format_number(ticket.number)} {ticket.title}")
    print("=" * 60)
    print(f"ID:           {ticket.id}")
    print(f"Status:       {STATUS_LABELS.get(ticket.status, ticket.status)}")
    print(f"Priority:     {PRIORITY_LABELS.get(ticket.priority, ticket.priority)}")
    print(f"Quality gate: {ticket.quality_gate.value}")
    print(f"Created:      {ticket.created_at.isoformat(timespec='seconds')}")
    print(f"Updated:      {ticket.updated_at.isoformat(timespec='seconds')}")
    if ticket.due_date:
        print(f"Due:          {ticket.due_date.date().isoformat()}")
    print()

    if ticket.description:
        print("Description")
        print("-" * 40)
        print(ticket.description)
        print()

    print("Specification")
    print("-" * 40)
    print(f"  Scenarios:        {len(ticket.user_scenarios)}")
    print(f"  Requirements:     {len(ticket.requirements)}")
    print(f"  Clarifications:   {len(ticket.open_clarifications)} open / {len(ticket.clarifications)}")
    print(f"  Success criteria: {len(ticket.success_criteria)}")
    print()

    if ticket.execution_unlocked:
        progress = repo.task_progress(ticket.id)
        print("Execution")
        print("-" * 40)
        if progress:
            print(f"  Tasks: {progress.completed}/{progress.total} complete ({progress.percent}%)")
        else:
            print("  No tasks yet")
        print()

    triggers = available_triggers(ticket.status)
    if triggers:
        print("Next")
        print("-" * 40)
        for trigger, status in zip(triggers, next_statuses(ticket.status)):
            print(f"  {trigger:<10} -> {status}")
        print(f"  sf advance {format_number(ticket.number)} <trigger>")

    return 0


def cmd_move(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Set a ticket's status directly."""
    if args.status not in TICKET_STATUSES:
        print(f"ERROR: Unknown status '{args.status}'. Valid: {', '.join(TICKET_STATUSES)}")
        return 2

    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    updated = repo.move(ticket.id, args.status)
    trigger = TRIGGER_FOR.get((ticket.status, updated.status))
    via = f" ({trigger})" if trigger else ""
    print(f"{format_number(ticket.number)}: {ticket.status} -> {updated.status}{via}")
    print(f"  Quality gate: {updated.quality_gate.value}")
    return 0


def cmd_advance(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Move a ticket along the status flow by trigger name."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    updated = repo.advance(ticket.id, args.trigger)
    if not updated:
        triggers = available_triggers(ticket.status)
        print(f"ERROR: Cannot '{args.trigger}' from {ticket.status}")
        print(f"  Available: {', '.join(triggers) if triggers else 'none'}")
        return 2

    print(f"{format_number(ticket.number)}: {ticket.status} -> {updated.status}")
    print(f"  Quality gate: {updated.quality_gate.value}")
    return 0


def cmd_delete(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Delete a ticket permanently."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    repo.delete(ticket.id)
    print(f"Deleted {format_number(ticket.number)}: {ticket.title}")
    return 0
