"""
sf clarify - Manage a ticket's open questions.
"""

from specflow.commands.tickets import require_ticket
from specflow.lib.config import SpecflowConfig
from specflow.tickets.ids import format_number
from specflow.tickets.repository import TicketRepository


def cmd_clarify_list(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """List open clarifications for one ticket, or across all tickets."""
    ref = getattr(args, 'ticket', None)
    if ref:
        ticket = require_ticket(repo, ref)
        if not ticket:
            return 1
        tickets = [ticket]
    else:
        tickets = sorted(repo.all, key=lambda t: t.number)

    pending = [(t, c) for t in tickets for c in t.open_clarifications]
    if not pending:
        print("No open clarifications")
        return 0

    print(f"{'ID':<20} {'TICKET':<8} QUESTION")
    print("─" * 80)
    for ticket, clr in pending:
        question_preview = clr.question[:48] + "..." if len(clr.question) > 48 else clr.question
        print(f"{clr.id:<20} {format_number(ticket.number):<8} {question_preview}")
    print("─" * 80)
    print(f"{len(pending)} open clarification(s)")
    print()
    print("Use 'sf clarify answer <ticket> <id>' to answer")
    return 0


def cmd_clarify_ask(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Record a new question against a ticket."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    clr = repo.add_clarification(ticket.id, args.question, context=args.context)
    print(f"Created clarification: {clr.id}")
    print(f"  Question: {clr.question}")
    print()
    print(f"Answer with: sf clarify answer {format_number(ticket.number)} {clr.id}")
    return 0


def cmd_clarify_answer(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Answer a clarification, prompting for the answer if not given."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    clr = next((c for c in ticket.clarifications if c.id == args.id), None)
    if not clr:
        print(f"ERROR: Clarification '{args.id}' not found in {format_number(ticket.number)}")
        return 1

    answer = args.answer
    if not answer:
        print(f"Answering: {clr.id}")
        print()
        print("Question:")
        print(clr.question)
        if clr.context:
            print()
            print(f"Context: {clr.context}")
        print()
        answer = input("Your answer: ").strip()

    if not answer:
        print("ERROR: Answer cannot be empty")
        return 2

    updated = repo.resolve_clarification(ticket.id, clr.id, answer)
    print(f"Answered {clr.id}: {answer}")

    remaining = updated.open_clarifications
    if remaining:
        print(f"Note: {len(remaining)} open clarification(s) remain: {', '.join(c.id for c in remaining)}")
    else:
        print(f"{format_number(ticket.number)} has no open clarifications")
    print(f"  Quality gate: {updated.quality_gate.value}")
    return 0
