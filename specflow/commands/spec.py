"""
sf scenario / req / criteria - Edit a ticket's structured specification.
"""

from specflow.commands.tickets import require_ticket
from specflow.lib.config import SpecflowConfig
from specflow.tickets.ids import format_number
from specflow.tickets.repository import TicketRepository


def cmd_scenario_add(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Add a Given/When/Then user scenario."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    scenario = repo.add_user_scenario(
        ticket.id,
        title=args.title,
        priority=args.priority,
        given=args.given or "",
        when=args.when or "",
        then=args.then or "",
    )
    print(f"Added {scenario.id} [{scenario.priority}] to {format_number(ticket.number)}: {scenario.title}")
    print(f"  Quality gate: {repo.get(ticket.id).quality_gate.value}")
    return 0


def cmd_req_add(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Add a functional or non-functional requirement."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    requirement = repo.add_requirement(
        ticket.id,
        description=args.description,
        req_type=args.type,
        clarification_needed=args.needs_clarification,
    )
    print(f"Added {requirement.id} to {format_number(ticket.number)}: {requirement.description}")
    if requirement.clarification_needed:
        print(f"  Needs clarification: {requirement.clarification_needed}")
    print(f"  Quality gate: {repo.get(ticket.id).quality_gate.value}")
    return 0


def cmd_req_verify(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Mark a requirement verified (or unverified with --undo)."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    if not any(r.id == args.requirement for r in ticket.requirements):
        print(f"ERROR: Requirement '{args.requirement}' not found in {format_number(ticket.number)}")
        return 1

    verified = not args.undo
    repo.update_requirement(ticket.id, args.requirement, verified=verified)
    print(f"{args.requirement}: {'verified' if verified else 'not verified'}")
    return 0


def cmd_criteria_add(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Add a measurable success criterion."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    criterion = repo.add_success_criterion(ticket.id, description=args.description, metric=args.metric)
    print(f"Added {criterion.id} to {format_number(ticket.number)}: {criterion.description}")
    return 0


def cmd_criteria_toggle(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Flip a success criterion between met and not met."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    if not any(c.id == args.criterion for c in ticket.success_criteria):
        print(f"ERROR: Success criterion '{args.criterion}' not found in {format_number(ticket.number)}")
        return 1

    updated = repo.toggle_success_criterion(ticket.id, args.criterion)
    criterion = next(c for c in updated.success_criteria if c.id == args.criterion)
    print(f"{criterion.id}: {'met' if criterion.met else 'not met'}")
    return 0
