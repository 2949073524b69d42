"""
sf ingest - Create a ticket from an AI-generated spec.
"""

from specflow.ingest import create_ticket_from_spec, load_payload_file
from specflow.lib.config import SpecflowConfig
from specflow.lib.validate import ValidationError
from specflow.tickets.ids import format_number
from specflow.tickets.repository import TicketRepository


def cmd_ingest(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Read a spec payload (JSON, YAML or agent transcript) and create a ticket."""
    try:
        payload = load_payload_file(args.file)
        if not isinstance(payload, dict):
            raise ValidationError("spec_payload", "Payload must be an object")
        ticket = create_ticket_from_spec(repo, payload)
    except ValidationError as e:
        print(f"ERROR: {e}")
        return 2

    print(f"Created {format_number(ticket.number)}: {ticket.title}")
    print(f"  Scenarios:        {len(ticket.user_scenarios)}")
    print(f"  Requirements:     {len(ticket.requirements)}")
    print(f"  Success criteria: {len(ticket.success_criteria)}")
    print(f"  Quality gate:     {ticket.quality_gate.value}")
    return 0
