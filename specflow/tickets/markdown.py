"""
Human-readable markdown rendering of a ticket.
"""

from specflow.lib.constants import PRIORITY_LABELS, STATUS_LABELS
from specflow.tickets.filters import task_progress
from specflow.tickets.ids import format_number
from specflow.tickets.models import Ticket


def render_ticket_markdown(ticket: Ticket) -> str:
    """Render a ticket as markdown.

    Tasks are only shown once the ticket is approved or later.
    """
    lines = [
        f"# {format_number(ticket.number)}: {ticket.title}",
        "",
        f"**Status:** {STATUS_LABELS.get(ticket.status, ticket.status)}",
        f"**Priority:** {PRIORITY_LABELS.get(ticket.priority, ticket.priority)}",
        f"**Quality Gate:** {ticket.quality_gate.value}",
        f"**Created:** {ticket.created_at.isoformat(timespec='seconds')}",
    ]

    if ticket.due_date:
        lines.append(f"**Due:** {ticket.due_date.date().isoformat()}")
    if ticket.labels:
        lines.append(f"**Labels:** {', '.join(label.name for label in ticket.labels)}")
    if ticket.assignees:
        lines.append(f"**Assignees:** {', '.join(a.name for a in ticket.assignees)}")
    if ticket.ai_generated:
        lines.append("**AI generated:** yes")

    lines.append("")

    if ticket.description:
        lines.extend([
            "## Description",
            "",
            ticket.description,
            "",
        ])

    if ticket.user_scenarios:
        lines.extend([
            "## User Scenarios",
            "",
        ])
        for s in ticket.user_scenarios:
            lines.append(f"### {s.id} [{s.priority}] {s.title}")
            if s.given:
                lines.append(f"- **Given** {s.given}")
            if s.when:
                lines.append(f"- **When** {s.when}")
            if s.then:
                lines.append(f"- **Then** {s.then}")
            lines.append("")

    if ticket.requirements:
        lines.extend([
            "## Requirements",
            "",
        ])
        for r in ticket.requirements:
            marker = "[x]" if r.verified else "[ ]"
            lines.append(f"- {marker} **{r.id}** {r.description}")
            if r.clarification_needed:
                lines.append(f"  - [NEEDS CLARIFICATION: {r.clarification_needed}]")
        lines.append("")

    if ticket.clarifications:
        lines.extend([
            "## Clarifications",
            "",
        ])
        for c in ticket.clarifications:
            state = "resolved" if c.resolved else "open"
            lines.append(f"- **{c.id}** ({state}) {c.question}")
            if c.context:
                lines.append(f"  - Context: {c.context}")
            if c.resolved:
                lines.append(f"  - Answer: {c.answer or '(no answer provided)'}")
        lines.append("")

    if ticket.success_criteria:
        lines.extend([
            "## Success Criteria",
            "",
        ])
        for sc in ticket.success_criteria:
            marker = "[x]" if sc.met else "[ ]"
            metric = f" ({sc.metric})" if sc.metric else ""
            lines.append(f"- {marker} **{sc.id}** {sc.description}{metric}")
        lines.append("")

    if ticket.spec:
        lines.extend([
            "## Specification",
            "",
            ticket.spec.strip(),
            "",
        ])

    if ticket.execution_unlocked and ticket.tasks:
        progress = task_progress(ticket)
        lines.extend([
            f"## Tasks ({progress.completed}/{progress.total}, {progress.percent}%)",
            "",
        ])
        for t in ticket.tasks:
            marker = "[x]" if t.status == "complete" else "[ ]"
            flags = []
            if t.parallel:
                flags.append("P")
            if t.user_scenario_id:
                flags.append(t.user_scenario_id)
            if t.is_checkpoint:
                flags.append(f"checkpoint:{t.checkpoint_type or 'verify'}")
            flag_text = f" [{', '.join(flags)}]" if flags else ""
            lines.append(f"- {marker} **{t.id}** ({t.phase}){flag_text} {t.name}")
            if t.commit_hash:
                lines.append(f"  - Commit: {t.commit_hash}")
        lines.append("")

    if ticket.comments:
        lines.extend([
            "## Comments",
            "",
        ])
        for c in ticket.comments:
            lines.append(f"- **{c.author}** ({c.timestamp.isoformat(timespec='seconds')}): {c.content}")
        lines.append("")

    return "\n".join(lines)
