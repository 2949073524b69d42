"""
Conversion between Ticket dataclasses and snapshot JSON.
"""

import json
from dataclasses import asdict, fields
from datetime import datetime

from specflow.tickets.migrate import SNAPSHOT_VERSION, migrate_snapshot
from specflow.tickets.models import (
    Assignee,
    ChatMessage,
    Clarification,
    Comment,
    Label,
    Requirement,
    Subtask,
    SuccessCriterion,
    Task,
    Ticket,
    UserScenario,
)


def parse_timestamp(value) -> datetime | None:
    """Parse a persisted timestamp into a naive local datetime.

    Accepts ISO 8601 strings (with or without offset or trailing Z) and epoch
    milliseconds.

    Raises:
        ValueError: If a string is not ISO 8601, or a number is outside the
            range the platform can represent
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Epoch timestamp out of range: {value!r}") from e
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _build(cls, data: dict, **overrides):
    """Construct a dataclass from a dict, ignoring keys it doesn't declare."""
    known = {f.name for f in fields(cls)}
    values = {k: v for k, v in data.items() if k in known}
    values.update(overrides)
    return cls(**values)


def ticket_from_record(record: dict, now: datetime) -> Ticket:
    """Build a Ticket from a migrated snapshot record.

    Missing creation/update timestamps fall back to `now`.
    """
    created_at = parse_timestamp(record.get("created_at")) or now
    updated_at = parse_timestamp(record.get("updated_at")) or created_at

    return _build(
        Ticket,
        record,
        created_at=created_at,
        updated_at=updated_at,
        due_date=parse_timestamp(record.get("due_date")),
        user_scenarios=[_build(UserScenario, s) for s in record["user_scenarios"]],
        requirements=[_build(Requirement, r) for r in record["requirements"]],
        clarifications=[
            _build(Clarification, c, resolved_at=parse_timestamp(c.get("resolved_at")))
            for c in record["clarifications"]
        ],
        success_criteria=[_build(SuccessCriterion, c) for c in record["success_criteria"]],
        tasks=[_build(Task, t, files=list(t.get("files") or [])) for t in record["tasks"]],
        subtasks=[_build(Subtask, s) for s in record["subtasks"]],
        chat_history=[
            _build(ChatMessage, m, timestamp=parse_timestamp(m.get("timestamp")) or created_at)
            for m in record["chat_history"]
        ],
        labels=[_build(Label, label) for label in record["labels"]],
        comments=[
            _build(Comment, c, timestamp=parse_timestamp(c.get("timestamp")) or created_at)
            for c in record["comments"]
        ],
        assignees=[_build(Assignee, a) for a in record["assignees"]],
        id_counters=dict(record.get("id_counters") or {}),
    )


def ticket_to_record(ticket: Ticket) -> dict:
    """Snapshot record for a ticket, including its derived quality gate."""
    record = asdict(ticket)
    record["quality_gate"] = ticket.quality_gate.value
    return record


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dump_tickets(tickets: list[Ticket]) -> str:
    document = {
        "version": SNAPSHOT_VERSION,
        "tickets": [ticket_to_record(t) for t in tickets],
    }
    return json.dumps(document, default=_json_default, indent=2)


def load_tickets(blob: str, now: datetime) -> list[Ticket]:
    """Decode, migrate, validate and build tickets from a snapshot blob.

    Raises:
        json.JSONDecodeError, MigrationError, ValidationError, ValueError
    """
    document = json.loads(blob)
    return [ticket_from_record(r, now) for r in migrate_snapshot(document)]
