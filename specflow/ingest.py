"""
Ingestion of externally generated specs and task batches.

The conversational agent ends an interview by printing a spec between
markers:

    ---SPEC_START---
    { "title": ..., "userScenarios": [...], ... }
    ---SPEC_END---

Nothing from the payload's own ids survives ingestion: scenarios,
requirements and criteria are added through the repository, which numbers
them itself.
"""

import json
import logging
import re
from dataclasses import fields
from pathlib import Path
from typing import Optional

import yaml

from specflow.lib.validate import ValidationError, validate
from specflow.tickets.migrate import snake_keys
from specflow.tickets.models import TaskDraft, Ticket
from specflow.tickets.repository import TicketRepository

logger = logging.getLogger(__name__)

SPEC_BLOCK_PATTERN = re.compile(r'---SPEC_START---([\s\S]*?)---SPEC_END---')

# Agent priorities -> ticket priorities
PRIORITY_MAP = {
    "critical": "urgent",
    "urgent": "urgent",
    "high": "high",
    "medium": "medium",
    "low": "low",
}


def strip_markdown_fences(text: str) -> str:
    """Strip markdown code fences from text if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        if lines and lines[0].strip().startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text


def parse_spec_block(text: str) -> Optional[dict]:
    """Extract the spec payload from agent output.

    Returns None if there is no spec block or its JSON doesn't parse.
    """
    match = SPEC_BLOCK_PATTERN.search(text)
    if not match:
        return None

    body = strip_markdown_fences(match.group(1))
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse spec block: {e}")
        return None

    if not isinstance(payload, dict):
        logger.warning(f"Spec block is {type(payload).__name__}, expected object")
        return None
    return payload


def validate_spec_payload(payload: dict) -> None:
    """Raises ValidationError if the payload doesn't match the spec schema."""
    validate(payload, "spec_payload")


def map_priority(value: Optional[str]) -> str:
    return PRIORITY_MAP.get((value or "").strip().lower(), "none")


def render_spec_markdown(payload: dict) -> str:
    """Render the free-text parts of a payload as the ticket's spec text."""
    lines = []

    if payload.get("summary"):
        lines.extend(["## Summary", "", payload["summary"], ""])
    if payload.get("problem"):
        lines.extend(["## Problem", "", payload["problem"], ""])

    constraints = payload.get("constraints") or []
    if constraints:
        lines.extend(["## Constraints", ""])
        for c in constraints:
            lines.append(f"- {c}")
        lines.append("")

    edge_cases = payload.get("edgeCases") or []
    if edge_cases:
        lines.extend(["## Edge Cases", ""])
        for case in edge_cases:
            handling = case.get("handling")
            lines.append(f"- {case['scenario']}" + (f": {handling}" if handling else ""))
        lines.append("")

    return "\n".join(lines).strip()


def _scenario_title(scenario: dict) -> str:
    title = scenario["title"]
    if scenario.get("asA") and scenario.get("iWant"):
        story = f"As a {scenario['asA']}, I want {scenario['iWant']}"
        if scenario.get("soThat"):
            story += f" so that {scenario['soThat']}"
        return f"{title} ({story})"
    return title


def create_ticket_from_spec(repo: TicketRepository, payload: dict) -> Ticket:
    """Create an AI-generated ticket from a validated spec payload.

    Raises:
        ValidationError: If the payload doesn't match the spec schema
    """
    validate_spec_payload(payload)

    ticket = repo.create(
        title=payload["title"],
        description=payload.get("problem") or payload.get("summary") or "",
        priority=map_priority(payload.get("priority")),
        spec=render_spec_markdown(payload),
        ai_generated=True,
    )

    for scenario in payload.get("userScenarios") or []:
        priority = scenario.get("priority")
        repo.add_user_scenario(
            ticket.id,
            title=_scenario_title(scenario),
            priority=priority if priority in ("P1", "P2", "P3") else "P1",
            given=scenario.get("given", ""),
            when=scenario.get("when", ""),
            then=scenario.get("then", ""),
        )

    for req in payload.get("requirements") or []:
        repo.add_requirement(
            ticket.id,
            description=req["description"],
            req_type=req.get("type", "functional"),
        )

    for criterion in payload.get("successCriteria") or []:
        repo.add_success_criterion(
            ticket.id,
            description=criterion["metric"],
            metric=criterion.get("target"),
        )

    logger.info(f"Ingested spec '{payload['title']}' as ticket {ticket.id}")
    return repo.get(ticket.id)


def load_task_batch(items) -> list[TaskDraft]:
    """Validate an agent-generated task list and return drafts.

    Accepts camelCase or snake_case keys. Foreign ids and statuses are dropped.

    Raises:
        ValidationError: If the batch doesn't match the task batch schema
    """
    drafts = snake_keys(items)
    if isinstance(drafts, list):
        for item in drafts:
            if isinstance(item, dict):
                for foreign in ("id", "status", "commit_hash"):
                    item.pop(foreign, None)
    validate(drafts, "task_batch")

    known = {f.name for f in fields(TaskDraft)}
    return [TaskDraft(**{k: v for k, v in item.items() if k in known}) for item in drafts]


def load_payload_file(path: Path):
    """Read a payload from disk.

    .json and .yaml/.yml files are parsed directly. Anything else is treated
    as an agent transcript and searched for a spec block.

    Raises:
        ValidationError: If the file can't be read or parsed
    """
    path = Path(path)
    if not path.exists():
        raise ValidationError("payload", f"File not found: {path}")

    text = path.read_text()
    suffix = path.suffix.lower()

    if suffix == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError("payload", f"Invalid JSON in {path}: {e}") from None

    if suffix in (".yaml", ".yml"):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValidationError("payload", f"Invalid YAML in {path}: {e}") from None

    payload = parse_spec_block(text)
    if payload is None:
        raise ValidationError("payload", f"No spec block found in {path}")
    return payload
