"""
Id assignment and formatting for tickets and their nested entities.

Sequential nested ids (US1, FR-001, SC-001, T001) come from per-ticket
counters kept in Ticket.id_counters. A counter only moves forward, so an id
is never handed out twice within a ticket even after deletions.
"""

import re
import secrets
from datetime import datetime

SCENARIO_PREFIX = "US"
SUCCESS_CRITERION_PREFIX = "SC"
TASK_PREFIX = "T"
REQUIREMENT_PREFIXES = {"functional": "FR", "non_functional": "NFR"}

# Matches any sequential nested id and captures (prefix, number)
SEQUENTIAL_ID_PATTERN = re.compile(r'^(US|FR|NFR|SC|T)-?(\d+)$')


def format_number(number: int) -> str:
    """Format a ticket number as SF-001. Numbers above 999 are not truncated."""
    return f"SF-{number:03d}"


def epoch_ms(now: datetime) -> int:
    return int(now.timestamp() * 1000)


def new_ticket_id(now: datetime) -> str:
    """Generate an opaque ticket id: ticket_<ms>_<7 hex chars>."""
    return f"ticket_{epoch_ms(now)}_{secrets.token_hex(4)[:7]}"


def timestamp_id(prefix: str, now: datetime, taken: set[str]) -> str:
    """Generate <prefix><ms timestamp>, bumping past ids already taken."""
    stamp = epoch_ms(now)
    candidate = f"{prefix}{stamp}"
    while candidate in taken:
        stamp += 1
        candidate = f"{prefix}{stamp}"
    return candidate


def scenario_id(n: int) -> str:
    return f"{SCENARIO_PREFIX}{n}"


def requirement_prefix(req_type: str) -> str:
    return REQUIREMENT_PREFIXES.get(req_type, "NFR")


def requirement_id(req_type: str, n: int) -> str:
    return f"{requirement_prefix(req_type)}-{n:03d}"


def success_criterion_id(n: int) -> str:
    return f"{SUCCESS_CRITERION_PREFIX}-{n:03d}"


def task_id(n: int) -> str:
    return f"{TASK_PREFIX}{n:03d}"


def next_sequence(counters: dict[str, int], prefix: str, live_count: int) -> tuple[int, dict[str, int]]:
    """Allocate the next sequence value for a prefix.

    The value is one past the stored counter, and never below live_count + 1
    (so a ticket that predates counters starts where its entity list ends).

    Returns:
        Tuple of (allocated value, updated copy of counters)
    """
    value = max(counters.get(prefix, 0), live_count) + 1
    updated = dict(counters)
    updated[prefix] = value
    return value, updated


def seed_counters(ids: list[str]) -> dict[str, int]:
    """Rebuild counters from the sequential ids present on a ticket."""
    counters: dict[str, int] = {}
    for entity_id in ids:
        match = SEQUENTIAL_ID_PATTERN.match(entity_id or "")
        if not match:
            continue
        prefix, num = match.group(1), int(match.group(2))
        counters[prefix] = max(counters.get(prefix, 0), num)
    return counters
