"""
Load-time migration of persisted ticket snapshots.

Snapshot versions:
  0  bare JSON list of camelCase records (the original browser export)
  1  {"version": 1, "tickets": [...]} with snake_case records
  2  as 1, plus per-ticket id_counters

Every record is brought up to the current version, defaulted, and validated
against schemas/ticket.schema.json before it is turned into a Ticket.
"""

import logging
import re

from specflow.lib.validate import ValidationError, validate
from specflow.tickets.ids import seed_counters

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 2

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')

# Collections every record must carry, however old
COLLECTION_FIELDS = (
    "user_scenarios",
    "requirements",
    "clarifications",
    "success_criteria",
    "tasks",
    "subtasks",
    "chat_history",
    "labels",
    "comments",
    "assignees",
)

# Only these are derived; they are recomputed rather than trusted
DERIVED_FIELDS = ("quality_gate",)


class MigrationError(Exception):
    """A snapshot could not be brought up to the current version."""


def snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def snake_keys(value):
    """Recursively convert dict keys from camelCase to snake_case."""
    if isinstance(value, dict):
        return {snake_case(k): snake_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [snake_keys(v) for v in value]
    return value


def _v0_to_v1(record: dict) -> dict:
    """camelCase browser record -> snake_case record."""
    record = snake_keys(record)

    # Older drafts called the description a problem statement
    if "description" not in record and "problem_statement" in record:
        record["description"] = record.pop("problem_statement")

    # Single assignee string became a list of assignees
    if not record.get("assignees") and record.get("assignee"):
        name = record["assignee"]
        record["assignees"] = [{"id": name, "name": name, "color": "purple"}]
    record.pop("assignee", None)

    return record


def _v1_to_v2(record: dict) -> dict:
    """Seed id_counters from the sequential ids already on the record."""
    if record.get("id_counters"):
        return record
    ids = []
    for collection in ("user_scenarios", "requirements", "success_criteria", "tasks"):
        ids.extend(item.get("id", "") for item in record.get(collection) or [])
    record["id_counters"] = seed_counters(ids)
    return record


MIGRATIONS = {
    0: _v0_to_v1,
    1: _v1_to_v2,
}


def _apply_defaults(record: dict) -> dict:
    for name in COLLECTION_FIELDS:
        if record.get(name) is None:
            record[name] = []
    for name in DERIVED_FIELDS:
        record.pop(name, None)

    # Scenarios saved before priorities existed are must-haves
    record["user_scenarios"] = [
        {"priority": "P1", **s} if isinstance(s, dict) else s
        for s in record["user_scenarios"]
    ]

    record.setdefault("number", 0)
    record.setdefault("title", "Untitled")
    record.setdefault("description", "")
    record.setdefault("status", "draft")
    record.setdefault("priority", "none")
    record.setdefault("spec", "")
    record.setdefault("research_required", False)
    record.setdefault("ai_generated", False)
    record.setdefault("spec_completion", 0)
    record.setdefault("id_counters", {})

    for text_field in ("description", "spec", "research", "data_model", "api_contract"):
        if record.get(text_field) is None and text_field in record:
            record[text_field] = ""
    return record


def migrate_record(record: dict, version: int) -> dict:
    """Bring one record from `version` up to SNAPSHOT_VERSION and validate it.

    Raises:
        MigrationError: If the record is not an object
        ValidationError: If the migrated record does not match the schema
    """
    if not isinstance(record, dict):
        raise MigrationError(f"Ticket record is {type(record).__name__}, expected object")

    migrated = dict(record)
    for step in range(version, SNAPSHOT_VERSION):
        migrated = MIGRATIONS[step](migrated)

    migrated = _apply_defaults(migrated)
    validate(migrated, "ticket")
    return migrated


def migrate_snapshot(document) -> list[dict]:
    """Migrate a decoded snapshot document to a list of current records.

    Accepts either a bare list (version 0) or a versioned object.
    """
    if isinstance(document, list):
        version, records = 0, document
    elif isinstance(document, dict) and isinstance(document.get("tickets"), list):
        version, records = document.get("version", 1), document["tickets"]
    else:
        raise MigrationError("Snapshot is neither a ticket list nor a versioned document")

    if not isinstance(version, int):
        raise MigrationError(f"Invalid snapshot version: {version!r}")
    if version > SNAPSHOT_VERSION:
        raise MigrationError(f"Snapshot version {version} is newer than supported {SNAPSHOT_VERSION}")

    if version < SNAPSHOT_VERSION:
        logger.info(f"[STORE] Migrating {len(records)} ticket(s) from snapshot v{version} to v{SNAPSHOT_VERSION}")

    migrated = []
    for index, record in enumerate(records):
        try:
            migrated.append(migrate_record(record, version))
        except ValidationError as e:
            ref = record.get("id") or f"#{index}"
            raise ValidationError(e.schema_name, f"ticket {ref}: {e.message}", e.path) from None
    return migrated
