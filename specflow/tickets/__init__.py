"""
Ticket domain for SpecFlow.

Tickets carry a structured specification (user scenarios, requirements,
clarifications, success criteria) that matures through quality gates before
the execution phase (tasks) opens up.
"""

from specflow.tickets.ids import format_number
from specflow.tickets.models import (
    Assignee,
    Clarification,
    Label,
    Requirement,
    SuccessCriterion,
    Task,
    TaskDraft,
    TaskProgress,
    Ticket,
    TicketFilter,
    UserScenario,
    DEFAULT_LABELS,
)
from specflow.tickets.repository import TicketRepository
from specflow.tickets.storage import FileStore, MemoryStore

__all__ = [
    "format_number",
    "Assignee",
    "Clarification",
    "Label",
    "Requirement",
    "SuccessCriterion",
    "Task",
    "TaskDraft",
    "TaskProgress",
    "Ticket",
    "TicketFilter",
    "UserScenario",
    "DEFAULT_LABELS",
    "TicketRepository",
    "FileStore",
    "MemoryStore",
]
