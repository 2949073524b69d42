"""Shared constants for SpecFlow."""

import re

# Ticket statuses in kanban column order
TICKET_STATUSES = ("draft", "in_review", "approved", "in_development", "completed")

STATUS_LABELS = {
    "draft": "Draft",
    "in_review": "In Review",
    "approved": "Approved",
    "in_development": "In Development",
    "completed": "Completed",
}

# Highest first; index is the sort rank used by the board view
PRIORITIES = ("urgent", "high", "medium", "low", "none")
PRIORITY_RANK = {p: i for i, p in enumerate(PRIORITIES)}

PRIORITY_LABELS = {
    "urgent": "Urgent",
    "high": "High",
    "medium": "Medium",
    "low": "Low",
    "none": "No priority",
}

SCENARIO_PRIORITIES = ("P1", "P2", "P3")
REQUIREMENT_TYPES = ("functional", "non_functional")
TASK_PHASES = ("setup", "core", "polish", "validation")
TASK_STATUSES = ("pending", "in_progress", "complete", "blocked")
CHECKPOINT_TYPES = ("verify", "decision")
CHAT_ROLES = ("assistant", "user")

LABEL_COLORS = ("gray", "red", "orange", "yellow", "green", "blue", "purple", "pink")

# Statuses from which the execution phase (tasks) is shown
EXECUTION_STATUSES = ("approved", "in_development", "completed")

# Draft spec text longer than this counts as content for the quality gate
SPEC_TEXT_MIN_LENGTH = 50

DUE_SOON_DAYS = 3

# Snapshot store keys
TICKETS_KEY = "specflow-tickets"
NEXT_NUMBER_KEY = "specflow-next-number"

# Ticket references accepted on the command line: SF-007, sf-7, 7
TICKET_REF_PATTERN = re.compile(r'^(?:sf-)?(\d+)$', re.IGNORECASE)
