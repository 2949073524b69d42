"""
Data models for the ticket aggregate.

A Ticket owns every nested entity below it. Nothing here is shared between
tickets, and nothing outlives its ticket.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Optional

from specflow.lib.constants import EXECUTION_STATUSES
from specflow.workflow.gate import QualityGate, derive_gate


@dataclass
class UserScenario:
    """Given/When/Then acceptance criterion."""
    id: str                 # US1, US2
    priority: str           # P1 must have, P2 should have, P3 nice to have
    title: str
    given: str = ""
    when: str = ""
    then: str = ""


@dataclass
class Requirement:
    """A formally numbered requirement."""
    id: str                 # FR-001, NFR-001
    type: str               # functional, non_functional
    description: str
    clarification_needed: Optional[str] = None
    verified: bool = False


@dataclass
class Clarification:
    """An open question that blocks a ticket in review."""
    id: str                 # CLR-<ms timestamp>
    question: str
    context: Optional[str] = None
    resolved: bool = False
    answer: Optional[str] = None
    resolved_at: Optional[datetime] = None


@dataclass
class SuccessCriterion:
    id: str                 # SC-001
    description: str
    metric: Optional[str] = None
    met: bool = False


@dataclass
class TaskDraft:
    """A task as supplied by a caller, before the repository numbers it."""
    name: str
    phase: str = "core"     # setup, core, polish, validation
    action: str = ""
    verification: str = ""
    done: str = ""
    files: list[str] = field(default_factory=list)
    user_scenario_id: Optional[str] = None
    parallel: bool = False
    is_checkpoint: bool = False
    checkpoint_type: Optional[str] = None   # verify, decision
    checkpoint_resolved: Optional[bool] = None


@dataclass
class Task(TaskDraft):
    """An execution unit, visible once the ticket is approved."""
    id: str = ""            # T001
    status: str = "pending"  # pending, in_progress, complete, blocked
    commit_hash: Optional[str] = None

    @property
    def awaiting_verification(self) -> bool:
        return (
            self.is_checkpoint
            and self.checkpoint_type == "verify"
            and not self.checkpoint_resolved
        )

    @classmethod
    def from_draft(cls, draft: TaskDraft, task_id: str) -> "Task":
        values = {f.name: getattr(draft, f.name) for f in fields(TaskDraft)}
        values["files"] = list(draft.files)
        return cls(id=task_id, **values)


@dataclass
class Subtask:
    """Legacy checklist item, independent of Task."""
    id: str
    title: str
    completed: bool = False


@dataclass
class Label:
    id: str
    name: str
    color: str = "gray"


@dataclass(frozen=True)
class Comment:
    id: str
    author: str
    content: str
    timestamp: datetime


@dataclass
class Assignee:
    id: str
    name: str
    avatar: Optional[str] = None    # URL or initials
    color: Optional[str] = None


@dataclass
class ChatMessage:
    id: str
    role: str               # assistant, user
    content: str
    timestamp: datetime


@dataclass
class Ticket:
    """The aggregate root.

    `id` and `number` are assigned by the repository and never change.
    `quality_gate` is derived on read from the current field values.
    """
    id: str
    number: int
    created_at: datetime
    updated_at: datetime
    title: str = "Untitled"
    description: str = ""
    status: str = "draft"
    priority: str = "none"

    # Specification
    user_scenarios: list[UserScenario] = field(default_factory=list)
    requirements: list[Requirement] = field(default_factory=list)
    clarifications: list[Clarification] = field(default_factory=list)
    success_criteria: list[SuccessCriterion] = field(default_factory=list)
    spec: str = ""
    research: str = ""
    data_model: str = ""
    api_contract: str = ""

    # Execution
    tasks: list[Task] = field(default_factory=list)
    subtasks: list[Subtask] = field(default_factory=list)

    # Metadata
    chat_history: list[ChatMessage] = field(default_factory=list)
    labels: list[Label] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    assignees: list[Assignee] = field(default_factory=list)
    due_date: Optional[datetime] = None
    estimate: Optional[float] = None
    research_required: bool = False
    ai_generated: bool = False
    ai_question: Optional[str] = None
    spec_completion: int = 0

    # Next sequence value per id prefix (US, FR, NFR, SC, T)
    id_counters: dict[str, int] = field(default_factory=dict)

    @property
    def quality_gate(self) -> QualityGate:
        return derive_gate(self)

    @property
    def execution_unlocked(self) -> bool:
        return self.status in EXECUTION_STATUSES

    @property
    def open_clarifications(self) -> list[Clarification]:
        return [c for c in self.clarifications if not c.resolved]


# Fields a caller may never set through create() or update()
PROTECTED_FIELDS = frozenset({"id", "number", "created_at", "updated_at"})

TICKET_FIELDS = frozenset(f.name for f in fields(Ticket))


@dataclass
class TicketFilter:
    """Query over the ticket collection. Empty criteria match everything."""
    statuses: list[str] = field(default_factory=list)
    priorities: list[str] = field(default_factory=list)
    assignee: Optional[str] = None
    labels: list[str] = field(default_factory=list)
    search: str = ""

    def is_empty(self) -> bool:
        return not (self.statuses or self.priorities or self.assignee or self.labels or self.search)


@dataclass
class TaskProgress:
    completed: int
    total: int
    percent: int


DEFAULT_LABELS = [
    Label(id="bug", name="Bug", color="red"),
    Label(id="feature", name="Feature", color="purple"),
    Label(id="improvement", name="Improvement", color="blue"),
    Label(id="docs", name="Documentation", color="yellow"),
    Label(id="design", name="Design", color="pink"),
    Label(id="tech-debt", name="Tech Debt", color="orange"),
]
