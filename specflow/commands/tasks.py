"""
sf tasks - Execution-phase task list for an approved ticket.
"""

from pathlib import Path

from specflow.commands.tickets import require_ticket
from specflow.ingest import load_payload_file, load_task_batch
from specflow.lib.config import SpecflowConfig
from specflow.lib.constants import TASK_STATUSES
from specflow.lib.validate import ValidationError
from specflow.tickets.ids import format_number
from specflow.tickets.repository import TicketRepository


def cmd_tasks_list(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """List a ticket's tasks with progress."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    if not ticket.execution_unlocked:
        print(f"{format_number(ticket.number)} is {ticket.status}; tasks open up once it is approved")
        return 0

    progress = repo.task_progress(ticket.id)
    if not progress:
        print(f"{format_number(ticket.number)} has no tasks")
        print(f"Generate with: sf tasks generate {format_number(ticket.number)} <file>")
        return 0

    print(f"Tasks for {format_number(ticket.number)}: {progress.completed}/{progress.total} ({progress.percent}%)")
    print("-" * 60)
    for task in ticket.tasks:
        marker = "P" if task.parallel else " "
        print(f"  {task.id:<6} {marker} {task.status:<12} {task.phase:<11} {task.name}")
        if task.awaiting_verification:
            print("         checkpoint: awaiting verification")
        if task.commit_hash:
            print(f"         commit: {task.commit_hash}")
    return 0


def cmd_tasks_generate(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Replace a ticket's tasks with a batch read from a JSON or YAML file."""
    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    path = Path(args.file)
    if path.suffix.lower() not in (".json", ".yaml", ".yml"):
        print(f"ERROR: Task batches must be .json or .yaml files: {path}")
        return 2

    try:
        items = load_payload_file(path)
        if isinstance(items, dict) and "tasks" in items:
            items = items["tasks"]
        drafts = load_task_batch(items)
    except ValidationError as e:
        print(f"ERROR: {e}")
        return 2

    updated = repo.generate_tasks_from_spec(ticket.id, drafts)
    print(f"Generated {len(updated.tasks)} task(s) for {format_number(ticket.number)}")
    if updated.tasks:
        print(f"  {updated.tasks[0].id} .. {updated.tasks[-1].id}")
    if not updated.execution_unlocked:
        print(f"Note: tasks stay hidden until {format_number(ticket.number)} is approved")
    return 0


def cmd_tasks_status(args, repo: TicketRepository, config: SpecflowConfig) -> int:
    """Set a task's status, optionally recording the commit that completed it."""
    if args.status not in TASK_STATUSES:
        print(f"ERROR: Unknown task status '{args.status}'. Valid: {', '.join(TASK_STATUSES)}")
        return 2

    ticket = require_ticket(repo, args.ticket)
    if not ticket:
        return 1

    if not any(t.id == args.task for t in ticket.tasks):
        print(f"ERROR: Task '{args.task}' not found in {format_number(ticket.number)}")
        return 1

    updated = repo.update_task_status(ticket.id, args.task, args.status, commit_hash=args.commit)
    task = next(t for t in updated.tasks if t.id == args.task)
    print(f"{task.id}: {task.status}" + (f" ({task.commit_hash})" if task.commit_hash else ""))

    progress = repo.task_progress(ticket.id)
    print(f"  Progress: {progress.completed}/{progress.total} ({progress.percent}%)")
    return 0
