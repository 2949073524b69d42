#!/usr/bin/env python3
"""SpecFlow CLI entrypoint."""

import sys
import argparse
import logging
from pathlib import Path

from specflow.lib.config import load_config
from specflow.lib.constants import PRIORITIES, REQUIREMENT_TYPES, SCENARIO_PRIORITIES, TICKET_STATUSES
from specflow.tickets.repository import TicketRepository
from specflow.tickets.storage import FileStore
from specflow.workflow.fsm import TRIGGERS
from specflow.commands import board as cmd_board_module
from specflow.commands import clarify as cmd_clarify_module
from specflow.commands import ingest as cmd_ingest_module
from specflow.commands import spec as cmd_spec_module
from specflow.commands import tasks as cmd_tasks_module
from specflow.commands import tickets as cmd_tickets_module


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='sf', description='SpecFlow ticket CLI')
    parser.add_argument('--data-dir', '-d', type=Path, help='Data directory (default $SPECFLOW_DATA_DIR or ~/.specflow)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # sf new
    p_new = subparsers.add_parser('new', help='Create ticket')
    p_new.add_argument('title', help='Ticket title')
    p_new.add_argument('--description', help='Problem statement')
    p_new.add_argument('--priority', '-p', choices=PRIORITIES, default='none')
    p_new.add_argument('--due', help='Due date (YYYY-MM-DD)')
    p_new.add_argument('--label', '-l', action='append', help='Label id (repeatable)')
    p_new.add_argument('--assignee', '-a', help='Assignee name')
    p_new.set_defaults(func=cmd_tickets_module.cmd_new)

    # sf list
    p_list = subparsers.add_parser('list', help='List tickets')
    p_list.add_argument('--status', '-s', action='append', choices=TICKET_STATUSES)
    p_list.add_argument('--priority', '-p', action='append', choices=PRIORITIES)
    p_list.add_argument('--assignee', '-a', help='Assignee id')
    p_list.add_argument('--label', '-l', action='append', help='Label id (repeatable)')
    p_list.add_argument('--search', help='Text to find in title or description')
    p_list.add_argument('--gate', '-g', help='Quality gate (e.g. ready_for_approval)')
    p_list.set_defaults(func=cmd_tickets_module.cmd_list)

    # sf board
    p_board = subparsers.add_parser('board', help='Show kanban board')
    p_board.add_argument('--assignee', '-a', help='Assignee id')
    p_board.add_argument('--label', '-l', action='append', help='Label id (repeatable)')
    p_board.add_argument('--search', help='Text to find in title or description')
    p_board.set_defaults(func=cmd_board_module.cmd_board)

    # sf show
    p_show = subparsers.add_parser('show', help='Show ticket details')
    p_show.add_argument('ticket', help='Ticket number (SF-001) or id')
    p_show.add_argument('--markdown', '-m', action='store_true', help='Render full ticket as markdown')
    p_show.set_defaults(func=cmd_tickets_module.cmd_show)

    # sf move
    p_move = subparsers.add_parser('move', help='Set ticket status directly')
    p_move.add_argument('ticket', help='Ticket number or id')
    p_move.add_argument('status', help=f"One of: {', '.join(TICKET_STATUSES)}")
    p_move.set_defaults(func=cmd_tickets_module.cmd_move)

    # sf advance
    p_advance = subparsers.add_parser('advance', help='Move ticket along the status flow')
    p_advance.add_argument('ticket', help='Ticket number or id')
    p_advance.add_argument('trigger', choices=TRIGGERS)
    p_advance.set_defaults(func=cmd_tickets_module.cmd_advance)

    # sf delete
    p_delete = subparsers.add_parser('delete', help='Permanently delete ticket')
    p_delete.add_argument('ticket', help='Ticket number or id')
    p_delete.add_argument('--confirm', action='store_true', required=True, help='Confirm deletion')
    p_delete.set_defaults(func=cmd_tickets_module.cmd_delete)

    # sf due
    p_due = subparsers.add_parser('due', help='Show overdue and due-soon tickets')
    p_due.set_defaults(func=cmd_board_module.cmd_due)

    # sf scenario
    p_scenario = subparsers.add_parser('scenario', help='Manage user scenarios')
    scenario_sub = p_scenario.add_subparsers(dest='scenario_cmd', required=True)

    # sf scenario add
    p_scenario_add = scenario_sub.add_parser('add', help='Add a Given/When/Then scenario')
    p_scenario_add.add_argument('ticket', help='Ticket number or id')
    p_scenario_add.add_argument('title', help='Scenario title')
    p_scenario_add.add_argument('--priority', '-p', choices=SCENARIO_PRIORITIES, default='P1')
    p_scenario_add.add_argument('--given')
    p_scenario_add.add_argument('--when')
    p_scenario_add.add_argument('--then')
    p_scenario_add.set_defaults(func=cmd_spec_module.cmd_scenario_add)

    # sf req
    p_req = subparsers.add_parser('req', help='Manage requirements')
    req_sub = p_req.add_subparsers(dest='req_cmd', required=True)

    # sf req add
    p_req_add = req_sub.add_parser('add', help='Add a requirement')
    p_req_add.add_argument('ticket', help='Ticket number or id')
    p_req_add.add_argument('description', help='Requirement text')
    p_req_add.add_argument('--type', '-t', choices=REQUIREMENT_TYPES, default='functional')
    p_req_add.add_argument('--needs-clarification', help='Open question about this requirement')
    p_req_add.set_defaults(func=cmd_spec_module.cmd_req_add)

    # sf req verify
    p_req_verify = req_sub.add_parser('verify', help='Mark requirement verified')
    p_req_verify.add_argument('ticket', help='Ticket number or id')
    p_req_verify.add_argument('requirement', help='Requirement ID (e.g., FR-001)')
    p_req_verify.add_argument('--undo', action='store_true', help='Mark not verified')
    p_req_verify.set_defaults(func=cmd_spec_module.cmd_req_verify)

    # sf clarify
    p_clarify = subparsers.add_parser('clarify', help='Manage clarifications')
    p_clarify.set_defaults(func=cmd_clarify_module.cmd_clarify_list)
    clarify_sub = p_clarify.add_subparsers(dest='clarify_cmd')

    # sf clarify list
    p_clarify_list = clarify_sub.add_parser('list', help='List open clarifications')
    p_clarify_list.add_argument('ticket', nargs='?', help='Ticket number or id (all tickets if omitted)')
    p_clarify_list.set_defaults(func=cmd_clarify_module.cmd_clarify_list)

    # sf clarify ask
    p_clarify_ask = clarify_sub.add_parser('ask', help='Record a question')
    p_clarify_ask.add_argument('ticket', help='Ticket number or id')
    p_clarify_ask.add_argument('question', help='The question')
    p_clarify_ask.add_argument('--context', '-c', help='Additional context')
    p_clarify_ask.set_defaults(func=cmd_clarify_module.cmd_clarify_ask)

    # sf clarify answer
    p_clarify_answer = clarify_sub.add_parser('answer', help='Answer a clarification')
    p_clarify_answer.add_argument('ticket', help='Ticket number or id')
    p_clarify_answer.add_argument('id', help='Clarification ID')
    p_clarify_answer.add_argument('--answer', '-a', help='Answer text (prompts if not provided)')
    p_clarify_answer.set_defaults(func=cmd_clarify_module.cmd_clarify_answer)

    # sf criteria
    p_criteria = subparsers.add_parser('criteria', help='Manage success criteria')
    criteria_sub = p_criteria.add_subparsers(dest='criteria_cmd', required=True)

    # sf criteria add
    p_criteria_add = criteria_sub.add_parser('add', help='Add a success criterion')
    p_criteria_add.add_argument('ticket', help='Ticket number or id')
    p_criteria_add.add_argument('description', help='What success looks like')
    p_criteria_add.add_argument('--metric', '-m', help='How it is measured')
    p_criteria_add.set_defaults(func=cmd_spec_module.cmd_criteria_add)

    # sf criteria toggle
    p_criteria_toggle = criteria_sub.add_parser('toggle', help='Toggle met / not met')
    p_criteria_toggle.add_argument('ticket', help='Ticket number or id')
    p_criteria_toggle.add_argument('criterion', help='Criterion ID (e.g., SC-001)')
    p_criteria_toggle.set_defaults(func=cmd_spec_module.cmd_criteria_toggle)

    # sf tasks
    p_tasks = subparsers.add_parser('tasks', help='Manage execution tasks')
    tasks_sub = p_tasks.add_subparsers(dest='tasks_cmd', required=True)

    # sf tasks list
    p_tasks_list = tasks_sub.add_parser('list', help='List tasks with progress')
    p_tasks_list.add_argument('ticket', help='Ticket number or id')
    p_tasks_list.set_defaults(func=cmd_tasks_module.cmd_tasks_list)

    # sf tasks generate
    p_tasks_generate = tasks_sub.add_parser('generate', help='Replace tasks from a JSON/YAML batch')
    p_tasks_generate.add_argument('ticket', help='Ticket number or id')
    p_tasks_generate.add_argument('file', help='Task batch file')
    p_tasks_generate.set_defaults(func=cmd_tasks_module.cmd_tasks_generate)

    # sf tasks status
    p_tasks_status = tasks_sub.add_parser('status', help='Set task status')
    p_tasks_status.add_argument('ticket', help='Ticket number or id')
    p_tasks_status.add_argument('task', help='Task ID (e.g., T001)')
    p_tasks_status.add_argument('status', help='pending, in_progress, complete or blocked')
    p_tasks_status.add_argument('--commit', help='Commit hash that completed the task')
    p_tasks_status.set_defaults(func=cmd_tasks_module.cmd_tasks_status)

    # sf ingest
    p_ingest = subparsers.add_parser('ingest', help='Create ticket from AI-generated spec')
    p_ingest.add_argument('file', help='Spec payload (.json, .yaml) or agent transcript')
    p_ingest.set_defaults(func=cmd_ingest_module.cmd_ingest)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.data_dir)
    except ValueError as e:
        print(f"ERROR: Invalid configuration: {e}")
        return 2

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(levelname)s %(name)s: %(message)s',
    )

    repo = TicketRepository(
        store=FileStore(config.data_dir),
        due_soon_days=config.due_soon_days,
    ).load()
    try:
        return args.func(args, repo, config)
    finally:
        repo.close()


if __name__ == '__main__':
    sys.exit(main())
