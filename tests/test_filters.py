"""Tests for specflow.tickets.filters module."""

from datetime import datetime, timedelta

import pytest

from specflow.tickets import filters
from specflow.tickets.models import Assignee, DEFAULT_LABELS, TaskDraft, TicketFilter
from specflow.tickets.repository import TicketRepository

BUG, FEATURE = DEFAULT_LABELS[0], DEFAULT_LABELS[1]


@pytest.fixture
def board(repo):
    """A small board: login (bug, ada), export (feature), docs (completed)."""
    repo.create(
        title="Login fails",
        description="SSO redirect loops",
        status="in_review",
        priority="high",
        labels=[BUG],
        assignees=[Assignee(id="ada", name="Ada")],
    )
    repo.create(
        title="CSV export",
        priority="low",
        labels=[FEATURE],
        spec="Exports every visible column as UTF-8 with a header row.",
    )
    repo.create(title="Write docs", status="completed", priority="urgent")
    return repo


class TestFilter:
    def test_empty_filter_matches_all(self, board):
        assert len(filters.filter_tickets(board.all, TicketFilter())) == 3
        assert len(filters.filter_tickets(board.all, None)) == 3

    def test_status_set(self, board):
        result = filters.filter_tickets(board.all, TicketFilter(statuses=["in_review", "completed"]))
        assert [t.title for t in result] == ["Login fails", "Write docs"]

    def test_priority_set(self, board):
        result = filters.filter_tickets(board.all, TicketFilter(priorities=["low"]))
        assert [t.title for t in result] == ["CSV export"]

    def test_assignee(self, board):
        result = filters.filter_tickets(board.all, TicketFilter(assignee="ada"))
        assert [t.title for t in result] == ["Login fails"]

    def test_labels_intersect(self, board):
        result = filters.filter_tickets(board.all, TicketFilter(labels=["bug", "design"]))
        assert [t.title for t in result] == ["Login fails"]

    @pytest.mark.parametrize("search,expected", [
        ("LOGIN", ["Login fails"]),
        ("redirect", ["Login fails"]),
        ("utf-8", ["CSV export"]),
        ("sf-003", ["Write docs"]),
        ("nothing here", []),
    ])
    def test_search_fields(self, board, search, expected):
        result = filters.filter_tickets(board.all, TicketFilter(search=search))
        assert [t.title for t in result] == expected

    def test_criteria_are_anded(self, board):
        query = TicketFilter(priorities=["high", "low"], labels=["feature"])
        assert [t.title for t in filters.filter_tickets(board.all, query)] == ["CSV export"]

    def test_repository_filtered_view(self, board):
        board.set_filter(TicketFilter(search="csv"))
        assert [t.title for t in board.filtered] == ["CSV export"]


class TestGroupByStatus:
    def test_buckets_in_column_order(self, board):
        groups = board.by_status
        assert list(groups) == ["draft", "in_review", "approved", "in_development", "completed"]

    def test_partition_is_exhaustive_and_disjoint(self, board):
        groups = board.by_status
        seen = [t.id for bucket in groups.values() for t in bucket]
        assert sorted(seen) == sorted(t.id for t in board.all)
        for status, bucket in groups.items():
            assert all(t.status == status for t in bucket)

    def test_sorted_by_priority_stable(self, repo):
        low = repo.create(title="low", priority="low")
        first_high = repo.create(title="high 1", priority="high")
        none = repo.create(title="none")
        second_high = repo.create(title="high 2", priority="high")
        urgent = repo.create(title="urgent", priority="urgent")

        draft = repo.by_status["draft"]
        assert [t.id for t in draft] == [urgent.id, first_high.id, second_high.id, low.id, none.id]

    def test_respects_filter(self, board):
        board.set_filter(TicketFilter(labels=["bug"]))
        groups = board.by_status
        assert [t.title for t in groups["in_review"]] == ["Login fails"]
        assert groups["draft"] == []


class TestDueDates:
    @pytest.fixture
    def dated(self, store):
        now = datetime(2024, 3, 1, 12, 0, 0)
        repo = TicketRepository(store=store, clock=lambda: now).load()
        repo.create(title="yesterday", due_date=now - timedelta(days=1))
        repo.create(title="done late", due_date=now - timedelta(days=1), status="completed")
        repo.create(title="tomorrow", due_date=now + timedelta(days=1))
        repo.create(title="edge", due_date=now + timedelta(days=3))
        repo.create(title="next week", due_date=now + timedelta(days=7))
        repo.create(title="undated")
        return repo

    def test_overdue(self, dated):
        assert [t.title for t in dated.overdue] == ["yesterday"]

    def test_due_soon_inclusive(self, dated):
        assert [t.title for t in dated.due_soon] == ["tomorrow", "edge"]

    def test_due_soon_window_configurable(self, dated):
        now = datetime(2024, 3, 1, 12, 0, 0)
        result = filters.due_soon(dated.all, now, days=7)
        assert [t.title for t in result] == ["tomorrow", "edge", "next week"]


class TestTaskProgress:
    def test_no_tasks(self, repo):
        ticket = repo.create()
        assert repo.task_progress(ticket.id) is None

    def test_missing_ticket(self, repo):
        assert repo.task_progress("ticket_missing") is None

    def test_one_of_three_rounds_down(self, repo):
        ticket = repo.create()
        repo.generate_tasks_from_spec(ticket.id, [TaskDraft(name=n) for n in ("a", "b", "c")])
        repo.update_task_status(ticket.id, "T001", "complete")

        progress = repo.task_progress(ticket.id)
        assert (progress.completed, progress.total, progress.percent) == (1, 3, 33)

    def test_two_of_three_rounds_up(self, repo):
        ticket = repo.create()
        repo.generate_tasks_from_spec(ticket.id, [TaskDraft(name=n) for n in ("a", "b", "c")])
        repo.update_task_status(ticket.id, "T001", "complete")
        repo.update_task_status(ticket.id, "T002", "complete")
        assert repo.task_progress(ticket.id).percent == 67

    def test_half_rounds_up(self, repo):
        ticket = repo.create()
        repo.generate_tasks_from_spec(ticket.id, [TaskDraft(name=f"t{i}") for i in range(8)])
        repo.update_task_status(ticket.id, "T001", "complete")
        assert repo.task_progress(ticket.id).percent == 13
