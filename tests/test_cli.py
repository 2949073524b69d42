"""Tests for the sf command line."""

import json

import pytest

from specflow.cli import main
from specflow.tickets.repository import TicketRepository
from specflow.tickets.storage import FileStore


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    for key in ("SPECFLOW_DATA_DIR", "SPECFLOW_LOG_LEVEL", "SPECFLOW_DUE_SOON_DAYS"):
        monkeypatch.delenv(key, raising=False)
    return tmp_path / "data"


def sf(data_dir, *args):
    return main(["--data-dir", str(data_dir), *args])


def load(data_dir):
    return TicketRepository(store=FileStore(data_dir)).load()


class TestTicketCommands:
    def test_new_and_list(self, data_dir, capsys):
        assert sf(data_dir, "new", "Login fails", "--priority", "high", "--label", "bug") == 0
        assert "Created SF-001: Login fails" in capsys.readouterr().out

        assert sf(data_dir, "list") == 0
        out = capsys.readouterr().out
        assert "SF-001" in out
        assert "spec_incomplete" in out
        assert "1 ticket(s)" in out

    def test_new_unknown_label(self, data_dir, capsys):
        assert sf(data_dir, "new", "Login", "--label", "urgent-ish") == 2
        assert "Unknown label" in capsys.readouterr().out
        assert load(data_dir).all == []

    def test_new_bad_due_date(self, data_dir, capsys):
        assert sf(data_dir, "new", "Login", "--due", "next tuesday") == 2

    def test_list_filters(self, data_dir, capsys):
        sf(data_dir, "new", "Login")
        sf(data_dir, "new", "Export", "--priority", "low")
        capsys.readouterr()

        assert sf(data_dir, "list", "--priority", "low") == 0
        out = capsys.readouterr().out
        assert "Export" in out
        assert "Login" not in out

    def test_list_by_gate(self, data_dir, capsys):
        sf(data_dir, "new", "Login")
        capsys.readouterr()

        assert sf(data_dir, "list", "--gate", "spec_complete") == 0
        assert "No tickets match the filter" in capsys.readouterr().out
        assert sf(data_dir, "list", "--gate", "bogus") == 2

    def test_show_not_found(self, data_dir, capsys):
        assert sf(data_dir, "show", "SF-404") == 1
        assert "ERROR: Ticket 'SF-404' not found" in capsys.readouterr().out

    def test_show(self, data_dir, capsys):
        sf(data_dir, "new", "Login")
        capsys.readouterr()

        assert sf(data_dir, "show", "SF-001") == 0
        out = capsys.readouterr().out
        assert "Ticket: SF-001 Login" in out
        assert "submit     -> in_review" in out

    def test_show_markdown(self, data_dir, capsys):
        sf(data_dir, "new", "Login")
        capsys.readouterr()

        assert sf(data_dir, "show", "1", "--markdown") == 0
        assert capsys.readouterr().out.startswith("# SF-001: Login")

    def test_move_and_advance(self, data_dir, capsys):
        sf(data_dir, "new", "Login")
        assert sf(data_dir, "advance", "SF-001", "submit") == 0
        assert sf(data_dir, "move", "SF-001", "approved") == 0
        assert "in_review -> approved (approve)" in capsys.readouterr().out

        assert sf(data_dir, "advance", "SF-001", "complete") == 2
        assert "Available: send_back, start" in capsys.readouterr().out
        assert load(data_dir).find("SF-001").status == "approved"

    def test_move_unknown_status(self, data_dir):
        sf(data_dir, "new", "Login")
        assert sf(data_dir, "move", "SF-001", "shipped") == 2

    def test_delete(self, data_dir):
        sf(data_dir, "new", "Login")
        assert sf(data_dir, "delete", "SF-001", "--confirm") == 0
        assert load(data_dir).all == []
        assert sf(data_dir, "delete", "SF-001", "--confirm") == 1


class TestBoardCommands:
    def test_board(self, data_dir, capsys):
        sf(data_dir, "new", "Low one", "--priority", "low")
        sf(data_dir, "new", "Urgent one", "--priority", "urgent")
        capsys.readouterr()

        assert sf(data_dir, "board") == 0
        out = capsys.readouterr().out
        assert "Draft (2)" in out
        assert out.index("Urgent one") < out.index("Low one")
        assert "Completed (0)" in out

    def test_due_empty(self, data_dir, capsys):
        assert sf(data_dir, "due") == 0
        assert "Nothing overdue or due soon" in capsys.readouterr().out

    def test_due_overdue(self, data_dir, capsys):
        sf(data_dir, "new", "Late", "--due", "2000-01-01")
        capsys.readouterr()
        assert sf(data_dir, "due") == 0
        assert "Overdue (1)" in capsys.readouterr().out


class TestSpecCommands:
    def test_scenario_req_criteria(self, data_dir, capsys):
        sf(data_dir, "new", "Login")
        assert sf(data_dir, "scenario", "add", "SF-001", "Sign in", "--given", "a user") == 0
        assert sf(data_dir, "req", "add", "SF-001", "Support SSO", "--type", "non_functional") == 0
        assert sf(data_dir, "req", "verify", "SF-001", "NFR-001") == 0
        assert sf(data_dir, "criteria", "add", "SF-001", "Sign-in works", "--metric", "99%") == 0
        assert sf(data_dir, "criteria", "toggle", "SF-001", "SC-001") == 0

        ticket = load(data_dir).find("SF-001")
        assert ticket.user_scenarios[0].id == "US1"
        assert ticket.requirements[0].verified is True
        assert ticket.success_criteria[0].met is True
        assert ticket.quality_gate.value == "spec_complete"

    def test_nested_not_found(self, data_dir, capsys):
        sf(data_dir, "new", "Login")
        assert sf(data_dir, "req", "verify", "SF-001", "FR-404") == 1
        assert sf(data_dir, "criteria", "toggle", "SF-001", "SC-404") == 1


class TestClarifyCommands:
    def test_ask_list_answer(self, data_dir, capsys):
        sf(data_dir, "new", "Login")
        sf(data_dir, "move", "SF-001", "in_review")
        assert sf(data_dir, "clarify", "ask", "SF-001", "Which SSO provider?") == 0
        clr_id = load(data_dir).find("SF-001").clarifications[0].id
        capsys.readouterr()

        assert sf(data_dir, "clarify") == 0
        assert clr_id in capsys.readouterr().out

        assert sf(data_dir, "clarify", "answer", "SF-001", clr_id, "--answer", "Okta") == 0
        out = capsys.readouterr().out
        assert "SF-001 has no open clarifications" in out
        assert "ready_for_approval" in out

    def test_answer_prompts(self, data_dir, capsys, monkeypatch):
        sf(data_dir, "new", "Login")
        sf(data_dir, "clarify", "ask", "SF-001", "Which SSO provider?")
        clr_id = load(data_dir).find("SF-001").clarifications[0].id

        monkeypatch.setattr("builtins.input", lambda prompt: "Okta")
        assert sf(data_dir, "clarify", "answer", "SF-001", clr_id) == 0
        assert load(data_dir).find("SF-001").clarifications[0].answer == "Okta"

    def test_empty_answer(self, data_dir, monkeypatch):
        sf(data_dir, "new", "Login")
        sf(data_dir, "clarify", "ask", "SF-001", "Which SSO provider?")
        clr_id = load(data_dir).find("SF-001").clarifications[0].id

        monkeypatch.setattr("builtins.input", lambda prompt: "   ")
        assert sf(data_dir, "clarify", "answer", "SF-001", clr_id) == 2

    def test_unknown_clarification(self, data_dir):
        sf(data_dir, "new", "Login")
        assert sf(data_dir, "clarify", "answer", "SF-001", "CLR-1", "--answer", "x") == 1


class TestTaskCommands:
    @pytest.fixture
    def batch(self, tmp_path):
        path = tmp_path / "tasks.json"
        path.write_text(json.dumps([
            {"name": "Scaffold", "phase": "setup"},
            {"name": "Build", "parallel": True},
            {"name": "Check UI", "phase": "validation", "isCheckpoint": True, "checkpointType": "verify"},
        ]))
        return path

    def test_generate_list_status(self, data_dir, batch, capsys):
        sf(data_dir, "new", "Login")
        sf(data_dir, "move", "SF-001", "approved")
        assert sf(data_dir, "tasks", "generate", "SF-001", str(batch)) == 0
        assert "T001 .. T003" in capsys.readouterr().out

        assert sf(data_dir, "tasks", "status", "SF-001", "T001", "complete", "--commit", "abc123") == 0
        assert "Progress: 1/3 (33%)" in capsys.readouterr().out

        assert sf(data_dir, "tasks", "list", "SF-001") == 0
        out = capsys.readouterr().out
        assert "1/3 (33%)" in out
        assert "commit: abc123" in out
        assert "awaiting verification" in out

    def test_list_before_approval(self, data_dir, capsys):
        sf(data_dir, "new", "Login")
        capsys.readouterr()
        assert sf(data_dir, "tasks", "list", "SF-001") == 0
        assert "tasks open up once it is approved" in capsys.readouterr().out

    def test_generate_invalid_batch(self, data_dir, tmp_path, capsys):
        sf(data_dir, "new", "Login")
        path = tmp_path / "tasks.yaml"
        path.write_text("- phase: setup\n")
        assert sf(data_dir, "tasks", "generate", "SF-001", str(path)) == 2
        assert "ERROR: [task_batch]" in capsys.readouterr().out

    def test_status_unknown_task(self, data_dir, batch):
        sf(data_dir, "new", "Login")
        sf(data_dir, "tasks", "generate", "SF-001", str(batch))
        assert sf(data_dir, "tasks", "status", "SF-001", "T404", "complete") == 1
        assert sf(data_dir, "tasks", "status", "SF-001", "T001", "done") == 2


class TestIngestCommand:
    def test_ingest_json(self, data_dir, tmp_path, capsys):
        path = tmp_path / "spec.json"
        path.write_text(json.dumps({
            "title": "CSV export",
            "priority": "high",
            "userScenarios": [{"title": "Export board"}],
            "requirements": [{"description": "All columns"}],
        }))
        assert sf(data_dir, "ingest", str(path)) == 0
        out = capsys.readouterr().out
        assert "Created SF-001: CSV export" in out
        assert "spec_complete" in out

        ticket = load(data_dir).find("SF-001")
        assert ticket.ai_generated is True
        assert ticket.requirements[0].id == "FR-001"

    def test_ingest_invalid(self, data_dir, tmp_path, capsys):
        path = tmp_path / "spec.json"
        path.write_text(json.dumps({"summary": "no title"}))
        assert sf(data_dir, "ingest", str(path)) == 2
        assert "ERROR: [spec_payload]" in capsys.readouterr().out


class TestConfigErrors:
    def test_bad_env_file(self, data_dir, capsys):
        data_dir.mkdir(parents=True)
        (data_dir / "specflow.env").write_text("SPECFLOW_LOG_LEVEL=$(whoami)\n")
        assert sf(data_dir, "list") == 2
        assert "Invalid configuration" in capsys.readouterr().out
