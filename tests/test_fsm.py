"""Tests for specflow.workflow.fsm module."""

import logging

import pytest

from specflow.workflow.fsm import (
    STATES,
    TRANSITIONS,
    TRIGGER_FOR,
    TRIGGERS,
    StatusFlow,
    apply_trigger,
    available_triggers,
    next_statuses,
)


class TestFlowDefinition:
    """Tests for state and transition definitions."""

    def test_states_are_ticket_statuses(self):
        assert STATES == ["draft", "in_review", "approved", "in_development", "completed"]

    def test_every_transition_uses_known_states(self):
        for t in TRANSITIONS:
            assert t["source"] in STATES
            assert t["dest"] in STATES

    def test_trigger_names(self):
        assert TRIGGERS == sorted(["submit", "withdraw", "approve", "send_back", "start", "complete", "reopen"])

    def test_trigger_lookup(self):
        assert TRIGGER_FOR[("draft", "in_review")] == "submit"
        assert TRIGGER_FOR[("in_development", "completed")] == "complete"
        assert ("draft", "completed") not in TRIGGER_FOR


class TestStatusFlow:
    """Basic StatusFlow behaviour."""

    def test_initial_state(self):
        assert StatusFlow("approved").state == "approved"

    def test_unknown_status_defaults_to_draft(self, caplog):
        with caplog.at_level(logging.WARNING):
            flow = StatusFlow("archived", "SF-001")
        assert flow.state == "draft"
        assert "Unknown status 'archived'" in caplog.text

    def test_happy_path(self):
        flow = StatusFlow("draft")
        flow.submit()
        flow.approve()
        flow.start()
        flow.complete()
        assert flow.state == "completed"

    def test_no_auto_transitions(self):
        flow = StatusFlow("draft")
        assert not hasattr(flow, "to_completed")

    def test_can(self):
        flow = StatusFlow("in_review")
        assert flow.can("approve")
        assert flow.can("withdraw")
        assert not flow.can("start")

    def test_callback_receives_transition(self):
        seen = []
        flow = StatusFlow("approved", on_transition=lambda *args: seen.append(args))
        flow.start()
        assert seen == [("approved", "in_development", "start")]

    def test_transition_is_logged(self, caplog):
        with caplog.at_level(logging.INFO):
            flow = StatusFlow("completed", "SF-004")
            flow.reopen()
        assert "[STATUS] SF-004: completed -> in_development (reopen)" in caplog.text


class TestHelpers:
    def test_available_triggers(self):
        assert available_triggers("in_review") == ["withdraw", "approve"]
        assert available_triggers("bogus") == []

    def test_next_statuses(self):
        assert next_statuses("approved") == ["in_review", "in_development"]

    @pytest.mark.parametrize("status,trigger,expected", [
        ("draft", "submit", "in_review"),
        ("in_review", "withdraw", "draft"),
        ("in_review", "approve", "approved"),
        ("approved", "send_back", "in_review"),
        ("approved", "start", "in_development"),
        ("in_development", "complete", "completed"),
        ("completed", "reopen", "in_development"),
    ])
    def test_apply_trigger(self, status, trigger, expected):
        assert apply_trigger(status, trigger) == expected

    def test_apply_unavailable_trigger(self):
        assert apply_trigger("draft", "complete") is None

    def test_apply_unknown_trigger(self):
        assert apply_trigger("draft", "launch") is None
