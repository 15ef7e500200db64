"""Tests for step events and approval decisions."""

import pytest
from pydantic import ValidationError

from common.messages import (
    ApproveDecision,
    DenyStopDecision,
    RequestChangesDecision,
    StepType,
    create_approval_required_step,
    create_tool_denied_step,
    create_tool_result_step,
    decision_from_dict,
    step_from_dict,
)


@pytest.mark.unit
class TestDecisions:
    """Test decision parsing."""

    def test_parse_each_kind(self) -> None:
        assert isinstance(decision_from_dict({"kind": "approve"}), ApproveDecision)
        assert decision_from_dict({"kind": "approve", "remember": True}).remember is True

        deny = decision_from_dict({"kind": "deny_stop"})
        assert isinstance(deny, DenyStopDecision)
        assert deny.feedback is None

        changes = decision_from_dict({"kind": "request_changes", "feedback": "Use bug label"})
        assert isinstance(changes, RequestChangesDecision)
        assert changes.feedback == "Use bug label"

    def test_request_changes_requires_feedback(self) -> None:
        with pytest.raises(ValidationError):
            decision_from_dict({"kind": "request_changes"})
        with pytest.raises(ValidationError):
            decision_from_dict({"kind": "request_changes", "feedback": ""})

    def test_unknown_kind_rejected(self) -> None:
        with pytest.raises(ValidationError):
            decision_from_dict({"kind": "maybe"})


@pytest.mark.unit
class TestSteps:
    """Test step construction and serialization."""

    def test_to_dict_drops_unset_fields(self) -> None:
        step = create_approval_required_step(
            request_id="req-1", tool_name="issue_write", server_name="GitHub", args={"a": 1}
        )
        data = step.to_dict()

        assert data["type"] == "tool_approval_required"
        assert data["request_id"] == "req-1"
        assert data["args"] == {"a": 1}
        assert isinstance(data["timestamp"], int)
        assert "auto_approve_at" not in data
        assert "error" not in data

    def test_denied_step_message_includes_feedback(self) -> None:
        step = create_tool_denied_step("issue_write", "GitHub", "too risky")
        assert step.message == "Tool denied: issue_write - too risky"
        assert step.error == "too risky"

        bare = create_tool_denied_step("issue_write", "GitHub")
        assert bare.message == "Tool denied: issue_write"
        assert bare.error is None

    def test_step_from_dict(self) -> None:
        original = create_tool_result_step("issue_write", "GitHub", result={"ok": True})
        restored = step_from_dict(original.to_dict())

        assert restored.type == StepType.TOOL_RESULT
        assert restored.result == {"ok": True}
        assert restored.timestamp == original.timestamp

    def test_step_from_dict_rejects_bad_type(self) -> None:
        with pytest.raises(ValueError, match="Missing"):
            step_from_dict({"message": "hi"})
        with pytest.raises(ValueError, match="Unknown step type"):
            step_from_dict({"type": "thinking"})
