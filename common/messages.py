"""Step events published by the orchestrator and approval decisions sent back to it."""

import time
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class StepType(str, Enum):
    """Types of orchestration steps."""

    START = "start"
    REASONING = "reasoning"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    TOOL_APPROVAL_REQUIRED = "tool_approval_required"
    TOOL_APPROVAL_RESOLVED = "tool_approval_resolved"
    TOOL_DENIED = "tool_denied"
    FINAL_RESULT = "final_result"


class StepEvent(BaseModel):
    """One orchestration step, carrying just enough to rebuild it externally."""

    type: StepType
    message: Optional[str] = None
    reasoning: Optional[str] = None
    tool_name: Optional[str] = None
    server_name: Optional[str] = None
    args: Optional[Any] = None
    result: Optional[Any] = None
    error: Optional[str] = None
    request_id: Optional[str] = None
    decision: Optional[str] = None  # Decision kind on tool_approval_resolved
    timestamp: int = Field(default_factory=now_ms)
    auto_approve_at: Optional[int] = None  # Epoch ms, UI countdown hint

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization, dropping unset fields."""
        return self.model_dump(mode="json", exclude_none=True)


# Approval decisions
class ApproveDecision(BaseModel):
    """Run the tool. With remember=True the tool skips approval from now on."""

    kind: Literal["approve"] = "approve"
    remember: bool = False


class DenyStopDecision(BaseModel):
    """Do not run the tool and end the whole run."""

    kind: Literal["deny_stop"] = "deny_stop"
    feedback: Optional[str] = None


class RequestChangesDecision(BaseModel):
    """Do not run the tool; send the feedback back to the model."""

    kind: Literal["request_changes"] = "request_changes"
    feedback: str = Field(..., min_length=1)


ToolApprovalDecision = Annotated[
    Union[ApproveDecision, DenyStopDecision, RequestChangesDecision],
    Field(discriminator="kind"),
]

_decision_adapter = TypeAdapter(ToolApprovalDecision)


def decision_from_dict(data: dict[str, Any]) -> ToolApprovalDecision:
    """Parse a decision payload such as ``{"kind": "approve"}``.

    Raises:
        pydantic.ValidationError: If the kind is unknown or fields are invalid
    """
    return _decision_adapter.validate_python(data)


# Helper functions for step creation
def create_start_step(message: str = "Start execute task") -> StepEvent:
    """Create the step that opens a run."""
    return StepEvent(type=StepType.START, message=message)


def create_reasoning_step(reasoning: str) -> StepEvent:
    """Create a reasoning step."""
    return StepEvent(type=StepType.REASONING, reasoning=reasoning)


def create_tool_call_step(tool_name: str, server_name: str, args: Any) -> StepEvent:
    """Create a step announcing a tool is about to run."""
    return StepEvent(
        type=StepType.TOOL_CALL, tool_name=tool_name, server_name=server_name, args=args
    )


def create_tool_result_step(
    tool_name: str,
    server_name: str,
    result: Any = None,
    error: Optional[str] = None,
) -> StepEvent:
    """Create a tool result step, successful or failed."""
    return StepEvent(
        type=StepType.TOOL_RESULT,
        tool_name=tool_name,
        server_name=server_name,
        result=result,
        error=error,
    )


def create_approval_required_step(
    request_id: str,
    tool_name: str,
    server_name: str,
    args: Any,
    auto_approve_at: Optional[int] = None,
) -> StepEvent:
    """Create a step asking observers for an approval decision."""
    return StepEvent(
        type=StepType.TOOL_APPROVAL_REQUIRED,
        request_id=request_id,
        tool_name=tool_name,
        server_name=server_name,
        args=args,
        auto_approve_at=auto_approve_at,
    )


def create_approval_resolved_step(
    request_id: str,
    tool_name: str,
    server_name: str,
    state: str,
    decision: Optional[str] = None,
) -> StepEvent:
    """Create a step telling observers an approval request is no longer pending."""
    return StepEvent(
        type=StepType.TOOL_APPROVAL_RESOLVED,
        request_id=request_id,
        tool_name=tool_name,
        server_name=server_name,
        message=f"Approval {state}",
        decision=decision,
    )


def create_tool_denied_step(
    tool_name: str, server_name: str, feedback: Optional[str] = None
) -> StepEvent:
    """Create a step recording that a tool call was denied."""
    message = f"Tool denied: {tool_name}"
    if feedback:
        message += f" - {feedback}"
    return StepEvent(
        type=StepType.TOOL_DENIED,
        tool_name=tool_name,
        server_name=server_name,
        message=message,
        error=feedback,
    )


def create_final_result_step(message: str = "Generate final result") -> StepEvent:
    """Create the step that closes a run."""
    return StepEvent(type=StepType.FINAL_RESULT, message=message)


def step_from_dict(data: dict[str, Any]) -> StepEvent:
    """Reconstruct a StepEvent from a dictionary.

    Raises:
        ValueError: If the step type is missing or unknown
    """
    step_type = data.get("type")
    if step_type is None:
        raise ValueError("Missing 'type' field in step data")
    if step_type not in {t.value for t in StepType}:
        raise ValueError(f"Unknown step type: {step_type}")
    return StepEvent(**data)
