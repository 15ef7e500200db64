"""Common shared modules across the orchestrator."""

from .messages import (
    ApproveDecision,
    DenyStopDecision,
    RequestChangesDecision,
    StepEvent,
    StepType,
    ToolApprovalDecision,
    create_approval_required_step,
    create_approval_resolved_step,
    create_final_result_step,
    create_reasoning_step,
    create_start_step,
    create_tool_call_step,
    create_tool_denied_step,
    create_tool_result_step,
    decision_from_dict,
    step_from_dict,
)
from .step_sink import BroadcastStepSink, CallbackStepSink, NullStepSink, StepSink
from .types import ToolApprovalMode, ToolCall

__all__ = [
    # Steps
    "StepType",
    "StepEvent",
    "step_from_dict",
    "create_start_step",
    "create_reasoning_step",
    "create_tool_call_step",
    "create_tool_result_step",
    "create_approval_required_step",
    "create_approval_resolved_step",
    "create_tool_denied_step",
    "create_final_result_step",
    # Decisions
    "ApproveDecision",
    "DenyStopDecision",
    "RequestChangesDecision",
    "ToolApprovalDecision",
    "decision_from_dict",
    # Sinks
    "StepSink",
    "NullStepSink",
    "CallbackStepSink",
    "BroadcastStepSink",
    # Types
    "ToolApprovalMode",
    "ToolCall",
]
