"""Tool-calling orchestration with human approval."""

from agents.approval_gate import ApprovalGate, ApprovalState, PendingApproval
from agents.orchestrator import (
    DENIAL_MESSAGE,
    OrchestrationResult,
    RunContext,
    RunOptions,
    RunOutcome,
    ToolOrchestrator,
)
from agents.run_manager import RunManager, RunRecord, RunStatus
from agents.tool_control import ToolControlSettings, WhitelistEntry

__all__ = [
    "ApprovalGate",
    "ApprovalState",
    "PendingApproval",
    "ToolOrchestrator",
    "RunOptions",
    "RunContext",
    "RunOutcome",
    "OrchestrationResult",
    "DENIAL_MESSAGE",
    "RunManager",
    "RunRecord",
    "RunStatus",
    "ToolControlSettings",
    "WhitelistEntry",
]
