"""Approval-related API models."""

from pydantic import BaseModel, Field, RootModel

from common.messages import ToolApprovalDecision


class ApprovalDecisionRequest(RootModel[ToolApprovalDecision]):
    """Decision body, e.g. ``{"kind": "request_changes", "feedback": "..."}``."""


class ApprovalResult(BaseModel):
    """Whether the decision reached a pending request."""

    success: bool


class CancelAllRequest(BaseModel):
    """Request to deny every pending approval."""

    reason: str = Field(default="window_closed")


class CancelAllResponse(BaseModel):
    """How many pending approvals were denied."""

    cancelled: int
