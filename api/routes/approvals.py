"""Approval API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from agents.approval_gate import ApprovalGate

from ..models.approvals import (
    ApprovalDecisionRequest,
    ApprovalResult,
    CancelAllRequest,
    CancelAllResponse,
)

logger = logging.getLogger(__name__)

approvals_router = APIRouter()


def get_approval_gate(request: Request) -> ApprovalGate:
    """Get ApprovalGate from app state."""
    gate = getattr(request.app.state, "approval_gate", None)
    if gate is None:
        raise HTTPException(status_code=503, detail="Approval gate not initialized")
    return gate  # type: ignore[no-any-return]


# Registered before /approvals/{request_id} so "cancel-all" is not taken for an id
@approvals_router.post("/approvals/cancel-all", response_model=CancelAllResponse)
async def cancel_all_approvals(
    request: Request, cancel_request: Optional[CancelAllRequest] = None
) -> CancelAllResponse:
    """Deny every pending approval, e.g. when the approval window closes."""
    reason = cancel_request.reason if cancel_request else "window_closed"
    cancelled = get_approval_gate(request).cancel_all(reason)
    return CancelAllResponse(cancelled=cancelled)


@approvals_router.post("/approvals/{request_id}", response_model=ApprovalResult)
async def resolve_approval(
    request: Request, request_id: str, decision: ApprovalDecisionRequest
) -> ApprovalResult:
    """Deliver a decision for a pending approval.

    Stale or unknown ids are not an error; they report success=False.
    """
    logger.info(f"🔧 Received decision for approval {request_id}: {decision.root.kind}")
    success = get_approval_gate(request).resolve(request_id, decision.root)
    return ApprovalResult(success=success)
