"""Tool approval settings API routes."""

import logging

from fastapi import APIRouter, HTTPException, Request

from agents.approval_gate import ApprovalGate
from agents.tool_control import ToolControlSettings

from ..models.settings import ModeUpdateRequest, ToolApprovalSettings, WhitelistEntryModel

logger = logging.getLogger(__name__)

settings_router = APIRouter()


def get_tool_settings(request: Request) -> ToolControlSettings:
    """Get ToolControlSettings from app state."""
    settings = getattr(request.app.state, "tool_settings", None)
    if settings is None:
        raise HTTPException(status_code=503, detail="Tool settings not initialized")
    return settings  # type: ignore[no-any-return]


def _snapshot(request: Request) -> ToolApprovalSettings:
    settings = get_tool_settings(request)
    gate: ApprovalGate = request.app.state.approval_gate
    return ToolApprovalSettings(
        mode=settings.get_mode(),
        whitelist=[WhitelistEntryModel.from_entry(e) for e in settings.list_whitelist()],
        wait_auto_approve_seconds=gate.wait_auto_approve_seconds,
        hard_timeout_seconds=gate.hard_timeout_seconds,
    )


@settings_router.get("/tool-approval/settings", response_model=ToolApprovalSettings)
async def get_settings(request: Request) -> ToolApprovalSettings:
    """Get the approval mode and remembered tools."""
    return _snapshot(request)


@settings_router.put("/tool-approval/mode", response_model=ToolApprovalSettings)
async def update_mode(request: Request, update: ModeUpdateRequest) -> ToolApprovalSettings:
    """Change the approval mode. Running runs pick it up on their next turn."""
    get_tool_settings(request).set_mode(update.mode)
    return _snapshot(request)


@settings_router.delete("/tool-approval/whitelist/{entry_id}", response_model=ToolApprovalSettings)
async def remove_whitelist_entry(request: Request, entry_id: str) -> ToolApprovalSettings:
    """Forget a remembered tool."""
    if not get_tool_settings(request).remove_whitelist_entry(entry_id):
        raise HTTPException(status_code=404, detail=f"Whitelist entry {entry_id} not found")
    return _snapshot(request)
