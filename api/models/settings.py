"""Tool approval settings API models."""

from datetime import datetime

from pydantic import BaseModel

from agents.tool_control import WhitelistEntry
from common.types import ToolApprovalMode


class WhitelistEntryModel(BaseModel):
    """A remembered tool."""

    id: str
    server_name: str
    tool_name: str
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: WhitelistEntry) -> "WhitelistEntryModel":
        return cls(
            id=entry.id,
            server_name=entry.server_name,
            tool_name=entry.tool_name,
            created_at=entry.created_at,
        )


class ToolApprovalSettings(BaseModel):
    """Current approval mode and whitelist."""

    mode: ToolApprovalMode
    whitelist: list[WhitelistEntryModel]
    wait_auto_approve_seconds: float
    hard_timeout_seconds: float


class ModeUpdateRequest(BaseModel):
    """Request to change the approval mode."""

    mode: ToolApprovalMode
