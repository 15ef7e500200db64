"""API models for the orchestrator FastAPI server."""

from .approvals import ApprovalDecisionRequest, ApprovalResult, CancelAllRequest, CancelAllResponse
from .common import ErrorResponse
from .runs import RunRequest, RunStartedResponse, RunStatusResponse
from .servers import ServerHealthResponse
from .settings import ModeUpdateRequest, ToolApprovalSettings, WhitelistEntryModel

__all__ = [
    "ApprovalDecisionRequest",
    "ApprovalResult",
    "CancelAllRequest",
    "CancelAllResponse",
    "ErrorResponse",
    "RunRequest",
    "RunStartedResponse",
    "RunStatusResponse",
    "ServerHealthResponse",
    "ModeUpdateRequest",
    "ToolApprovalSettings",
    "WhitelistEntryModel",
]
