"""Run-related API models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from agents.orchestrator import RunOutcome
from agents.run_manager import RunRecord, RunStatus


class RunRequest(BaseModel):
    """Request to start an orchestration run."""

    prompt: str = Field(..., min_length=1, description="Task for the model")
    video_url: Optional[str] = Field(default=None, description="URL of an uploaded video")
    system_prompt: Optional[str] = Field(default=None, description="Overrides the default")
    max_tool_iterations: Optional[int] = Field(default=None, ge=1)
    server_filter: Optional[list[str]] = Field(
        default=None, description="Only expose tools from these servers"
    )


class RunStartedResponse(BaseModel):
    """Response after a run has been started."""

    run_id: str
    status: RunStatus


class RunStatusResponse(BaseModel):
    """Status and, when finished, result of a run."""

    run_id: str
    status: RunStatus
    text: Optional[str] = None
    outcome: Optional[RunOutcome] = None
    iterations: Optional[int] = None
    error: Optional[str] = None
    created_at: datetime
    finished_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: RunRecord) -> "RunStatusResponse":
        result = record.result
        return cls(
            run_id=record.run_id,
            status=record.status,
            text=result.text if result else None,
            outcome=result.outcome if result else None,
            iterations=result.iterations if result else None,
            error=record.error,
            created_at=record.created_at,
            finished_at=record.finished_at,
        )
