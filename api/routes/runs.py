"""Run API routes: start runs, poll them, stream their steps."""

import asyncio
import json
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from agents.orchestrator import RunContext, RunOptions
from agents.run_manager import RunManager
from common.step_sink import BroadcastStepSink
from config import ORCHESTRATOR_CONFIG

from ..models.runs import RunRequest, RunStartedResponse, RunStatusResponse

logger = logging.getLogger(__name__)

runs_router = APIRouter()

KEEPALIVE_SECONDS = 15.0


def get_run_manager(request: Request) -> RunManager:
    """Get RunManager from app state."""
    run_manager = getattr(request.app.state, "run_manager", None)
    if run_manager is None:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")
    return run_manager  # type: ignore[no-any-return]


@runs_router.post("/runs", response_model=RunStartedResponse)
async def start_run(request: Request, run_request: RunRequest) -> RunStartedResponse:
    """Start an orchestration run in the background."""
    run_manager = get_run_manager(request)

    options = RunOptions(
        system_prompt=run_request.system_prompt,
        max_tool_iterations=run_request.max_tool_iterations
        or ORCHESTRATOR_CONFIG["max_tool_iterations"],
        server_filter=run_request.server_filter,
    )
    record = run_manager.start_run(
        run_request.prompt, RunContext(video_url=run_request.video_url), options
    )
    return RunStartedResponse(run_id=record.run_id, status=record.status)


@runs_router.get("/runs/{run_id}", response_model=RunStatusResponse)
async def get_run(request: Request, run_id: str) -> RunStatusResponse:
    """Get the status of a run and its result once finished."""
    record = get_run_manager(request).get_run(run_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return RunStatusResponse.from_record(record)


@runs_router.get("/steps/stream")
async def stream_steps(request: Request) -> StreamingResponse:
    """Stream step events of every run as server-sent events."""
    step_sink = getattr(request.app.state, "step_sink", None)
    if not isinstance(step_sink, BroadcastStepSink):
        raise HTTPException(status_code=503, detail="Step streaming not available")

    queue = step_sink.subscribe()

    async def generate_stream() -> AsyncGenerator[str, None]:
        try:
            while not await request.is_disconnected():
                try:
                    step = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield f"data: {json.dumps(step.to_dict())}\n\n"
        except asyncio.CancelledError:
            # Client disconnected - this is normal behavior
            logger.info("🔌 Client disconnected from step stream")
            raise
        finally:
            step_sink.unsubscribe(queue)

    return StreamingResponse(
        generate_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
