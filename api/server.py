"""Main FastAPI server for the tool orchestrator."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Optional

# Logging is configured in main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agents.approval_gate import ApprovalGate
from agents.orchestrator import DEFAULT_SYSTEM_PROMPT, ToolOrchestrator
from agents.run_manager import RunManager
from agents.tool_control import ToolControlSettings
from client.openai_client import OpenAIClient
from common.step_sink import BroadcastStepSink
from config import (
    LLM_CONFIG,
    MCP_SERVERS_FILE,
    ORCHESTRATOR_CONFIG,
    SERVER_CONFIG,
    TOOL_APPROVAL_CONFIG,
)
from telemetry import init_telemetry
from tools.registry import build_registry, load_server_configs

from .models.common import ErrorResponse
from .routes.approvals import approvals_router
from .routes.runs import runs_router
from .routes.servers import servers_router
from .routes.settings import settings_router

logger = logging.getLogger(__name__)


async def build_orchestrator() -> ToolOrchestrator:
    """Wire up an orchestrator from config and start its MCP servers."""
    settings = ToolControlSettings.from_config(TOOL_APPROVAL_CONFIG)
    step_sink = BroadcastStepSink(max_queue_size=SERVER_CONFIG["step_queue_size"])
    approval_gate = ApprovalGate(
        step_sink=step_sink,
        wait_auto_approve_seconds=TOOL_APPROVAL_CONFIG["wait_auto_approve_seconds"],
        hard_timeout_seconds=TOOL_APPROVAL_CONFIG["hard_timeout_seconds"],
        enforce_wait_auto_approve=TOOL_APPROVAL_CONFIG["enforce_wait_auto_approve"],
    )

    registry = build_registry(load_server_configs(MCP_SERVERS_FILE))
    await registry.start_servers()

    llm = OpenAIClient(
        api_key=LLM_CONFIG["api_key"],
        default_model=LLM_CONFIG["model"],
        temperature=LLM_CONFIG["temperature"],
    )

    return ToolOrchestrator(
        llm=llm,
        registry=registry,
        approval_gate=approval_gate,
        settings=settings,
        step_sink=step_sink,
        default_system_prompt=ORCHESTRATOR_CONFIG["default_system_prompt"]
        or DEFAULT_SYSTEM_PROMPT,
    )


def create_app(orchestrator: Optional[ToolOrchestrator] = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        orchestrator: Pre-built orchestrator; when None one is built from config
            on startup and torn down on shutdown
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan context manager."""
        logger.info("🚀 Starting orchestrator server...")
        owns_orchestrator = orchestrator is None

        if owns_orchestrator:
            try:
                init_telemetry(service_name="tool-orchestrator-api")
                logger.info("✅ OpenTelemetry initialized")
            except Exception as e:
                logger.warning(f"⚠️ Failed to initialize telemetry: {e}")

            active = await build_orchestrator()
        else:
            active = orchestrator

        run_manager = RunManager(
            active, max_finished_runs=ORCHESTRATOR_CONFIG["max_finished_runs"]
        )

        # Store references for routes
        app.state.orchestrator = active
        app.state.run_manager = run_manager
        app.state.approval_gate = active.approval_gate
        app.state.tool_settings = active.settings
        app.state.step_sink = active.step_sink
        logger.info("✅ Orchestrator ready")

        try:
            yield
        finally:
            logger.info("🧹 Shutting down orchestrator...")
            active.approval_gate.cancel_all("shutdown")
            await run_manager.shutdown()
            if owns_orchestrator:
                await active.registry.stop_servers()
                await active.llm.close()
            logger.info("✅ Orchestrator shutdown complete")

    app = FastAPI(
        title="Tool Orchestrator API",
        description="HTTP API for tool-calling runs gated by human approval",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Add CORS middleware for the desktop UI
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add global exception handlers
    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle all unhandled exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        error = ErrorResponse(
            detail="An internal error occurred. Please try again later.",
            error_type=type(exc).__name__,
            path=str(request.url.path),
        )
        return JSONResponse(status_code=500, content=error.model_dump(mode="json"))

    # Include routers
    app.include_router(runs_router, prefix="/api", tags=["runs"])
    app.include_router(approvals_router, prefix="/api", tags=["approvals"])
    app.include_router(settings_router, prefix="/api", tags=["tool-approval"])
    app.include_router(servers_router, prefix="/api", tags=["mcp-servers"])

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check endpoint with detailed status."""
        health_status: dict[str, Any] = {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(),
            "components": {},
        }

        active = getattr(app.state, "orchestrator", None)
        if active is None:
            health_status["status"] = "degraded"
            health_status["components"]["orchestrator"] = {"status": "not_initialized"}
            return health_status

        health_status["components"]["orchestrator"] = {
            "status": "healthy",
            "llm": active.llm.name,
            "pending_approvals": active.approval_gate.pending_count,
            "approval_mode": active.settings.get_mode().value,
        }

        servers = [server.get_health_status() for server in active.registry.servers.values()]
        health_status["components"]["mcp_servers"] = {
            "status": "healthy" if all(s["is_running"] for s in servers) else "degraded",
            "count": len(servers),
            "servers": servers,
        }

        # Overall status
        if any(comp.get("status") != "healthy" for comp in health_status["components"].values()):
            health_status["status"] = "degraded"

        return health_status

    return app


# Create the application instance
app = create_app()
