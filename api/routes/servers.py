"""MCP server API routes."""

import logging

from fastapi import APIRouter, HTTPException, Request

from ..models.servers import ServerHealthResponse

logger = logging.getLogger(__name__)

servers_router = APIRouter()


@servers_router.get("/mcp-servers/{server_name}/health", response_model=ServerHealthResponse)
async def check_server_health(request: Request, server_name: str) -> ServerHealthResponse:
    """Run a live health check against one configured MCP server."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")

    server = orchestrator.registry.servers.get(server_name)
    if server is None:
        raise HTTPException(status_code=404, detail=f"MCP server '{server_name}' not found")

    health = await server.check_health()
    if not health["is_healthy"]:
        logger.warning(f"MCP server '{server_name}' unhealthy: {health.get('error')}")
    return ServerHealthResponse(name=server_name, **health)
