"""MCP server API models."""

from typing import Optional

from pydantic import BaseModel


class ServerHealthResponse(BaseModel):
    """Result of a live health check against one MCP server."""

    name: str
    is_healthy: bool
    success_message: Optional[str] = None
    error: Optional[str] = None
