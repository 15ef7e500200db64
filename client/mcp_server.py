"""MCP Server management - spawns MCP server subprocesses and talks to them over stdio."""

import asyncio
import logging
import os
import time
from contextlib import AsyncExitStack
from typing import Any, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from pydantic import BaseModel, Field

from common.types import validate_server_name

logger = logging.getLogger(__name__)


class MCPServerConfig(BaseModel):
    """Configuration of one stdio MCP server."""

    name: str
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    cwd: Optional[str] = None
    description: Optional[str] = None
    # Unqualified names of tools on this server that never need approval
    tool_whitelist: list[str] = Field(default_factory=list)
    enabled: bool = True


class MCPServer:
    """
    Manages an MCP server subprocess lifecycle.

    Responsibilities:
    - Spawn the server subprocess and open a client session
    - Cache the server's tool list
    - Forward tool calls and return plain dictionaries
    """

    def __init__(self, config: MCPServerConfig):
        validate_server_name(config.name)
        self.config = config

        self.session: Optional[ClientSession] = None
        self.exit_stack = AsyncExitStack()
        self._initialized = False
        self._tools_cache: list[dict[str, Any]] = []
        self._last_health_check: float = 0

    @property
    def name(self) -> str:
        return self.config.name

    async def start(self) -> None:
        """Start the MCP server subprocess and establish connection."""
        if self._initialized:
            return

        env = os.environ.copy()
        env.update(self.config.env)
        server_params = StdioServerParameters(
            command=self.config.command, args=self.config.args, env=env, cwd=self.config.cwd
        )
        logger.info(
            f"Starting MCP server '{self.name}': {self.config.command} {' '.join(self.config.args)}"
        )

        try:
            stdio, write = await self.exit_stack.enter_async_context(stdio_client(server_params))
            session = await self.exit_stack.enter_async_context(ClientSession(stdio, write))
            await session.initialize()
            self.session = session

            response = await session.list_tools()
            self._tools_cache = [
                {
                    "name": tool.name,
                    "description": tool.description or f"Tool {tool.name} from {self.name}",
                    "input_schema": tool.inputSchema or {"type": "object", "properties": {}},
                }
                for tool in response.tools
            ]

            self._initialized = True
            self._last_health_check = time.time()
            logger.info(f"MCP server '{self.name}' started with {len(self._tools_cache)} tools")

        except Exception as e:
            logger.error(f"Failed to start MCP server '{self.name}': {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the MCP server and clean up resources."""
        logger.info(f"Stopping MCP server: {self.name}")

        try:
            await self.exit_stack.aclose()
        except Exception as e:
            # Async context issues - let resources clean up naturally
            logger.warning(f"MCP server cleanup issue (non-critical): {e}")

        self.exit_stack = AsyncExitStack()
        self.session = None
        self._initialized = False
        self._tools_cache = []

    async def call_tool(self, tool_name: str, parameters: dict[str, Any]) -> dict[str, Any]:
        """Call a tool on this MCP server and return the result as a dictionary."""
        if not self._initialized or not self.session:
            raise RuntimeError(f"MCP server '{self.name}' not started")

        logger.debug(f"Calling tool {tool_name} on server {self.name}")
        result = await self.session.call_tool(tool_name, parameters)
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)

    async def check_health(self) -> dict[str, Any]:
        """List tools as a liveness check."""
        if not self._initialized or not self.session:
            return {"is_healthy": False, "error": "Server not started"}

        try:
            response = await asyncio.wait_for(self.session.list_tools(), timeout=5.0)
        except Exception as e:
            logger.error(f"Health check failed for {self.name}: {e}")
            return {"is_healthy": False, "error": str(e)}

        self._last_health_check = time.time()
        count = len(response.tools)
        message = f"Healthy - {count} tools available" if count > 0 else "Healthy"
        return {"is_healthy": True, "success_message": message}

    def get_tools(self) -> list[dict[str, Any]]:
        """Get list of tools available on this server."""
        return self._tools_cache.copy()

    @property
    def is_running(self) -> bool:
        """Check if the server is running."""
        return self._initialized and self.session is not None

    def get_health_status(self) -> dict[str, Any]:
        """Get a snapshot of the server's status."""
        return {
            "name": self.name,
            "is_running": self.is_running,
            "tool_count": len(self._tools_cache),
            "last_health_check": self._last_health_check,
        }

    def __repr__(self) -> str:
        status = "running" if self.is_running else "stopped"
        return f"MCPServer({self.name}, {status}, {len(self._tools_cache)} tools)"
