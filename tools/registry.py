"""Tool registry that exposes core tools and MCP server tools under qualified names."""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from client.mcp_server import MCPServer, MCPServerConfig
from common.types import qualify_tool_name, sanitize_name, validate_server_name
from tools.base import BaseTool

logger = logging.getLogger(__name__)


class MCPServerTool(BaseTool):
    """A tool that lives on an MCP server.

    Calls are forwarded to the owning server, which returns the MCP result
    dictionary unchanged.
    """

    def __init__(self, server: MCPServer, definition: dict[str, Any]) -> None:
        self.server = server
        self._name = definition["name"]
        self._description = definition.get("description") or f"Tool {self._name}"
        self._input_schema = definition.get("input_schema") or {
            "type": "object",
            "properties": {},
        }

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def input_schema(self) -> dict[str, Any]:
        return self._input_schema

    async def execute(self, params: dict[str, Any], tool_call_id: str) -> dict[str, Any]:
        logger.info(f"Executing MCP tool {self.server.name}/{self.name} ({tool_call_id})")
        return await self.server.call_tool(self.name, params)


class ToolRegistry:
    """Resolves qualified tool names to executable tools.

    Tools are grouped by server. Each server contributes an optional whitelist
    of tools that run without approval.
    """

    def __init__(self) -> None:
        self.servers: dict[str, MCPServer] = {}
        # server name -> unqualified tool name -> tool
        self._tools: dict[str, dict[str, BaseTool]] = {}
        self._whitelist: set[str] = set()

    def register_tool(
        self, server_name: str, tool: BaseTool, whitelisted: bool = False
    ) -> str:
        """Register an in-process tool under a server name.

        Returns:
            The qualified name the tool is exposed under
        """
        validate_server_name(server_name)
        server_tools = self._tools.setdefault(server_name, {})
        if tool.name in server_tools:
            raise ValueError(f"Tool '{tool.name}' already registered on server '{server_name}'")

        server_tools[tool.name] = tool
        qualified_name = qualify_tool_name(server_name, tool.name)
        if whitelisted:
            self._whitelist.add(qualified_name)
        logger.debug(f"Registered tool: {qualified_name}")
        return qualified_name

    def add_server(self, server: MCPServer, tool_whitelist: Optional[list[str]] = None) -> None:
        """Register an MCP server. Its tools are picked up on collect_tools()."""
        validate_server_name(server.name)
        if server.name in self.servers or server.name in self._tools:
            raise ValueError(f"Server with name '{server.name}' already exists")

        self.servers[server.name] = server
        for tool_name in tool_whitelist or server.config.tool_whitelist:
            self._whitelist.add(qualify_tool_name(server.name, tool_name))
        logger.info(f"Added MCP server: {server.name}")

    async def start_servers(self) -> None:
        """Start every registered MCP server, logging the ones that fail."""
        for server in self.servers.values():
            try:
                await server.start()
            except Exception as e:
                logger.error(f"❌ MCP server '{server.name}' failed to start: {e}")

    async def stop_servers(self) -> None:
        """Stop every registered MCP server."""
        for server in self.servers.values():
            await server.stop()

    async def collect_tools(self, server_filter: Optional[list[str]] = None) -> dict[str, BaseTool]:
        """Collect all available tools keyed by qualified name.

        Args:
            server_filter: Only include tools from these servers; None means all

        Returns:
            Flat mapping of ``<server>__<tool>`` to tool
        """
        tools: dict[str, BaseTool] = {}

        for server_name, server_tools in self._tools.items():
            if server_filter is not None and server_name not in server_filter:
                continue
            for tool in server_tools.values():
                tools[qualify_tool_name(server_name, tool.name)] = tool

        for server_name, server in self.servers.items():
            if server_filter is not None and server_name not in server_filter:
                continue
            if not server.is_running:
                logger.warning(f"Skipping tools of MCP server '{server_name}': not running")
                continue
            for definition in server.get_tools():
                tool = MCPServerTool(server, definition)
                tools[qualify_tool_name(server_name, tool.name)] = tool

        logger.debug(f"Collected {len(tools)} tools")
        return tools

    def get_whitelist(self) -> set[str]:
        """Qualified names of tools that never require approval."""
        return set(self._whitelist)

    def resolve_server_name(self, prefix: str) -> str:
        """Map the sanitized server prefix of a qualified name back to the configured name."""
        for server_name in [*self._tools, *self.servers]:
            if sanitize_name(server_name) == prefix:
                return server_name
        return prefix


def load_server_configs(path: Union[str, Path]) -> list[MCPServerConfig]:
    """Load MCP server configurations from a JSON file holding a list of objects.

    A missing file means no servers.
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No MCP server config found at {path}")
        return []

    with open(path) as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValueError(f"MCP server config {path} must contain a JSON list")

    configs = [MCPServerConfig(**entry) for entry in data]
    logger.info(f"Loaded {len(configs)} MCP server configs from {path}")
    return configs


def build_registry(configs: list[MCPServerConfig]) -> ToolRegistry:
    """Create a registry holding one MCPServer per enabled config."""
    registry = ToolRegistry()
    for server_config in configs:
        if not server_config.enabled:
            logger.info(f"MCP server '{server_config.name}' disabled, skipping")
            continue
        registry.add_server(MCPServer(server_config))
    return registry
