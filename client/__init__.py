"""Client module for LLM and MCP server interactions."""

from .base_client import BaseClient, FinishReason, Message, Role, ToolOutput, TurnResponse, Usage
from .mcp_server import MCPServer, MCPServerConfig
from .openai_client import OpenAIClient

__all__ = [
    # Base classes
    "BaseClient",
    "Message",
    "Role",
    "FinishReason",
    "ToolOutput",
    "TurnResponse",
    "Usage",
    # Implementations
    "OpenAIClient",
    "MCPServer",
    "MCPServerConfig",
]
