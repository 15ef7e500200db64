"""Tool-related types used throughout the system."""

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# Separator between server and tool in a qualified tool name
QUALIFIED_NAME_SEPARATOR = "__"

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
_VALID_SERVER_NAME = re.compile(r"^[a-zA-Z0-9 _-]+$")


class ToolApprovalMode(str, Enum):
    """How tool calls are gated before execution."""

    YOLO = "yolo"  # Never ask
    WAIT = "wait"  # Ask, UI counts down to an auto-approve hint
    ASK = "ask"  # Ask and wait for a human


class ToolOutputType(str, Enum):
    """Output types a tool result can carry back into the conversation."""

    TEXT = "text"
    JSON = "json"
    CONTENT = "content"
    ERROR_TEXT = "error-text"
    ERROR_JSON = "error-json"


class ToolErrorType(str, Enum):
    """Types of errors that can occur around tool execution."""

    EXECUTION_ERROR = "execution_error"
    NOT_FOUND = "not_found"
    CHANGES_REQUESTED = "changes_requested"


TOOL_ERROR_MESSAGES = {
    ToolErrorType.EXECUTION_ERROR: "Tool execution failed: {error}",
    ToolErrorType.NOT_FOUND: (
        "Tool '{tool_name}' not found. "
        "Available tools: {available_tools}. "
        "Cannot execute tool '{tool_name}'."
    ),
    ToolErrorType.CHANGES_REQUESTED: (
        "The user did not run tool '{tool_name}' and requested changes: {feedback}"
    ),
}


class ToolCall(BaseModel):
    """Represents a tool call request from the LLM.

    The name is qualified as ``<server>__<tool>`` so identically named tools
    from different servers stay distinct.
    """

    id: str = Field(..., description="Unique identifier for this tool call")
    name: str = Field(..., description="Qualified name of the tool to execute")
    arguments: dict[str, Any] = Field(
        default_factory=dict,
        description="Arguments to pass to the tool as a JSON-compatible dictionary",
    )

    @property
    def server_name(self) -> str:
        return split_qualified_name(self.name)[0]

    @property
    def tool_name(self) -> str:
        return split_qualified_name(self.name)[1]


def sanitize_name(name: str) -> str:
    """Replace characters that are not allowed in tool names with underscores."""
    return _UNSAFE_NAME_CHARS.sub("_", name)


def validate_server_name(name: str) -> None:
    """Raise ValueError if a server name is empty or has invalid characters."""
    if not name or not name.strip():
        raise ValueError("Server name cannot be empty")
    if not _VALID_SERVER_NAME.match(name):
        raise ValueError(
            f"Server name '{name}' contains invalid characters. Only letters, numbers, "
            "spaces, underscores, and hyphens are allowed."
        )


def qualify_tool_name(server_name: str, tool_name: str) -> str:
    """Build the ``<server>__<tool>`` name the LLM sees."""
    return f"{sanitize_name(server_name)}{QUALIFIED_NAME_SEPARATOR}{sanitize_name(tool_name)}"


def split_qualified_name(qualified_name: str) -> tuple[str, str]:
    """Split a qualified tool name into (server, tool).

    Names without a separator belong to no server and come back as ("", name).
    """
    server, sep, tool = qualified_name.partition(QUALIFIED_NAME_SEPARATOR)
    if not sep:
        return "", qualified_name
    return server, tool
