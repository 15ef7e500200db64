"""Common types module."""

from .tools import (
    QUALIFIED_NAME_SEPARATOR,
    TOOL_ERROR_MESSAGES,
    ToolApprovalMode,
    ToolCall,
    ToolErrorType,
    ToolOutputType,
    qualify_tool_name,
    sanitize_name,
    split_qualified_name,
    validate_server_name,
)

__all__ = [
    "QUALIFIED_NAME_SEPARATOR",
    "TOOL_ERROR_MESSAGES",
    "ToolApprovalMode",
    "ToolCall",
    "ToolErrorType",
    "ToolOutputType",
    "qualify_tool_name",
    "sanitize_name",
    "split_qualified_name",
    "validate_server_name",
]
