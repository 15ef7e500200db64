"""Base client interface for tool-calling language models."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping, Optional

from common.types import ToolCall, ToolOutputType

if TYPE_CHECKING:
    from tools.base import BaseTool


class Role(str, Enum):
    """Message roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class FinishReason(str, Enum):
    """Why the model stopped generating a turn."""

    TOOL_CALLS = "tool-calls"
    STOP = "stop"
    CONTENT_FILTER = "content-filter"
    LENGTH = "length"
    ERROR = "error"
    OTHER = "other"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ToolOutput:
    """Output of a tool call as it is fed back to the model."""

    type: ToolOutputType
    value: Any

    @property
    def is_error(self) -> bool:
        return self.type in (ToolOutputType.ERROR_TEXT, ToolOutputType.ERROR_JSON)


@dataclass(frozen=True)
class Message:
    """Represents a message in a conversation.

    Messages are immutable; a conversation only ever grows by appending.
    """

    role: Role
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()  # For assistant tool calls
    tool_call_id: Optional[str] = None  # For tool messages
    tool_name: Optional[str] = None  # For tool messages
    output: Optional[ToolOutput] = None  # For tool messages

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: Optional[list[ToolCall]] = None) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tuple(tool_calls or ()))

    @classmethod
    def tool(cls, tool_call_id: str, tool_name: str, output: ToolOutput) -> "Message":
        return cls(
            role=Role.TOOL, tool_call_id=tool_call_id, tool_name=tool_name, output=output
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary format.

        Note: Each provider client should handle tool results in their own format.
        """
        base: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            base["tool_calls"] = [tc.model_dump() for tc in self.tool_calls]
        if self.role == Role.TOOL:
            base["tool_call_id"] = self.tool_call_id
            base["tool_name"] = self.tool_name
            if self.output is not None:
                base["output"] = {"type": self.output.type.value, "value": self.output.value}
        return base


@dataclass
class Usage:
    """Token usage information."""

    input_tokens: int
    output_tokens: int
    total_tokens: int


@dataclass
class TurnResponse:
    """One assistant turn returned by a language model."""

    finish_reason: str
    response_messages: list[Message] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)
    text: Optional[str] = None
    reasoning: Optional[str] = None
    usage: Optional[Usage] = None
    model: Optional[str] = None
    raw_response: Optional[Any] = None


class BaseClient(ABC):
    """Abstract base class for language models that can request tool calls."""

    @abstractmethod
    async def generate_turn(
        self, messages: list[Message], tools: Mapping[str, "BaseTool"]
    ) -> TurnResponse:
        """Generate one assistant turn.

        The client must not execute tools itself; it only reports which tool
        calls the model requested.

        Args:
            messages: Full conversation history
            tools: Available tools keyed by qualified name

        Returns:
            TurnResponse with the finish reason, any tool calls and the messages
            the model produced
        """
        pass

    async def close(self) -> None:
        """Close any open connections."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Client name."""
        pass
