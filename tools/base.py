"""Base classes for executable tools.

This module provides the foundation for every tool the orchestrator can call:
- ToolDefinition: the schema handed to the language model
- BaseTool: abstract base for all tools
- BaseCoreTool: base for in-process tools with Pydantic input schemas

Tools return MCP-shaped results: ``{"content": [{"type": "text", "text": ...}]}``.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from common.types import ToolOutputType

logger = logging.getLogger(__name__)


class ToolDefinition(BaseModel):
    """Tool schema that gets passed to LLMs."""

    name: str = Field(..., description="Qualified name of the tool")
    description: str = Field(..., description="What the tool does")
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON Schema describing the tool's input parameters",
    )


def text_result(text: str, is_error: bool = False) -> dict[str, Any]:
    """Build an MCP-shaped result holding a single text block."""
    result: dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


class BaseTool(ABC):
    """Abstract base class for all tools."""

    # Output type the orchestrator uses when feeding results back to the model
    output_type: ToolOutputType = ToolOutputType.CONTENT

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name, unqualified."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this tool does."""
        pass

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the tool's input."""
        return {"type": "object", "properties": {}}

    def get_definition(self, qualified_name: Optional[str] = None) -> ToolDefinition:
        """Get the schema handed to the LLM, optionally under a qualified name."""
        return ToolDefinition(
            name=qualified_name or self.name,
            description=self.description,
            input_schema=self.input_schema,
        )

    @abstractmethod
    async def execute(self, params: dict[str, Any], tool_call_id: str) -> dict[str, Any]:
        """Execute the tool with given parameters.

        Args:
            params: Tool parameters matching the input schema
            tool_call_id: ID of the tool call from the model

        Returns:
            MCP-shaped result dictionary
        """
        pass


class BaseCoreTool(BaseTool):
    """Base class for in-process tools with Pydantic schemas."""

    def __init__(self, name: str, description: str, input_model: type[BaseModel]):
        self._name = name
        self._description = description
        self.input_model = input_model

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def input_schema(self) -> dict[str, Any]:
        schema = self.input_model.model_json_schema()
        # Remove title if present (not needed for function calling)
        schema.pop("title", None)
        return schema

    async def execute(self, params: dict[str, Any], tool_call_id: str) -> dict[str, Any]:
        """Validate input, run the tool and wrap its output as text content."""
        try:
            validated_input = self.input_model(**params)
        except ValidationError as e:
            logger.warning(f"Invalid arguments for tool '{self.name}': {e}")
            return text_result(f"Invalid arguments for tool '{self.name}': {e}", is_error=True)

        output = await self._execute_impl(validated_input)
        if isinstance(output, BaseModel):
            return text_result(output.model_dump_json())
        if isinstance(output, str):
            return text_result(output)
        return text_result(json.dumps(output))

    @abstractmethod
    async def _execute_impl(self, input_data: Any) -> Any:
        """Tool-specific logic. Exceptions propagate to the caller."""
        pass
