"""OpenAI chat completions client with tool calling."""

import json
import logging
from typing import Any, Mapping, Optional

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from common.types import ToolCall, ToolOutputType
from tools.base import BaseTool

from .base_client import BaseClient, FinishReason, Message, Role, ToolOutput, TurnResponse, Usage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"

# OpenAI finish reasons -> loop vocabulary
_FINISH_REASONS = {
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
    "stop": FinishReason.STOP,
    "content_filter": FinishReason.CONTENT_FILTER,
    "length": FinishReason.LENGTH,
}


def _tool_output_to_text(output: Optional[ToolOutput]) -> str:
    """Flatten a tool output into the string content OpenAI expects."""
    if output is None:
        return ""
    value = output.value
    if output.type == ToolOutputType.CONTENT and isinstance(value, dict):
        blocks = value.get("content") or []
        texts = [block.get("text", "") for block in blocks if block.get("type") == "text"]
        if texts and len(texts) == len(blocks):
            return "\n".join(texts)
    if isinstance(value, str):
        return value
    return json.dumps(value)


class OpenAIClient(BaseClient):
    """OpenAI client for tool-calling turns."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: Optional[str] = None,
        temperature: float = 0.7,
        client: Optional[AsyncOpenAI] = None,
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key
            default_model: Default model to use (e.g., 'gpt-4o-mini')
            temperature: Sampling temperature
            client: Pre-built AsyncOpenAI client
        """
        self.api_key = api_key
        self.default_model = default_model or DEFAULT_MODEL
        self.temperature = temperature
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    def _message_to_openai_dict(self, msg: Message) -> dict[str, Any]:
        """Convert a single Message to OpenAI format."""
        if msg.role == Role.TOOL:
            return {
                "role": "tool",
                "tool_call_id": msg.tool_call_id,
                "content": _tool_output_to_text(msg.output),
            }

        if msg.role == Role.ASSISTANT and msg.tool_calls:
            return {
                "role": "assistant",
                "content": msg.content or None,
                "tool_calls": [
                    {
                        "id": tool_call.id,
                        "type": "function",
                        "function": {
                            "name": tool_call.name,
                            "arguments": json.dumps(tool_call.arguments),
                        },
                    }
                    for tool_call in msg.tool_calls
                ],
            }

        return {"role": msg.role.value, "content": msg.content}

    def _convert_tools(self, tools: Mapping[str, BaseTool]) -> list[dict[str, Any]]:
        openai_tools = []
        for qualified_name, tool in tools.items():
            definition = tool.get_definition(qualified_name)
            openai_tools.append(
                {
                    "type": "function",
                    "function": {
                        "name": definition.name,
                        "description": definition.description,
                        "parameters": definition.input_schema,
                    },
                }
            )
        return openai_tools

    def _parse_openai_response(self, response: ChatCompletion, model: str) -> TurnResponse:
        """Parse OpenAI response into a turn."""
        choice = response.choices[0]
        content = choice.message.content or ""

        tool_calls = []
        for tc in choice.message.tool_calls or []:
            function = getattr(tc, "function", None)
            if function is None:
                continue
            try:
                arguments = json.loads(function.arguments) if function.arguments else {}
            except json.JSONDecodeError:
                logger.warning(f"Malformed arguments for tool call {function.name}")
                arguments = {}
            tool_calls.append(ToolCall(id=tc.id, name=function.name, arguments=arguments))

        usage = None
        if response.usage:
            usage = Usage(
                input_tokens=response.usage.prompt_tokens,
                output_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        finish_reason = _FINISH_REASONS.get(choice.finish_reason or "", FinishReason.UNKNOWN)
        return TurnResponse(
            finish_reason=finish_reason.value,
            response_messages=[Message.assistant(content, tool_calls)],
            tool_calls=tool_calls,
            text=content,
            usage=usage,
            model=model,
            raw_response=response,
        )

    async def generate_turn(
        self, messages: list[Message], tools: Mapping[str, BaseTool]
    ) -> TurnResponse:
        request_params: dict[str, Any] = {
            "model": self.default_model,
            "messages": [self._message_to_openai_dict(msg) for msg in messages],
            "temperature": self.temperature,
        }
        if tools:
            request_params["tools"] = self._convert_tools(tools)

        logger.debug(f"OpenAI request: {len(messages)} messages, {len(tools)} tools")
        response = await self._get_client().chat.completions.create(**request_params)
        return self._parse_openai_response(response, self.default_model)

    async def close(self) -> None:
        """Close the client."""
        if self._client:
            await self._client.close()

    @property
    def name(self) -> str:
        """Client name."""
        return "OpenAI"
