"""Pytest configuration and fixtures for orchestrator tests."""

import asyncio
import uuid
from types import SimpleNamespace
from typing import Any, Callable, Mapping, Optional

import pytest
from dotenv import load_dotenv

from agents.approval_gate import ApprovalGate
from agents.orchestrator import ToolOrchestrator
from agents.tool_control import ToolControlSettings
from client.base_client import BaseClient, FinishReason, Message, TurnResponse
from common.messages import StepEvent, StepType
from common.step_sink import StepSink
from common.types import ToolApprovalMode, ToolCall
from tools.base import BaseTool, text_result
from tools.registry import ToolRegistry

# Load environment variables from .env file
load_dotenv()


class RecordingStepSink(StepSink):
    """Keeps every published step in order."""

    def __init__(self) -> None:
        self.steps: list[StepEvent] = []

    def publish(self, step: StepEvent) -> None:
        self.steps.append(step)

    def types(self) -> list[StepType]:
        return [step.type for step in self.steps]

    def of_type(self, step_type: StepType) -> list[StepEvent]:
        return [step for step in self.steps if step.type == step_type]


class RecordingTool(BaseTool):
    """Tool that records its calls and echoes its arguments back as text."""

    def __init__(self, name: str, error: Optional[Exception] = None) -> None:
        self._name = name
        self.error = error
        self.calls: list[dict[str, Any]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return f"Test tool {self._name}"

    async def execute(self, params: dict[str, Any], tool_call_id: str) -> dict[str, Any]:
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        return text_result(f"{self._name} ok")


class ScriptedLLM(BaseClient):
    """Returns pre-scripted turns and records the history it was shown."""

    def __init__(self, turns: list[TurnResponse]) -> None:
        self.turns = list(turns)
        self.histories: list[list[Message]] = []
        self.tool_names: list[list[str]] = []

    async def generate_turn(
        self, messages: list[Message], tools: Mapping[str, BaseTool]
    ) -> TurnResponse:
        self.histories.append(list(messages))
        self.tool_names.append(sorted(tools))
        if not self.turns:
            raise AssertionError("ScriptedLLM ran out of turns")
        return self.turns.pop(0)

    @property
    def name(self) -> str:
        return "scripted"


def tool_calls_turn(
    *calls: tuple[str, dict[str, Any]], reasoning: Optional[str] = None
) -> TurnResponse:
    """A turn requesting the given (qualified name, arguments) tool calls."""
    tool_calls = [
        ToolCall(id=f"call_{uuid.uuid4().hex[:8]}", name=name, arguments=arguments)
        for name, arguments in calls
    ]
    return TurnResponse(
        finish_reason=FinishReason.TOOL_CALLS.value,
        response_messages=[Message.assistant("", tool_calls)],
        tool_calls=tool_calls,
        reasoning=reasoning,
    )


def stop_turn(text: str) -> TurnResponse:
    """A final answer turn."""
    return TurnResponse(
        finish_reason=FinishReason.STOP.value,
        response_messages=[Message.assistant(text)],
        text=text,
    )


def finish_turn(finish_reason: str) -> TurnResponse:
    """A turn ending with an arbitrary finish reason and no tool calls."""
    return TurnResponse(finish_reason=finish_reason, response_messages=[Message.assistant("")])


@pytest.fixture
def turns() -> SimpleNamespace:
    """Builders for scripted model turns."""
    return SimpleNamespace(tool_calls=tool_calls_turn, stop=stop_turn, finish=finish_turn)


@pytest.fixture
def step_sink() -> RecordingStepSink:
    return RecordingStepSink()


@pytest.fixture
def tool_settings() -> ToolControlSettings:
    return ToolControlSettings(mode=ToolApprovalMode.ASK)


@pytest.fixture
def approval_gate(step_sink: RecordingStepSink) -> ApprovalGate:
    return ApprovalGate(step_sink=step_sink, hard_timeout_seconds=60.0)


@pytest.fixture
def github_tools() -> dict[str, RecordingTool]:
    return {
        "issue_write": RecordingTool("issue_write"),
        "issue_read": RecordingTool("issue_read"),
    }


@pytest.fixture
def registry(github_tools: dict[str, RecordingTool]) -> ToolRegistry:
    """Registry exposing GitHub__issue_write and GitHub__issue_read."""
    registry = ToolRegistry()
    for tool in github_tools.values():
        registry.register_tool("GitHub", tool)
    return registry


@pytest.fixture
def make_orchestrator(
    registry: ToolRegistry,
    approval_gate: ApprovalGate,
    tool_settings: ToolControlSettings,
    step_sink: RecordingStepSink,
) -> Callable[..., tuple[ToolOrchestrator, ScriptedLLM]]:
    """Build an orchestrator driven by a scripted model."""

    def _make(
        scripted_turns: list[TurnResponse], gate: Optional[ApprovalGate] = None
    ) -> tuple[ToolOrchestrator, ScriptedLLM]:
        llm = ScriptedLLM(scripted_turns)
        orchestrator = ToolOrchestrator(
            llm=llm,
            registry=registry,
            approval_gate=gate or approval_gate,
            settings=tool_settings,
            step_sink=step_sink,
        )
        return orchestrator, llm

    return _make


@pytest.fixture
def wait_for_approval(step_sink: RecordingStepSink) -> Callable[..., Any]:
    """Wait until the n-th approval request has been published and return its id."""

    async def _wait(count: int = 1, timeout: float = 2.0) -> str:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            requests = step_sink.of_type(StepType.TOOL_APPROVAL_REQUIRED)
            if len(requests) >= count:
                request_id = requests[count - 1].request_id
                assert request_id is not None
                return request_id
            if loop.time() > deadline:
                raise AssertionError(f"No approval request #{count} within {timeout}s")
            await asyncio.sleep(0.01)

    return _wait
