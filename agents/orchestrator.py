"""Tool-calling orchestration loop with a human approval gate.

A run alternates between model turns and tool execution until the model stops,
a tool call is denied, or the iteration cap is hit. Every tool call that is not
whitelisted goes through the ApprovalGate unless the mode is yolo.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from opentelemetry import trace

from agents.approval_gate import ApprovalGate
from agents.tool_control import ToolControlSettings
from client.base_client import (
    BaseClient,
    FinishReason,
    Message,
    Role,
    ToolOutput,
    TurnResponse,
)
from common.messages import (
    ApproveDecision,
    DenyStopDecision,
    RequestChangesDecision,
    create_final_result_step,
    create_reasoning_step,
    create_start_step,
    create_tool_call_step,
    create_tool_denied_step,
    create_tool_result_step,
)
from common.step_sink import NullStepSink, StepSink
from common.types import (
    TOOL_ERROR_MESSAGES,
    ToolApprovalMode,
    ToolCall,
    ToolErrorType,
    ToolOutputType,
)
from tools.base import BaseTool
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ITERATIONS = 20

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI that can call tools. Use the provided tools to satisfy the user "
    "request. When you have the final answer, respond normally so the session can end."
)

DENIAL_MESSAGE = "Tool execution cancelled by user"
CONTENT_FILTERED_MESSAGE = (
    "The response was blocked by the model's content filter. Please rephrase the request."
)
LENGTH_LIMITED_MESSAGE = (
    "The response was cut off because the model reached its output length limit."
)


class RunOutcome(str, Enum):
    """How a run ended."""

    COMPLETED = "completed"
    DENIED = "denied"
    CONTENT_FILTERED = "content_filtered"
    LENGTH_LIMITED = "length_limited"
    ITERATION_LIMIT = "iteration_limit"
    UNKNOWN_FINISH = "unknown_finish"


@dataclass
class RunOptions:
    """Per-run knobs."""

    system_prompt: Optional[str] = None
    max_tool_iterations: int = DEFAULT_MAX_TOOL_ITERATIONS
    server_filter: Optional[list[str]] = None  # None means every server


@dataclass
class RunContext:
    """Extra task context folded into the system prompt."""

    video_url: Optional[str] = None


@dataclass
class OrchestrationResult:
    """Final text of a run plus the full transcript."""

    text: Optional[str]
    outcome: RunOutcome
    transcript: list[Message] = field(default_factory=list)
    iterations: int = 0


class _RunStopped(Exception):
    """Raised inside a run when a tool call is denied."""

    def __init__(self, feedback: Optional[str] = None) -> None:
        super().__init__(feedback or DENIAL_MESSAGE)
        self.feedback = feedback


class ToolOrchestrator:
    """Drives a language model through tool calls, gating them on approval."""

    def __init__(
        self,
        llm: BaseClient,
        registry: ToolRegistry,
        approval_gate: ApprovalGate,
        settings: ToolControlSettings,
        step_sink: Optional[StepSink] = None,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self.llm = llm
        self.registry = registry
        self.approval_gate = approval_gate
        self.settings = settings
        self.step_sink = step_sink or NullStepSink()
        self.default_system_prompt = default_system_prompt
        self.tracer = trace.get_tracer(__name__)

    def build_system_prompt(
        self, options: RunOptions, context: Optional[RunContext] = None
    ) -> str:
        system_prompt = options.system_prompt or self.default_system_prompt
        if context and context.video_url:
            system_prompt += (
                f"\n\nThis is the uploaded video URL: {context.video_url}.\n"
                "Please include this URL in the task content that you create."
            )
        return system_prompt

    async def run(
        self,
        prompt: str,
        context: Optional[RunContext] = None,
        options: Optional[RunOptions] = None,
    ) -> OrchestrationResult:
        """Run the tool loop for one prompt.

        Language model errors propagate. Tool errors are fed back to the model.
        """
        options = options or RunOptions()

        with self.tracer.start_as_current_span("orchestrator.run") as span:
            span.set_attribute("run.max_tool_iterations", options.max_tool_iterations)
            try:
                result = await self._run(prompt, context, options)
            except Exception as e:
                logger.error(f"❌ Orchestration run failed: {e}")
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                raise

            span.set_attribute("run.outcome", result.outcome.value)
            span.set_attribute("run.iterations", result.iterations)
            return result

    async def _run(
        self, prompt: str, context: Optional[RunContext], options: RunOptions
    ) -> OrchestrationResult:
        self.step_sink.publish(create_start_step())

        history: list[Message] = [
            Message.system(self.build_system_prompt(options, context)),
            Message.user(prompt),
        ]
        tools = await self.registry.collect_tools(options.server_filter)
        logger.info(f"🚀 Starting run with {len(tools)} tools")

        iteration = 0
        while iteration < options.max_tool_iterations:
            iteration += 1
            # Read fresh each turn so settings changes apply mid-run
            mode = self.settings.get_mode()
            whitelist = self.settings.get_whitelist() | self.registry.get_whitelist()
            logger.info(
                f"🔁 Iteration {iteration}/{options.max_tool_iterations} (mode={mode.value})"
            )

            turn = await self._generate_turn(history, tools)
            history.extend(turn.response_messages)
            self._publish_reasoning(turn, first_turn=iteration == 1)

            finish_reason = turn.finish_reason
            if finish_reason == FinishReason.TOOL_CALLS and turn.tool_calls:
                # Every tool_call_id of the turn must be answered before any user message
                feedback: list[Message] = []
                try:
                    for tool_call in turn.tool_calls:
                        for message in await self._handle_tool_call(
                            tool_call, tools, mode, whitelist
                        ):
                            if message.role == Role.TOOL:
                                history.append(message)
                            else:
                                feedback.append(message)
                except _RunStopped as stop:
                    logger.info(f"🛑 Run stopped by denial: {stop}")
                    self.step_sink.publish(create_final_result_step())
                    return OrchestrationResult(
                        text=DENIAL_MESSAGE,
                        outcome=RunOutcome.DENIED,
                        transcript=history,
                        iterations=iteration,
                    )
                history.extend(feedback)
                continue

            if finish_reason == FinishReason.STOP:
                self.step_sink.publish(create_final_result_step())
                return OrchestrationResult(
                    text=turn.text or "",
                    outcome=RunOutcome.COMPLETED,
                    transcript=history,
                    iterations=iteration,
                )

            if finish_reason == FinishReason.CONTENT_FILTER:
                logger.warning("Model response blocked by content filter")
                return OrchestrationResult(
                    text=CONTENT_FILTERED_MESSAGE,
                    outcome=RunOutcome.CONTENT_FILTERED,
                    transcript=history,
                    iterations=iteration,
                )

            if finish_reason == FinishReason.LENGTH:
                logger.warning("Model response hit the length limit")
                return OrchestrationResult(
                    text=LENGTH_LIMITED_MESSAGE,
                    outcome=RunOutcome.LENGTH_LIMITED,
                    transcript=history,
                    iterations=iteration,
                )

            logger.warning(f"⚠️ Run ended on unhandled finish reason: {finish_reason}")
            return OrchestrationResult(
                text=None,
                outcome=RunOutcome.UNKNOWN_FINISH,
                transcript=history,
                iterations=iteration,
            )

        logger.warning(
            f"⚠️ Run stopped after reaching max tool iterations ({options.max_tool_iterations})"
        )
        return OrchestrationResult(
            text=None,
            outcome=RunOutcome.ITERATION_LIMIT,
            transcript=history,
            iterations=iteration,
        )

    async def _generate_turn(
        self, history: list[Message], tools: dict[str, BaseTool]
    ) -> TurnResponse:
        with self.tracer.start_as_current_span("llm.generate_turn") as span:
            span.set_attribute("llm.client", self.llm.name)
            span.set_attribute("llm.messages", len(history))
            span.set_attribute("tool.count", len(tools))
            try:
                turn = await self.llm.generate_turn(history, tools)
            except Exception as e:
                logger.error(f"LLM call failed: {e}")
                span.record_exception(e)
                raise
            finish_reason = getattr(turn.finish_reason, "value", turn.finish_reason)
            span.set_attribute("llm.finish_reason", finish_reason)
            span.set_attribute("tool_call.count", len(turn.tool_calls))
            return turn

    def _publish_reasoning(self, turn: TurnResponse, first_turn: bool) -> None:
        reasoning = turn.reasoning
        if not reasoning and first_turn and turn.text:
            reasoning = _extract_json_reasoning(turn.text)
        if reasoning:
            self.step_sink.publish(create_reasoning_step(reasoning))

    async def _handle_tool_call(
        self,
        tool_call: ToolCall,
        tools: dict[str, BaseTool],
        mode: ToolApprovalMode,
        whitelist: set[str],
    ) -> list[Message]:
        """Gate and run one tool call, returning the messages to append."""
        server_name = self.registry.resolve_server_name(tool_call.server_name)
        tool_name = tool_call.tool_name

        tool = tools.get(tool_call.name)
        if tool is None:
            error = TOOL_ERROR_MESSAGES[ToolErrorType.NOT_FOUND].format(
                tool_name=tool_call.name, available_tools=", ".join(sorted(tools)) or "none"
            )
            logger.warning(error)
            self.step_sink.publish(
                create_tool_result_step(tool_name, server_name, error=error)
            )
            return [
                Message.tool(
                    tool_call.id, tool_call.name, ToolOutput(ToolOutputType.ERROR_TEXT, error)
                )
            ]

        if mode != ToolApprovalMode.YOLO and tool_call.name not in whitelist:
            decision = await self.approval_gate.request_approval(
                tool_name, tool_call.arguments, mode=mode, server_name=server_name
            )

            if isinstance(decision, DenyStopDecision):
                self.step_sink.publish(
                    create_tool_denied_step(tool_name, server_name, decision.feedback)
                )
                raise _RunStopped(decision.feedback)

            if isinstance(decision, RequestChangesDecision):
                logger.info(f"✏️ Changes requested for {tool_call.name}: {decision.feedback}")
                error = TOOL_ERROR_MESSAGES[ToolErrorType.CHANGES_REQUESTED].format(
                    tool_name=tool_call.name, feedback=decision.feedback
                )
                return [
                    Message.tool(
                        tool_call.id,
                        tool_call.name,
                        ToolOutput(ToolOutputType.ERROR_TEXT, error),
                    ),
                    Message.user(
                        f"Regarding the '{tool_call.name}' call, please change: "
                        f"{decision.feedback}"
                    ),
                ]

            if isinstance(decision, ApproveDecision) and decision.remember:
                self.settings.add_whitelist_entry(tool_call.name)

        output = await self._execute_tool(tool_call, tool, tool_name, server_name)
        return [Message.tool(tool_call.id, tool_call.name, output)]

    async def _execute_tool(
        self, tool_call: ToolCall, tool: BaseTool, tool_name: str, server_name: str
    ) -> ToolOutput:
        self.step_sink.publish(create_tool_call_step(tool_name, server_name, tool_call.arguments))

        with self.tracer.start_as_current_span(f"tool.{tool_call.name}") as span:
            span.set_attribute("tool.name", tool_call.name)
            span.set_attribute("tool.call_id", tool_call.id)
            try:
                result = await tool.execute(tool_call.arguments, tool_call_id=tool_call.id)
            except Exception as e:
                logger.error(f"❌ Tool '{tool_call.name}' failed: {e}")
                span.record_exception(e)
                error = TOOL_ERROR_MESSAGES[ToolErrorType.EXECUTION_ERROR].format(error=str(e))
                self.step_sink.publish(
                    create_tool_result_step(tool_name, server_name, error=error)
                )
                return ToolOutput(ToolOutputType.ERROR_TEXT, error)

            span.set_attribute("tool.success", True)

        logger.info(f"✅ Tool '{tool_call.name}' completed")
        self.step_sink.publish(create_tool_result_step(tool_name, server_name, result=result))
        return ToolOutput(tool.output_type, result)


def _extract_json_reasoning(text: str) -> Optional[str]:
    """Pull a ``reasoning`` field out of a JSON assistant reply, if there is one."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(data, dict) or not data.get("reasoning"):
        return None
    reasoning = data["reasoning"]
    return reasoning if isinstance(reasoning, str) else json.dumps(reasoning)
