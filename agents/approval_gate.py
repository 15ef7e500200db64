"""Approval gate for tool calls awaiting a human decision.

Each request gets a uuid4 request_id and a future. The future is settled exactly
once by whichever comes first: an explicit decision, the hard timeout, the
optional wait-mode auto-approval, or cancel_all.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from common.messages import (
    ApproveDecision,
    DenyStopDecision,
    ToolApprovalDecision,
    create_approval_required_step,
    create_approval_resolved_step,
    now_ms,
)
from common.step_sink import NullStepSink, StepSink
from common.types import ToolApprovalMode

logger = logging.getLogger(__name__)

DEFAULT_WAIT_AUTO_APPROVE_SECONDS = 15.0
DEFAULT_HARD_TIMEOUT_SECONDS = 60.0


class ApprovalState(str, Enum):
    """Lifecycle of a pending approval."""

    PENDING = "pending"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    AUTO_APPROVED = "auto_approved"
    CANCELLED = "cancelled"


@dataclass
class PendingApproval:
    """Track one outstanding approval request."""

    request_id: str
    tool_name: str
    server_name: str
    args: Any
    future: "asyncio.Future[ToolApprovalDecision]"
    created_at: float = field(default_factory=time.time)
    timeout_handle: Optional[asyncio.TimerHandle] = None
    auto_approve_handle: Optional[asyncio.TimerHandle] = None
    state: ApprovalState = ApprovalState.PENDING

    def cancel_timers(self) -> None:
        for handle in (self.timeout_handle, self.auto_approve_handle):
            if handle is not None:
                handle.cancel()
        self.timeout_handle = None
        self.auto_approve_handle = None


class ApprovalGate:
    """Holds pending approval requests shared by all runs of a process.

    Must be used from a single event loop; every mutation of the pending map
    happens on that loop.
    """

    def __init__(
        self,
        step_sink: Optional[StepSink] = None,
        wait_auto_approve_seconds: float = DEFAULT_WAIT_AUTO_APPROVE_SECONDS,
        hard_timeout_seconds: float = DEFAULT_HARD_TIMEOUT_SECONDS,
        enforce_wait_auto_approve: bool = False,
    ) -> None:
        self.step_sink = step_sink or NullStepSink()
        self.wait_auto_approve_seconds = wait_auto_approve_seconds
        self.hard_timeout_seconds = hard_timeout_seconds
        self.enforce_wait_auto_approve = enforce_wait_auto_approve
        self._pending: dict[str, PendingApproval] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def get_pending(self, request_id: str) -> Optional[PendingApproval]:
        return self._pending.get(request_id)

    async def request_approval(
        self,
        tool_name: str,
        args: Any,
        *,
        mode: ToolApprovalMode,
        server_name: Optional[str] = None,
    ) -> ToolApprovalDecision:
        """Publish an approval request and wait for its decision.

        Never raises on timeout: an unanswered request resolves as deny_stop
        after the hard timeout.
        """
        loop = asyncio.get_running_loop()
        request_id = str(uuid.uuid4())
        pending = PendingApproval(
            request_id=request_id,
            tool_name=tool_name,
            server_name=server_name or "",
            args=args,
            future=loop.create_future(),
        )
        self._pending[request_id] = pending

        pending.timeout_handle = loop.call_later(
            self.hard_timeout_seconds, self._on_hard_timeout, request_id
        )

        auto_approve_at = None
        if mode == ToolApprovalMode.WAIT:
            auto_approve_at = now_ms() + int(self.wait_auto_approve_seconds * 1000)
            if self.enforce_wait_auto_approve:
                pending.auto_approve_handle = loop.call_later(
                    self.wait_auto_approve_seconds, self._on_auto_approve, request_id
                )

        logger.info(f"⏳ Approval required for {tool_name} (request {request_id})")
        self.step_sink.publish(
            create_approval_required_step(
                request_id=request_id,
                tool_name=tool_name,
                server_name=server_name or "",
                args=args,
                auto_approve_at=auto_approve_at,
            )
        )

        try:
            return await pending.future
        finally:
            # Covers cancellation of the awaiting task
            if self._pending.pop(request_id, None) is not None:
                pending.state = ApprovalState.CANCELLED
                pending.cancel_timers()
                logger.info(f"Approval wait for {request_id} cancelled")
                self._publish_resolved(pending, None)

    def resolve(self, request_id: str, decision: ToolApprovalDecision) -> bool:
        """Deliver a decision. Returns False if the request is not pending."""
        settled = self._settle(request_id, decision, ApprovalState.RESOLVED)
        if settled:
            logger.info(f"✅ Approval {request_id} resolved: {decision.kind}")
        else:
            logger.debug(f"Ignoring decision for unknown or settled request {request_id}")
        return settled

    def cancel_all(self, reason: str = "cancelled") -> int:
        """Resolve every pending request as deny_stop. Returns how many were drained."""
        count = 0
        for request_id in list(self._pending):
            if self._settle(request_id, DenyStopDecision(), ApprovalState.CANCELLED):
                count += 1
        if count:
            logger.info(f"🛑 Cancelled {count} pending approvals: {reason}")
        return count

    def _on_hard_timeout(self, request_id: str) -> None:
        if self._settle(request_id, DenyStopDecision(), ApprovalState.TIMED_OUT):
            logger.warning(f"⏰ Approval {request_id} timed out, denying")

    def _on_auto_approve(self, request_id: str) -> None:
        if self._settle(request_id, ApproveDecision(), ApprovalState.AUTO_APPROVED):
            logger.info(f"Approval {request_id} auto-approved after wait")

    def _settle(
        self, request_id: str, decision: ToolApprovalDecision, state: ApprovalState
    ) -> bool:
        # Whoever pops the entry first owns the outcome
        pending = self._pending.pop(request_id, None)
        if pending is None:
            return False

        pending.cancel_timers()
        pending.state = state
        if not pending.future.done():
            pending.future.set_result(decision)
        self._publish_resolved(pending, decision.kind)
        return True

    def _publish_resolved(self, pending: PendingApproval, decision: Optional[str]) -> None:
        # Lets every other observer dismiss its prompt for this request
        self.step_sink.publish(
            create_approval_resolved_step(
                request_id=pending.request_id,
                tool_name=pending.tool_name,
                server_name=pending.server_name,
                state=pending.state.value,
                decision=decision,
            )
        )
