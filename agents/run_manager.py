"""Runs orchestrations in the background and keeps their results."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from agents.orchestrator import OrchestrationResult, RunContext, RunOptions, ToolOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_MAX_FINISHED_RUNS = 100


class RunStatus(str, Enum):
    """Status of a background run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class RunRecord:
    """One background run and, once finished, its result."""

    run_id: str
    prompt: str
    status: RunStatus = RunStatus.RUNNING
    result: Optional[OrchestrationResult] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None


class RunManager:
    """Starts orchestrator runs as asyncio tasks keyed by run id.

    Finished runs stay available for polling until more than
    ``max_finished_runs`` have piled up; then the oldest are dropped.
    """

    def __init__(
        self,
        orchestrator: ToolOrchestrator,
        max_finished_runs: int = DEFAULT_MAX_FINISHED_RUNS,
    ) -> None:
        self.orchestrator = orchestrator
        self.max_finished_runs = max_finished_runs
        self._runs: dict[str, RunRecord] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def start_run(
        self,
        prompt: str,
        context: Optional[RunContext] = None,
        options: Optional[RunOptions] = None,
    ) -> RunRecord:
        """Start a run without waiting for it. Must be called on the event loop."""
        run_id = str(uuid.uuid4())
        record = RunRecord(run_id=run_id, prompt=prompt)
        self._runs[run_id] = record
        self._tasks[run_id] = asyncio.create_task(self._execute(record, context, options))
        logger.info(f"🚀 Started run {run_id}")
        return record

    def get_run(self, run_id: str) -> Optional[RunRecord]:
        return self._runs.get(run_id)

    async def wait_for_run(self, run_id: str) -> Optional[RunRecord]:
        """Wait until a run has finished."""
        task = self._tasks.get(run_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        return self._runs.get(run_id)

    async def shutdown(self) -> None:
        """Cancel every unfinished run."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"🧹 Cancelled {len(tasks)} running runs")

    async def _execute(
        self,
        record: RunRecord,
        context: Optional[RunContext],
        options: Optional[RunOptions],
    ) -> None:
        try:
            record.result = await self.orchestrator.run(record.prompt, context, options)
            record.status = RunStatus.COMPLETED
            logger.info(f"✅ Run {record.run_id} finished: {record.result.outcome.value}")
        except asyncio.CancelledError:
            record.status = RunStatus.CANCELLED
            raise
        except Exception as e:
            logger.error(f"❌ Run {record.run_id} failed: {e}", exc_info=True)
            record.status = RunStatus.FAILED
            record.error = str(e)
        finally:
            record.finished_at = datetime.now(timezone.utc)
            self._tasks.pop(record.run_id, None)
            self._evict_finished()

    def _evict_finished(self) -> None:
        # _runs is in start order, so the oldest finished runs go first
        finished = [run_id for run_id, r in self._runs.items() if r.finished_at is not None]
        for run_id in finished[: max(0, len(finished) - self.max_finished_runs)]:
            del self._runs[run_id]
            logger.debug(f"Evicted finished run {run_id}")
