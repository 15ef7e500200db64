"""Tests for background run management."""

import pytest

from agents.orchestrator import RunOutcome
from agents.run_manager import RunManager, RunStatus
from common.messages import ApproveDecision


@pytest.mark.unit
class TestRunManager:
    """Test background run bookkeeping."""

    @pytest.mark.asyncio
    async def test_completed_run_keeps_result(self, make_orchestrator, turns) -> None:
        orchestrator, _ = make_orchestrator([turns.stop("done")])
        manager = RunManager(orchestrator)

        record = manager.start_run("Hi")
        assert record.status == RunStatus.RUNNING

        finished = await manager.wait_for_run(record.run_id)
        assert finished.status == RunStatus.COMPLETED
        assert finished.result.text == "done"
        assert finished.result.outcome == RunOutcome.COMPLETED
        assert finished.finished_at is not None
        assert manager.get_run(record.run_id) is finished

    @pytest.mark.asyncio
    async def test_failed_run_records_error(self, make_orchestrator) -> None:
        orchestrator, _ = make_orchestrator([])
        manager = RunManager(orchestrator)

        record = manager.start_run("Hi")
        finished = await manager.wait_for_run(record.run_id)

        assert finished.status == RunStatus.FAILED
        assert "ran out of turns" in finished.error
        assert finished.result is None

    @pytest.mark.asyncio
    async def test_shutdown_cancels_waiting_runs(
        self, make_orchestrator, turns, approval_gate, wait_for_approval
    ) -> None:
        orchestrator, _ = make_orchestrator([turns.tool_calls(("GitHub__issue_write", {}))])
        manager = RunManager(orchestrator)

        record = manager.start_run("Create")
        await wait_for_approval()
        await manager.shutdown()

        assert record.status == RunStatus.CANCELLED
        assert approval_gate.pending_count == 0

    @pytest.mark.asyncio
    async def test_oldest_finished_runs_are_evicted(self, make_orchestrator, turns) -> None:
        orchestrator, _ = make_orchestrator([turns.stop(f"run {i}") for i in range(3)])
        manager = RunManager(orchestrator, max_finished_runs=2)

        run_ids = []
        for _ in range(3):
            record = manager.start_run("Hi")
            await manager.wait_for_run(record.run_id)
            run_ids.append(record.run_id)

        assert manager.get_run(run_ids[0]) is None
        assert manager.get_run(run_ids[1]).result.text == "run 1"
        assert manager.get_run(run_ids[2]).result.text == "run 2"

    @pytest.mark.asyncio
    async def test_running_runs_are_never_evicted(
        self, make_orchestrator, turns, approval_gate, wait_for_approval
    ) -> None:
        orchestrator, _ = make_orchestrator(
            [
                turns.tool_calls(("GitHub__issue_write", {})),
                turns.stop("quick"),
                turns.stop("done"),
            ]
        )
        manager = RunManager(orchestrator, max_finished_runs=0)

        waiting = manager.start_run("Create")
        request_id = await wait_for_approval()
        quick = manager.start_run("Hi")
        await manager.wait_for_run(quick.run_id)

        assert manager.get_run(quick.run_id) is None
        assert manager.get_run(waiting.run_id).status == RunStatus.RUNNING

        approval_gate.resolve(request_id, ApproveDecision())
        await manager.wait_for_run(waiting.run_id)
        assert manager.get_run(waiting.run_id) is None

    def test_unknown_run(self, make_orchestrator) -> None:
        orchestrator, _ = make_orchestrator([])
        assert RunManager(orchestrator).get_run("missing") is None
