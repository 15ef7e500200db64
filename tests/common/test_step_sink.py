"""Tests for step sinks."""

import asyncio

import pytest

from common.messages import create_start_step
from common.step_sink import BroadcastStepSink, CallbackStepSink, NullStepSink


@pytest.mark.unit
class TestStepSinks:
    """Test fire-and-forget publishing."""

    def test_null_sink_accepts_steps(self) -> None:
        NullStepSink().publish(create_start_step())

    def test_callback_sink_swallows_callback_errors(self) -> None:
        received = []

        def callback(step):
            received.append(step)
            raise RuntimeError("renderer gone")

        CallbackStepSink(callback).publish(create_start_step())
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_broadcast_fans_out_to_subscribers(self) -> None:
        sink = BroadcastStepSink()
        first = sink.subscribe()
        second = sink.subscribe()

        step = create_start_step()
        sink.publish(step)

        assert await asyncio.wait_for(first.get(), 1.0) is step
        assert await asyncio.wait_for(second.get(), 1.0) is step

    @pytest.mark.asyncio
    async def test_broadcast_drops_when_queue_full(self) -> None:
        sink = BroadcastStepSink(max_queue_size=1)
        queue = sink.subscribe()

        sink.publish(create_start_step("one"))
        sink.publish(create_start_step("two"))

        assert queue.qsize() == 1
        assert (await queue.get()).message == "one"

    def test_unsubscribe(self) -> None:
        sink = BroadcastStepSink()
        queue = sink.subscribe()
        assert sink.subscriber_count == 1

        sink.unsubscribe(queue)
        sink.unsubscribe(queue)
        assert sink.subscriber_count == 0
