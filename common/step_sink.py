"""Fire-and-forget sinks for orchestration step events.

Publishing never blocks and never fails the caller: a sink that cannot deliver
an event logs it and moves on.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable

from common.messages import StepEvent

logger = logging.getLogger(__name__)


class StepSink(ABC):
    """Destination for step events published by the orchestrator."""

    @abstractmethod
    def publish(self, step: StepEvent) -> None:
        """Publish a step without waiting for anyone to consume it."""
        pass


class NullStepSink(StepSink):
    """Sink that drops every event."""

    def publish(self, step: StepEvent) -> None:
        pass


class CallbackStepSink(StepSink):
    """Sink that hands each event to a plain callback."""

    def __init__(self, callback: Callable[[StepEvent], None]) -> None:
        self._callback = callback

    def publish(self, step: StepEvent) -> None:
        try:
            self._callback(step)
        except Exception as e:
            logger.warning(f"Step callback failed for {step.type.value}: {e}")


class BroadcastStepSink(StepSink):
    """Fan step events out to every subscribed queue.

    Each subscriber gets its own bounded queue. A full queue drops the event
    for that subscriber only.
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: set[asyncio.Queue[StepEvent]] = set()

    def subscribe(self) -> "asyncio.Queue[StepEvent]":
        """Register a new subscriber and return its queue."""
        queue: asyncio.Queue[StepEvent] = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.add(queue)
        logger.debug(f"Step subscriber added, total: {len(self._subscribers)}")
        return queue

    def unsubscribe(self, queue: "asyncio.Queue[StepEvent]") -> None:
        """Remove a subscriber queue; unknown queues are ignored."""
        self._subscribers.discard(queue)
        logger.debug(f"Step subscriber removed, total: {len(self._subscribers)}")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, step: StepEvent) -> None:
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(step)
            except asyncio.QueueFull:
                logger.warning(f"Step subscriber queue full, dropping {step.type.value} event")
