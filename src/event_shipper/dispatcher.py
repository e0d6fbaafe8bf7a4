"""Periodic batch dispatcher with per-event concurrent delivery."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .event_queue import EventQueue
from .transport.base import DeliveryFailure, DeliveryResult, EventTransport


logger = logging.getLogger(__name__)


class DispatcherState(str, Enum):
    """Lifecycle of a dispatcher. Moves forward only."""
    RUNNING = "running"     # Ticking on the interval
    STOPPING = "stopping"   # Shutdown requested, joining in-flight deliveries
    STOPPED = "stopped"     # Transport released, queue no longer serviced


@dataclass
class Dispatcher:
    """
    Drains batches from the event queue and delivers them.

    Every ``send_interval_seconds`` the dispatcher pulls up to
    ``batch_size`` events and starts one delivery task per event without
    waiting on its siblings. A delivered event is gone for good; any
    failure puts the event back at the tail of the queue, to be retried
    on a later tick with no limit on attempts.

    All methods except construction must run on the dispatcher's event loop.
    """
    queue: EventQueue
    transport: EventTransport
    send_interval_seconds: float = 3.5
    batch_size: int = 500

    # Internal state
    _state: DispatcherState = field(default=DispatcherState.RUNNING, init=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _loop_task: asyncio.Task | None = field(default=None, init=False)
    _in_flight: set[asyncio.Task] = field(default_factory=set, init=False)
    _stats: dict = field(default_factory=dict, init=False)

    def __post_init__(self):
        self._stats = {
            "ticks": 0,
            "dispatched": 0,
            "delivered": 0,
            "requeued": 0,
        }

    async def start(self) -> None:
        """Start the periodic loop on the running event loop."""
        if self._loop_task is not None:
            raise RuntimeError("Dispatcher already started")

        await self.transport.start()
        self._loop_task = asyncio.create_task(self.run())
        logger.info(
            f"Event dispatcher started "
            f"(interval={self.send_interval_seconds}s, batch_size={self.batch_size})"
        )

    async def run(self) -> None:
        """
        Main loop - ticks on the interval until stopped.

        A tick is synchronous, so once the stop signal is observed every
        delivery task of the last tick has already been registered.
        """
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.send_interval_seconds)
            except asyncio.TimeoutError:
                self.tick()

    def tick(self) -> int:
        """
        Run one drain-and-dispatch cycle.

        Returns the number of events handed to delivery tasks.
        """
        if self._state != DispatcherState.RUNNING:
            return 0

        self._stats["ticks"] += 1
        events = self.queue.drain(self.batch_size)

        for event in events:
            task = asyncio.create_task(self._deliver(event))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

        self._stats["dispatched"] += len(events)
        return len(events)

    async def _deliver(self, event: Any) -> DeliveryResult:
        try:
            result = await self.transport.send(event)
        except Exception as e:
            logger.debug(f"Transport raised during delivery: {e!r}")
            result = DeliveryResult.failed(DeliveryFailure.TRANSPORT, error=str(e))

        if result.ok:
            self._stats["delivered"] += 1
        else:
            self.queue.requeue(event)
            self._stats["requeued"] += 1
        return result

    async def join(self) -> None:
        """Wait for every in-flight delivery, including ones started meanwhile."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def stop(self) -> None:
        """Signal the loop to stop taking ticks."""
        if self._state == DispatcherState.RUNNING:
            self._state = DispatcherState.STOPPING
        self._stop_event.set()

    async def shutdown(self) -> None:
        """
        Stop ticking, join in-flight deliveries, then release the transport.

        Events still queued are not delivered.
        """
        if self._state == DispatcherState.STOPPED:
            return

        self.stop()
        if self._loop_task is not None:
            await self._loop_task
        await self.join()
        await self.transport.stop()
        self._state = DispatcherState.STOPPED
        logger.info(f"Event dispatcher stopped. Stats: {self.stats}")

    @property
    def state(self) -> DispatcherState:
        return self._state

    @property
    def in_flight(self) -> int:
        """Number of delivery tasks not yet finished."""
        return len(self._in_flight)

    @property
    def stats(self) -> dict:
        """Get dispatcher statistics."""
        return {
            **self._stats,
            "in_flight": self.in_flight,
            "pending": len(self.queue),
            "state": self._state.value,
        }
