"""Tests for the batch dispatcher."""

import asyncio

import pytest

from event_shipper.dispatcher import Dispatcher, DispatcherState
from event_shipper.event_queue import EventQueue


def fill(queue: EventQueue, count: int) -> None:
    for i in range(count):
        queue.enqueue(i)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class TestTick:
    @pytest.mark.asyncio
    async def test_tick_drains_at_most_batch_size(self, queue, make_transport):
        fill(queue, 1200)
        transport = make_transport()
        dispatcher = Dispatcher(queue, transport, batch_size=500)

        assert dispatcher.tick() == 500
        assert len(queue) == 700

        await dispatcher.join()
        assert len(transport.delivered) == 500
        assert len(queue) == 700
        assert queue.snapshot()[0] == 500

    @pytest.mark.asyncio
    async def test_empty_tick_is_noop(self, queue, make_transport):
        transport = make_transport()
        dispatcher = Dispatcher(queue, transport)

        assert dispatcher.tick() == 0
        assert dispatcher.in_flight == 0
        assert transport.attempts == []

    @pytest.mark.asyncio
    async def test_success_discards_event(self, queue, make_transport):
        queue.enqueue("login")
        transport = make_transport(status=200)
        dispatcher = Dispatcher(queue, transport)

        dispatcher.tick()
        await dispatcher.join()

        assert transport.delivered == ["login"]
        assert len(queue) == 0
        assert dispatcher.stats["delivered"] == 1

    @pytest.mark.asyncio
    async def test_server_error_requeues_event(self, queue, make_transport):
        queue.enqueue("login")
        transport = make_transport(status=500)
        dispatcher = Dispatcher(queue, transport)

        dispatcher.tick()
        await dispatcher.join()

        assert queue.snapshot() == ["login"]
        assert dispatcher.stats["requeued"] == 1

    @pytest.mark.asyncio
    async def test_non_200_success_codes_are_failures(self, queue, make_transport):
        queue.enqueue("login")
        dispatcher = Dispatcher(queue, make_transport(status=204))

        dispatcher.tick()
        await dispatcher.join()

        assert queue.snapshot() == ["login"]

    @pytest.mark.asyncio
    async def test_permanent_failure_retried_every_tick(self, queue, make_transport):
        queue.enqueue("poison")
        transport = make_transport(status=503)
        dispatcher = Dispatcher(queue, transport)

        for _ in range(5):
            dispatcher.tick()
            await dispatcher.join()

        assert queue.snapshot() == ["poison"]
        assert transport.attempts == ["poison"] * 5

    @pytest.mark.asyncio
    async def test_failure_requeues_to_tail(self, queue, make_transport):
        fill(queue, 5)
        transport = make_transport(status=lambda e: 500 if e == 0 else 200)
        dispatcher = Dispatcher(queue, transport, batch_size=2)

        dispatcher.tick()
        await dispatcher.join()

        assert queue.snapshot() == [2, 3, 4, 0]

    @pytest.mark.asyncio
    async def test_failures_do_not_affect_siblings(self, queue, make_transport):
        fill(queue, 10)
        transport = make_transport(status=lambda e: 500 if e % 2 else 200)
        dispatcher = Dispatcher(queue, transport)

        dispatcher.tick()
        await dispatcher.join()

        assert sorted(transport.delivered) == [0, 2, 4, 6, 8]
        assert sorted(queue.snapshot()) == [1, 3, 5, 7, 9]

    @pytest.mark.asyncio
    async def test_transport_exception_requeues(self, queue, make_transport):
        fill(queue, 2)
        transport = make_transport(status=lambda e: RuntimeError("boom") if e == 0 else 200)
        dispatcher = Dispatcher(queue, transport)

        dispatcher.tick()
        await dispatcher.join()

        assert queue.snapshot() == [0]
        assert transport.delivered == [1]

    @pytest.mark.asyncio
    async def test_batch_deliveries_run_concurrently(self, queue, make_transport):
        fill(queue, 3)
        gate = asyncio.Event()
        transport = make_transport(gate=gate)
        dispatcher = Dispatcher(queue, transport)

        dispatcher.tick()
        await wait_until(lambda: len(transport.attempts) == 3)
        assert dispatcher.in_flight == 3
        assert transport.completed == 0

        gate.set()
        await dispatcher.join()
        assert dispatcher.in_flight == 0
        assert len(transport.delivered) == 3

    @pytest.mark.asyncio
    async def test_deliveries_overlap_across_ticks(self, queue, make_transport):
        gate = asyncio.Event()
        transport = make_transport(gate=gate)
        dispatcher = Dispatcher(queue, transport, batch_size=1)

        fill(queue, 2)
        dispatcher.tick()
        dispatcher.tick()
        await wait_until(lambda: len(transport.attempts) == 2)
        assert dispatcher.in_flight == 2

        gate.set()
        await dispatcher.join()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_loop_ticks_on_interval(self, queue, make_transport):
        transport = make_transport()
        dispatcher = Dispatcher(queue, transport, send_interval_seconds=0.01)
        await dispatcher.start()
        assert transport.started

        fill(queue, 3)
        await wait_until(lambda: len(transport.delivered) == 3)

        await dispatcher.shutdown()
        assert dispatcher.state == DispatcherState.STOPPED
        assert dispatcher.stats["ticks"] >= 1

    @pytest.mark.asyncio
    async def test_start_twice_fails(self, queue, make_transport):
        dispatcher = Dispatcher(queue, make_transport(), send_interval_seconds=60)
        await dispatcher.start()
        with pytest.raises(RuntimeError):
            await dispatcher.start()
        await dispatcher.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_joins_in_flight_deliveries(self, queue, make_transport):
        fill(queue, 4)
        gate = asyncio.Event()
        transport = make_transport(gate=gate)
        dispatcher = Dispatcher(queue, transport, send_interval_seconds=60)
        await dispatcher.start()

        assert dispatcher.tick() == 4
        shutdown = asyncio.create_task(dispatcher.shutdown())
        await asyncio.sleep(0.05)

        assert not shutdown.done()
        assert not transport.stopped
        assert dispatcher.state == DispatcherState.STOPPING

        gate.set()
        await shutdown

        assert transport.completed_at_stop == 4
        assert len(transport.delivered) == 4
        assert dispatcher.state == DispatcherState.STOPPED

    @pytest.mark.asyncio
    async def test_shutdown_leaves_backlog_undelivered(self, queue, make_transport):
        fill(queue, 10)
        transport = make_transport()
        dispatcher = Dispatcher(queue, transport, send_interval_seconds=60)
        await dispatcher.start()

        await dispatcher.shutdown()

        assert transport.attempts == []
        assert len(queue) == 10

    @pytest.mark.asyncio
    async def test_no_ticks_after_shutdown(self, queue, make_transport):
        transport = make_transport()
        dispatcher = Dispatcher(queue, transport, send_interval_seconds=60)
        await dispatcher.start()
        await dispatcher.shutdown()

        queue.enqueue("late")
        assert dispatcher.tick() == 0
        assert queue.snapshot() == ["late"]

    @pytest.mark.asyncio
    async def test_shutdown_stops_transport_once(self, queue, make_transport):
        transport = make_transport()
        dispatcher = Dispatcher(queue, transport, send_interval_seconds=60)
        await dispatcher.start()

        await dispatcher.shutdown()
        await dispatcher.shutdown()

        assert transport.stop_calls == 1

    @pytest.mark.asyncio
    async def test_stats(self, queue, make_transport):
        fill(queue, 3)
        dispatcher = Dispatcher(queue, make_transport(status=lambda e: 200 if e else 500))

        dispatcher.tick()
        await dispatcher.join()

        stats = dispatcher.stats
        assert stats["ticks"] == 1
        assert stats["dispatched"] == 3
        assert stats["delivered"] == 2
        assert stats["requeued"] == 1
        assert stats["pending"] == 1
        assert stats["in_flight"] == 0
        assert stats["state"] == "running"
