"""Event sender - the public entry point for producers."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

from .config import SenderConfig
from .dispatcher import Dispatcher
from .event_queue import EventQueue
from .exceptions import EventSenderInitializationError
from .transport.base import EventTransport
from .transport.http import HttpTransport


logger = logging.getLogger(__name__)


class EventSender:
    """
    Queues events and ships them from a background dispatcher.

    The dispatcher runs on its own thread with a private asyncio event
    loop, so producers can call ``queue_event`` from any thread (or from
    inside their own event loop) without touching the network.

    Usage:
        sender = EventSender.init("https://collector.example.com", api_key)
        sender.queue_event(Event.create("player_login", username="Leviticus"))
        ...
        sender.shutdown()

    Or as a context manager:
        with EventSender.init(url, api_key) as sender:
            sender.queue_event(event)
    """

    def __init__(self, transport: EventTransport, config: SenderConfig | None = None):
        self.config = config or SenderConfig()
        self._queue = EventQueue()
        self._dispatcher = Dispatcher(
            queue=self._queue,
            transport=transport,
            send_interval_seconds=self.config.send_interval_seconds,
            batch_size=self.config.batch_size,
        )
        self._shutdown = False

        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="event-sender-dispatcher",
            daemon=True,
        )
        try:
            self._thread.start()
            asyncio.run_coroutine_threadsafe(self._dispatcher.start(), self._loop).result()
        except Exception:
            self._abort_start(transport)
            raise

    @classmethod
    def init(
        cls,
        server_url: str,
        api_key: str,
        config: SenderConfig | None = None,
    ) -> EventSender:
        """
        Create a sender that posts events to ``<server_url>/event``.

        Raises:
            EventSenderInitializationError: If an argument is empty or the
                HTTP client or dispatcher cannot be set up.
        """
        try:
            config = config or SenderConfig()
            transport = HttpTransport(server_url=server_url, api_key=api_key, config=config)
            return cls(transport, config)
        except Exception as e:
            raise EventSenderInitializationError(f"Failed to start EventSender: {e}") from e

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _stop_loop(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._loop.close()

    def _abort_start(self, transport: EventTransport) -> None:
        """Release the transport and the loop after a failed start."""
        running = self._thread.is_alive()
        try:
            if running:
                asyncio.run_coroutine_threadsafe(transport.stop(), self._loop).result()
            else:
                self._loop.run_until_complete(transport.stop())
        except Exception as e:
            logger.error(f"Failed to stop transport after failed start: {e}")
        finally:
            if running:
                self._stop_loop()
            else:
                self._loop.close()

    def queue_event(self, event: Any) -> None:
        """
        Add an event to the queue for delivery (fire and forget).

        Safe to call from any thread. Never blocks on I/O and never raises.
        """
        self._queue.enqueue(event)

    def shutdown(self) -> None:
        """
        Stop the dispatcher and wait for in-flight deliveries to finish.

        Blocks the calling thread. The HTTP client is closed once every
        in-flight delivery has completed; events still queued are dropped.
        Must not be called from the dispatcher's own thread.
        """
        if self._shutdown:
            logger.warning("EventSender.shutdown() called more than once, ignoring")
            return
        self._shutdown = True

        try:
            asyncio.run_coroutine_threadsafe(self._dispatcher.shutdown(), self._loop).result()
        finally:
            self._stop_loop()

    def __enter__(self) -> EventSender:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    @property
    def pending(self) -> int:
        """Events waiting in the queue."""
        return len(self._queue)

    @property
    def stats(self) -> dict:
        """Get sender statistics."""
        return self._dispatcher.stats
