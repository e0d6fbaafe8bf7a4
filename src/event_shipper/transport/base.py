"""Base transport interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


class DeliveryFailure(str, Enum):
    """Why a delivery attempt failed. Every kind is retried."""
    REJECTED = "rejected"            # Server answered with a non-200 status
    TIMEOUT = "timeout"              # No response within the request timeout
    TRANSPORT = "transport"          # Connection, DNS or protocol error
    SERIALIZATION = "serialization"  # Event could not be encoded


@dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Outcome of one delivery attempt for one event."""
    failure: DeliveryFailure | None = None
    status_code: int | None = None
    error: str | None = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def delivered(cls, status_code: int, latency_ms: float = 0.0) -> DeliveryResult:
        return cls(status_code=status_code, latency_ms=latency_ms)

    @classmethod
    def failed(
        cls,
        failure: DeliveryFailure,
        error: str | None = None,
        status_code: int | None = None,
        latency_ms: float = 0.0,
    ) -> DeliveryResult:
        return cls(failure=failure, status_code=status_code, error=error, latency_ms=latency_ms)


class EventTransport(ABC):
    """
    Abstract base class for event transports.

    A transport delivers one event per call. It reports failures through
    the returned result instead of raising, so the dispatcher can decide
    between discarding and requeueing the event.
    """

    @abstractmethod
    async def send(self, event: Any) -> DeliveryResult:
        """Attempt delivery of a single event."""
        ...

    async def start(self) -> None:
        """Initialize the transport (called when the dispatcher starts)."""
        pass

    async def stop(self) -> None:
        """Release the transport (called once, after in-flight sends finish)."""
        pass
