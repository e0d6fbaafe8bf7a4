"""Event types and JSON serialization."""

from __future__ import annotations

import json
import uuid
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


@dataclass(frozen=True, slots=True)
class Event:
    """
    A single occurrence to be shipped to the collection endpoint.

    The sender treats events as opaque: any mapping, dataclass instance or
    object with a ``to_dict()`` method can be queued. This type is the
    default shape for callers that don't bring their own.
    """
    # What happened
    event_type: str

    # Event-specific fields
    payload: dict[str, Any] = field(default_factory=dict)

    # Identification
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Timing
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, event_type: str, **payload: Any) -> Event:
        """Factory method with sensible defaults."""
        return cls(event_type=event_type, payload=dict(payload))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload,
        }


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def event_to_dict(event: Any) -> dict[str, Any]:
    """
    Convert an event to a plain dictionary.

    Raises:
        TypeError: If the event is not a mapping, a dataclass instance,
            or an object with ``to_dict()``.
    """
    to_dict = getattr(event, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(event, Mapping):
        return dict(event)
    if is_dataclass(event) and not isinstance(event, type):
        return asdict(event)
    raise TypeError(f"Cannot serialize event of type {type(event).__name__}")


def serialize_event(event: Any) -> bytes:
    """Serialize an event to a UTF-8 JSON request body."""
    return json.dumps(event_to_dict(event), default=_json_default).encode("utf-8")
