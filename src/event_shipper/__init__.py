"""
Event Shipper - batched, retrying delivery of application events

Producers queue events from any thread; a background dispatcher drains
them in batches and POSTs each one to a collection endpoint, putting
failed events back on the queue for a later attempt.
"""

from .config import SenderConfig
from .dispatcher import Dispatcher, DispatcherState
from .event_queue import EventQueue
from .events import Event, serialize_event
from .exceptions import ConfigError, EventSenderInitializationError, EventShipperError
from .sender import EventSender
from .transport import DeliveryFailure, DeliveryResult, EventTransport, HttpTransport

__version__ = "0.1.0"

__all__ = [
    "EventSender",
    "SenderConfig",
    "Dispatcher",
    "DispatcherState",
    "EventQueue",
    "Event",
    "serialize_event",
    "EventTransport",
    "HttpTransport",
    "DeliveryResult",
    "DeliveryFailure",
    "EventShipperError",
    "EventSenderInitializationError",
    "ConfigError",
]
