"""Transports - how a single event reaches the collection endpoint."""

from .base import DeliveryFailure, DeliveryResult, EventTransport
from .http import HttpTransport

__all__ = [
    "DeliveryFailure",
    "DeliveryResult",
    "EventTransport",
    "HttpTransport",
]
