"""Exceptions raised by the event shipper."""


class EventShipperError(Exception):
    """Base exception for event shipper errors."""
    pass


class EventSenderInitializationError(EventShipperError):
    """Failed to construct an event sender."""
    pass


class ConfigError(EventShipperError):
    """Invalid sender configuration."""
    pass
