"""Domain layer - models and events."""

from beacon.core.domain.events import EventHandler, EventHook
from beacon.core.domain.models import (
    BUFFER_SIZE,
    DEFAULT_BROADCAST_ADDRESS,
    DEFAULT_PORT,
    ENCODING,
    BeaconError,
    ClientConfiguration,
    ClientMessage,
    ServerBindError,
    ServerConfiguration,
    ServerResponse,
    ServerToken,
)

__all__ = [
    "BUFFER_SIZE",
    "DEFAULT_BROADCAST_ADDRESS",
    "DEFAULT_PORT",
    "ENCODING",
    "BeaconError",
    "ClientConfiguration",
    "ClientMessage",
    "EventHandler",
    "EventHook",
    "ServerBindError",
    "ServerConfiguration",
    "ServerResponse",
    "ServerToken",
]
