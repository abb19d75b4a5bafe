"""Core module - domain models, events and ports."""

# Domain models
from beacon.core.domain import (
    BeaconError,
    ClientConfiguration,
    ClientMessage,
    EventHook,
    ServerBindError,
    ServerConfiguration,
    ServerResponse,
    ServerToken,
)

# Ports
from beacon.core.ports import IBroadcastingPort

__all__ = [
    # Domain Models
    "BeaconError",
    "ClientConfiguration",
    "ClientMessage",
    "EventHook",
    "ServerBindError",
    "ServerConfiguration",
    "ServerResponse",
    "ServerToken",
    # Ports
    "IBroadcastingPort",
]
