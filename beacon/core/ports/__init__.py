"""Port interfaces for hexagonal architecture."""

from beacon.core.ports.inbound.broadcasting import IBroadcastingPort

__all__ = [
    "IBroadcastingPort",
]
