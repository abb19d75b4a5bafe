"""Inbound ports - interfaces for external actors to interact with Beacon."""

from beacon.core.ports.inbound.broadcasting import IBroadcastingPort

__all__ = ["IBroadcastingPort"]
