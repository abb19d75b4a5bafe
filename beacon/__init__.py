"""
Beacon - UDP broadcast discovery

A process advertises itself on the local network by running a discovery
server that answers accepted broadcast probes. Another process finds it by
broadcasting a probe and waiting for the first reply.
"""

__version__ = "0.1.0"

from beacon.core.domain.events import EventHook
from beacon.core.domain.models import (
    DEFAULT_BROADCAST_ADDRESS,
    DEFAULT_PORT,
    BeaconError,
    ClientConfiguration,
    ClientMessage,
    ServerBindError,
    ServerConfiguration,
    ServerResponse,
    ServerToken,
)
from beacon.core.ports.inbound.broadcasting import IBroadcastingPort
from beacon.discovery.client import DiscoveryClient
from beacon.discovery.registry import ServerRegistry
from beacon.discovery.server import DiscoveryServer

__all__ = [
    # Main
    "ServerRegistry",
    "DiscoveryServer",
    "DiscoveryClient",
    "IBroadcastingPort",
    # Models
    "ServerConfiguration",
    "ClientConfiguration",
    "ServerResponse",
    "ClientMessage",
    "ServerToken",
    "EventHook",
    # Defaults
    "DEFAULT_PORT",
    "DEFAULT_BROADCAST_ADDRESS",
    # Errors
    "BeaconError",
    "ServerBindError",
]
