"""Discovery module - UDP broadcast servers, client and registry."""

from beacon.discovery.client import DiscoveryClient
from beacon.discovery.registry import ServerRegistry
from beacon.discovery.server import DiscoveryServer

__all__ = [
    "DiscoveryClient",
    "DiscoveryServer",
    "ServerRegistry",
]
