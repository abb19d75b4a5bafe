"""Server registry - token-addressed set of running discovery servers."""

import asyncio
from dataclasses import dataclass
from typing import Any

import structlog

from beacon.core.domain.events import EventHandler, EventHook
from beacon.core.domain.models import (
    ClientConfiguration,
    ClientMessage,
    ServerConfiguration,
    ServerResponse,
    ServerToken,
)
from beacon.core.ports.inbound.broadcasting import IBroadcastingPort
from beacon.discovery.client import DiscoveryClient
from beacon.discovery.server import DiscoveryServer

logger = structlog.get_logger(__name__)


@dataclass
class _ServerEntry:
    """A running server and the relay subscriptions the registry holds on it."""

    server: DiscoveryServer
    receiving_subscription: str
    received_subscription: str


class ServerRegistry(IBroadcastingPort):
    """
    Registry of concurrently running discovery servers.

    Every server started here is addressed by an opaque ServerToken.
    Observation events of all servers are relayed to the registry's own
    hooks, so callers can watch every server without holding references to
    them.

    The token mapping is only changed while holding an asyncio.Lock. Binding
    and disposing sockets happen outside it. The critical sections contain no
    await today; the lock keeps them serialized if one is ever added there.

    Usage:
        async with ServerRegistry() as registry:
            registry.client_message_received.subscribe(on_received)
            token = await registry.start(configuration)
            ...
            await registry.stop(token)
    """

    def __init__(self) -> None:
        self._servers: dict[ServerToken, _ServerEntry] = {}
        self._lock = asyncio.Lock()
        self._client = DiscoveryClient()

        self._client_message_receiving: EventHook[ClientMessage] = EventHook(
            "client_message_receiving"
        )
        self._client_message_received: EventHook[ClientMessage] = EventHook(
            "client_message_received"
        )

    @property
    def client_message_receiving(self) -> EventHook[ClientMessage]:
        return self._client_message_receiving

    @property
    def client_message_received(self) -> EventHook[ClientMessage]:
        return self._client_message_received

    def __len__(self) -> int:
        return len(self._servers)

    def __contains__(self, token: object) -> bool:
        return token in self._servers

    async def __aenter__(self) -> "ServerRegistry":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    # === Server lifecycle ===

    async def start(self, configuration: ServerConfiguration) -> ServerToken:
        """Start a discovery server and return its token."""
        if configuration is None:
            raise ValueError("configuration must not be None")

        server = DiscoveryServer(configuration)
        entry = _ServerEntry(
            server=server,
            receiving_subscription=server.client_message_receiving.subscribe(
                self._client_message_receiving.emit
            ),
            received_subscription=server.client_message_received.subscribe(
                self._client_message_received.emit
            ),
        )

        try:
            await server.start()
        except Exception:
            self._unsubscribe(entry)
            raise

        token = ServerToken()
        async with self._lock:
            self._servers[token] = entry

        logger.info(
            "server_registered",
            token=repr(token),
            port=configuration.port,
        )

        return token

    async def stop(self, token: ServerToken) -> None:
        """Stop the server behind the token; unknown tokens are ignored."""
        if token is None:
            raise ValueError("token must not be None")

        async with self._lock:
            entry = self._servers.pop(token, None)

        if entry is None:
            logger.debug("server_token_unknown", token=repr(token))
            return

        await self._release(entry)

        logger.info(
            "server_unregistered",
            token=repr(token),
            port=entry.server.port,
        )

    async def stop_all(self) -> None:
        """Stop every registered server."""
        async with self._lock:
            entries = list(self._servers.values())
            self._servers.clear()

        for entry in entries:
            await self._release(entry)

        if entries:
            logger.info("servers_stopped", count=len(entries))

    async def aclose(self) -> None:
        """Stop all servers and cancel probes still in flight."""
        await self.stop_all()
        await self._client.close()

    # === Client ===

    def send(
        self,
        configuration: ClientConfiguration,
        callback: EventHandler[ServerResponse],
    ) -> "asyncio.Task[None]":
        """Broadcast a probe; see DiscoveryClient.send()."""
        return self._client.send(configuration, callback)

    # === Internals ===

    def _unsubscribe(self, entry: _ServerEntry) -> None:
        entry.server.client_message_receiving.unsubscribe(entry.receiving_subscription)
        entry.server.client_message_received.unsubscribe(entry.received_subscription)

    async def _release(self, entry: _ServerEntry) -> None:
        self._unsubscribe(entry)
        await entry.server.dispose()
