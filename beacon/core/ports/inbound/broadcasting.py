"""Broadcasting inbound port interface."""

import asyncio
from abc import ABC, abstractmethod

from beacon.core.domain.events import EventHandler, EventHook
from beacon.core.domain.models import (
    ClientConfiguration,
    ClientMessage,
    ServerConfiguration,
    ServerResponse,
    ServerToken,
)


class IBroadcastingPort(ABC):
    """
    Inbound port for UDP broadcast discovery.

    This port defines the interface for:
    - Starting discovery servers that answer accepted broadcast probes
    - Stopping a single server by its token, or all of them
    - Sending a broadcast probe and receiving the first reply
    - Observing accepted messages across every started server

    Usage:
        token = await broadcasting.start(
            ServerConfiguration(port=37455, response_message="Hello Client",
                                filter=lambda s: s == "Hello Server")
        )
        broadcasting.client_message_received.subscribe(print)

        broadcasting.send(
            ClientConfiguration(port=37455, message="Hello Server", timeout=10),
            lambda response: print(response.address, response.message),
        )

        await broadcasting.stop(token)
    """

    @property
    @abstractmethod
    def client_message_receiving(self) -> EventHook[ClientMessage]:
        """Raised for an accepted client message before the reply is sent."""
        pass

    @property
    @abstractmethod
    def client_message_received(self) -> EventHook[ClientMessage]:
        """Raised for an accepted client message after the reply was sent."""
        pass

    @abstractmethod
    async def start(self, configuration: ServerConfiguration) -> ServerToken:
        """
        Start a new discovery server.

        Args:
            configuration: Port, reply text and message filter of the server

        Returns:
            Token representing the started server, used to stop it

        Raises:
            ValueError: If configuration is None
            ServerBindError: If the port cannot be bound
        """
        pass

    @abstractmethod
    async def stop(self, token: ServerToken) -> None:
        """
        Stop the discovery server started with the given token.

        Unknown or already stopped tokens are ignored.

        Args:
            token: Token returned from start()

        Raises:
            ValueError: If token is None
        """
        pass

    @abstractmethod
    async def stop_all(self) -> None:
        """Stop every discovery server started through this port."""
        pass

    @abstractmethod
    def send(
        self,
        configuration: ClientConfiguration,
        callback: EventHandler[ServerResponse],
    ) -> "asyncio.Task[None]":
        """
        Broadcast a probe and report the first reply.

        The probe runs in the background. The callback is invoked once if a
        server replies within the timeout and never otherwise.

        Args:
            configuration: Port, message and timeout of the probe
            callback: Invoked with the ServerResponse

        Returns:
            Task running the probe

        Raises:
            ValueError: If configuration or callback is None
        """
        pass
