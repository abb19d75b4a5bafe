"""Discovery server - answers accepted UDP broadcast probes."""

import asyncio
import socket
from ipaddress import ip_address
from typing import Any, Optional

import structlog

from beacon.core.domain.events import EventHook
from beacon.core.domain.models import (
    BUFFER_SIZE,
    ENCODING,
    BeaconError,
    ClientMessage,
    ServerBindError,
    ServerConfiguration,
)

logger = structlog.get_logger(__name__)

# Seconds to wait after a failed receive before trying again
RECEIVE_ERROR_BACKOFF = 0.5


class DiscoveryServer:
    """
    UDP broadcast discovery server.

    Listens on the configured port, runs every incoming message through the
    configured filter and replies to accepted senders with the configured
    response message. Rejected messages are dropped without a reply.

    Two hooks observe accepted messages:
    - client_message_receiving fires before the reply is sent
    - client_message_received fires after the reply was sent
    """

    def __init__(self, configuration: ServerConfiguration):
        if configuration is None:
            raise ValueError("configuration must not be None")

        self._configuration = configuration

        self.client_message_receiving: EventHook[ClientMessage] = EventHook(
            "client_message_receiving"
        )
        self.client_message_received: EventHook[ClientMessage] = EventHook(
            "client_message_received"
        )

        self._socket: Optional[socket.socket] = None
        self._accept_task: Optional[asyncio.Task[None]] = None
        self._running = False
        self._disposed = False

    @property
    def configuration(self) -> ServerConfiguration:
        return self._configuration

    @property
    def port(self) -> int:
        return self._configuration.port

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """
        Bind the listening socket and start the accept loop.

        Returns as soon as the loop is scheduled.

        Raises:
            ServerBindError: If the port cannot be bound
            BeaconError: If the server was already disposed
        """
        if self._disposed:
            raise BeaconError("Discovery server has been disposed")
        if self._running:
            return

        self._socket = self._create_socket()
        self._running = True
        self._accept_task = asyncio.create_task(self._accept_loop())

        logger.info(
            "discovery_server_started",
            port=self.port,
        )

    async def dispose(self) -> None:
        """Stop the accept loop and release the listening socket."""
        if self._disposed:
            return

        self._disposed = True
        self._running = False

        task, self._accept_task = self._accept_task, None
        try:
            if task:
                task.cancel()
                # An observation handler may dispose the server from inside the loop
                if task is not asyncio.current_task():
                    try:
                        await task
                    except asyncio.CancelledError:
                        pass
                    except Exception as e:
                        logger.error(
                            "discovery_server_loop_failed",
                            port=self.port,
                            error=str(e),
                        )
        finally:
            if self._socket:
                self._socket.close()
                self._socket = None

        logger.info(
            "discovery_server_stopped",
            port=self.port,
        )

    def _create_socket(self) -> socket.socket:
        """Create the non-blocking, broadcast-capable listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.setblocking(False)
            sock.bind(("", self.port))
        except OSError as e:
            sock.close()
            logger.error(
                "discovery_server_bind_failed",
                port=self.port,
                error=str(e),
            )
            raise ServerBindError(self.port, str(e)) from e
        return sock

    async def _accept_loop(self) -> None:
        """Receive datagrams until the server is disposed."""
        loop = asyncio.get_running_loop()

        while self._running:
            try:
                if not self._socket:
                    break

                data, addr = await loop.sock_recvfrom(self._socket, BUFFER_SIZE)

            except asyncio.CancelledError:
                break
            except OSError as e:
                if not self._running:
                    break
                # ICMP errors from earlier replies surface here on some platforms
                logger.warning(
                    "discovery_server_receive_error",
                    port=self.port,
                    error=str(e),
                )
                await asyncio.sleep(RECEIVE_ERROR_BACKOFF)
                continue

            if self._disposed:
                break

            try:
                await self._handle_datagram(loop, data, addr)
            except Exception as e:
                logger.error(
                    "discovery_server_datagram_error",
                    port=self.port,
                    host=addr[0],
                    error=str(e),
                )

    async def _handle_datagram(
        self,
        loop: asyncio.AbstractEventLoop,
        data: bytes,
        addr: Any,
    ) -> None:
        """Filter one datagram and reply if it is accepted."""
        try:
            text = data.decode(ENCODING)
        except UnicodeDecodeError:
            logger.debug(
                "discovery_server_undecodable_message",
                port=self.port,
                host=addr[0],
                size=len(data),
            )
            return

        try:
            accepted = bool(self._configuration.filter(text))
        except Exception as e:
            logger.warning(
                "discovery_server_filter_error",
                port=self.port,
                host=addr[0],
                error=str(e),
            )
            return

        if not accepted:
            logger.debug(
                "discovery_server_message_rejected",
                port=self.port,
                host=addr[0],
            )
            return

        message = ClientMessage(
            address=ip_address(addr[0]),
            message=text,
            configuration=self._configuration,
        )

        await self.client_message_receiving.emit(message)

        # Disposed by a receiving handler
        if not self._socket:
            return

        try:
            await loop.sock_sendto(
                self._socket,
                self._configuration.response_message.encode(ENCODING),
                addr,
            )
        except OSError as e:
            logger.warning(
                "discovery_server_reply_failed",
                port=self.port,
                host=addr[0],
                error=str(e),
            )
            return

        logger.debug(
            "discovery_server_replied",
            port=self.port,
            host=addr[0],
            client_port=addr[1],
        )

        await self.client_message_received.emit(message)
