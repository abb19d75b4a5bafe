"""Discovery client - one broadcast probe, at most one reply."""

import asyncio
import inspect
import socket
from ipaddress import ip_address
from typing import Optional

import structlog

from beacon.core.domain.events import EventHandler
from beacon.core.domain.models import (
    BUFFER_SIZE,
    ENCODING,
    ClientConfiguration,
    ServerResponse,
)

logger = structlog.get_logger(__name__)


class DiscoveryClient:
    """
    UDP broadcast discovery client.

    Each probe broadcasts the configured message and waits for the first
    reply until the configured timeout. A probe that times out simply has
    no result.
    """

    def __init__(self) -> None:
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        """Number of probes started with send() that have not finished."""
        return len(self._pending)

    async def probe(self, configuration: ClientConfiguration) -> Optional[ServerResponse]:
        """
        Broadcast one probe and wait for the first reply.

        The receive races against the timeout; whichever finishes first
        cancels the other.

        Args:
            configuration: Port, message, timeout and broadcast address

        Returns:
            The server response, or None if no reply arrived in time

        Raises:
            ValueError: If configuration is None
            OSError: If the probe could not be sent
        """
        if configuration is None:
            raise ValueError("configuration must not be None")

        loop = asyncio.get_running_loop()
        target = (str(configuration.broadcast_address), configuration.port)

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.setblocking(False)
            sock.bind(("", 0))

            await loop.sock_sendto(sock, configuration.message.encode(ENCODING), target)

            logger.debug(
                "discovery_probe_sent",
                host=target[0],
                port=target[1],
                timeout=configuration.timeout,
            )

            try:
                data, addr = await asyncio.wait_for(
                    loop.sock_recvfrom(sock, BUFFER_SIZE),
                    timeout=configuration.timeout,
                )
            except asyncio.TimeoutError:
                logger.debug(
                    "discovery_probe_timed_out",
                    port=configuration.port,
                    timeout=configuration.timeout,
                )
                return None
        finally:
            sock.close()

        try:
            message = data.decode(ENCODING)
        except UnicodeDecodeError:
            logger.warning(
                "discovery_probe_undecodable_reply",
                host=addr[0],
                size=len(data),
            )
            return None

        logger.debug(
            "discovery_probe_answered",
            host=addr[0],
            port=configuration.port,
        )

        return ServerResponse(
            message=message,
            configuration=configuration,
            address=ip_address(addr[0]),
        )

    def send(
        self,
        configuration: ClientConfiguration,
        callback: EventHandler[ServerResponse],
    ) -> "asyncio.Task[None]":
        """
        Start a probe in the background.

        Args:
            configuration: Port, message, timeout and broadcast address
            callback: Invoked once with the ServerResponse if a server replies

        Returns:
            Task running the probe; it never raises

        Raises:
            ValueError: If configuration or callback is None
        """
        if configuration is None:
            raise ValueError("configuration must not be None")
        if callback is None:
            raise ValueError("callback must not be None")

        task = asyncio.create_task(self._run(configuration, callback))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def close(self) -> None:
        """Cancel every probe still waiting for a reply."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()

    async def _run(
        self,
        configuration: ClientConfiguration,
        callback: EventHandler[ServerResponse],
    ) -> None:
        try:
            response = await self.probe(configuration)
        except asyncio.CancelledError:
            return
        except OSError as e:
            logger.error(
                "discovery_probe_failed",
                host=str(configuration.broadcast_address),
                port=configuration.port,
                error=str(e),
            )
            return

        if response is None:
            return

        try:
            result = callback(response)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error("callback_error", error=str(e))
