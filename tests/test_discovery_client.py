import asyncio
from ipaddress import IPv4Address

import pytest

from beacon import (
    ClientConfiguration,
    DiscoveryClient,
    DiscoveryServer,
    ServerConfiguration,
    ServerResponse,
)


def _probe(port: int, message: str = "PING", timeout: float = 10.0) -> ClientConfiguration:
    return ClientConfiguration(
        port=port,
        message=message,
        timeout=timeout,
        broadcast_address="127.0.0.1",
    )


async def _start_ping_server(port: int) -> DiscoveryServer:
    server = DiscoveryServer(
        ServerConfiguration(
            port=port,
            response_message="PONG",
            filter=lambda text: text == "PING",
        )
    )
    await server.start()
    return server


def test_send_rejects_missing_configuration() -> None:
    with pytest.raises(ValueError):
        DiscoveryClient().send(None, lambda response: None)


def test_send_rejects_missing_callback() -> None:
    configuration = ClientConfiguration(port=12345, message="Hello Server", timeout=10)

    with pytest.raises(ValueError):
        DiscoveryClient().send(configuration, None)


@pytest.mark.asyncio
async def test_probe_rejects_missing_configuration() -> None:
    with pytest.raises(ValueError):
        await DiscoveryClient().probe(None)


@pytest.mark.asyncio
async def test_send_invokes_callback_once_with_reply(unused_udp_port: int) -> None:
    server = await _start_ping_server(unused_udp_port)
    responses: list[ServerResponse] = []
    configuration = _probe(unused_udp_port)

    client = DiscoveryClient()
    try:
        task = client.send(configuration, responses.append)
        await asyncio.wait_for(task, timeout=5)
    finally:
        await server.dispose()

    assert len(responses) == 1
    response = responses[0]
    assert response.message == "PONG"
    assert response.configuration is configuration
    assert response.address == IPv4Address("127.0.0.1")
    assert client.pending_count == 0


@pytest.mark.asyncio
async def test_send_accepts_async_callback(unused_udp_port: int) -> None:
    server = await _start_ping_server(unused_udp_port)
    done = asyncio.Event()
    replies: list[str] = []

    async def on_response(response: ServerResponse) -> None:
        replies.append(response.message)
        done.set()

    client = DiscoveryClient()
    try:
        client.send(_probe(unused_udp_port), on_response)
        await asyncio.wait_for(done.wait(), timeout=5)
    finally:
        await server.dispose()

    assert replies == ["PONG"]


@pytest.mark.asyncio
async def test_rejected_probe_times_out_silently(unused_udp_port: int) -> None:
    server = await _start_ping_server(unused_udp_port)
    responses: list[ServerResponse] = []
    timeout = 0.3
    loop = asyncio.get_running_loop()

    try:
        started = loop.time()
        task = DiscoveryClient().send(_probe(unused_udp_port, message="HELLO", timeout=timeout), responses.append)
        await asyncio.wait_for(task, timeout=5)
        elapsed = loop.time() - started
    finally:
        await server.dispose()

    assert responses == []
    assert task.exception() is None
    assert elapsed >= timeout - 0.01
    assert elapsed < timeout + 1.0


@pytest.mark.asyncio
async def test_probe_without_server_returns_none(unused_udp_port: int) -> None:
    response = await DiscoveryClient().probe(_probe(unused_udp_port, timeout=0.2))

    assert response is None


@pytest.mark.asyncio
async def test_failing_callback_does_not_fail_task(unused_udp_port: int) -> None:
    server = await _start_ping_server(unused_udp_port)

    def broken(response: ServerResponse) -> None:
        raise RuntimeError("callback failed")

    try:
        task = DiscoveryClient().send(_probe(unused_udp_port), broken)
        await asyncio.wait_for(task, timeout=5)
    finally:
        await server.dispose()

    assert task.exception() is None


@pytest.mark.asyncio
async def test_close_cancels_pending_probes(unused_udp_port: int) -> None:
    client = DiscoveryClient()
    responses: list[ServerResponse] = []
    loop = asyncio.get_running_loop()

    task = client.send(_probe(unused_udp_port, timeout=10), responses.append)
    await asyncio.sleep(0.05)
    assert client.pending_count == 1

    started = loop.time()
    await client.close()

    assert task.done()
    assert loop.time() - started < 1.0
    assert responses == []
    assert client.pending_count == 0
