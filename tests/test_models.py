from datetime import timedelta
from ipaddress import IPv4Address

import pytest

from beacon import ClientConfiguration, ServerConfiguration, ServerToken


def _accept_all(text: str) -> bool:
    return True


@pytest.mark.parametrize("port", [-1, 0, 65536])
def test_server_configuration_rejects_invalid_port(port: int) -> None:
    with pytest.raises(ValueError):
        ServerConfiguration(port=port, response_message="Hello Client", filter=_accept_all)


@pytest.mark.parametrize("response_message", [None, "", "  ", "\t\n"])
def test_server_configuration_rejects_blank_response(response_message) -> None:
    with pytest.raises(ValueError):
        ServerConfiguration(port=12345, response_message=response_message, filter=_accept_all)


def test_server_configuration_rejects_missing_filter() -> None:
    with pytest.raises(ValueError):
        ServerConfiguration(port=12345, response_message="Hello Client", filter=None)


def test_server_configuration_is_frozen() -> None:
    configuration = ServerConfiguration(port=12345, response_message="Hello Client", filter=_accept_all)

    with pytest.raises(ValueError):
        configuration.port = 1

    assert configuration.filter("anything") is True
    assert configuration.response_message == "Hello Client"


@pytest.mark.parametrize("port", [-1, 0])
def test_client_configuration_rejects_invalid_port(port: int) -> None:
    with pytest.raises(ValueError):
        ClientConfiguration(port=port, message="Hello Server", timeout=10)


@pytest.mark.parametrize("message", [None, "", "  "])
def test_client_configuration_rejects_blank_message(message) -> None:
    with pytest.raises(ValueError):
        ClientConfiguration(port=12345, message=message, timeout=10)


@pytest.mark.parametrize("timeout", [0, -1.5, timedelta(0), timedelta(seconds=-1)])
def test_client_configuration_rejects_non_positive_timeout(timeout) -> None:
    with pytest.raises(ValueError):
        ClientConfiguration(port=12345, message="Hello Server", timeout=timeout)


def test_client_configuration_accepts_timedelta() -> None:
    configuration = ClientConfiguration(
        port=12345,
        message="Hello Server",
        timeout=timedelta(milliseconds=1500),
    )

    assert configuration.timeout == 1.5
    assert configuration.broadcast_address == IPv4Address("255.255.255.255")


def test_client_configuration_rejects_invalid_broadcast_address() -> None:
    with pytest.raises(ValueError):
        ClientConfiguration(port=12345, message="Hello Server", timeout=1, broadcast_address="not-an-ip")


def test_token_equals_itself() -> None:
    token = ServerToken()
    same = token

    assert token == same
    assert token is same
    assert hash(token) == hash(same)


def test_distinct_tokens_are_not_equal() -> None:
    first = ServerToken()
    second = ServerToken()

    assert first != second
    assert first != "token"
    assert len({first, second}) == 2


def test_token_is_usable_as_mapping_key() -> None:
    token = ServerToken()
    servers = {token: "server"}

    assert servers[token] == "server"
    assert ServerToken() not in servers


def test_server_configuration_rejects_unencodable_response() -> None:
    with pytest.raises(ValueError):
        ServerConfiguration(port=12345, response_message="\ud800", filter=_accept_all)


def test_client_configuration_rejects_unencodable_message() -> None:
    with pytest.raises(ValueError):
        ClientConfiguration(port=12345, message="Hello \udc80", timeout=10)
