"""Domain models for Beacon discovery."""

from dataclasses import dataclass
from datetime import timedelta
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Callable, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

# Wire defaults
DEFAULT_PORT = 37455
DEFAULT_BROADCAST_ADDRESS = "255.255.255.255"
BUFFER_SIZE = 4096
ENCODING = "utf-8"

IPAddress = Union[IPv4Address, IPv6Address]
MessageFilter = Callable[[str], bool]


def _require_text(value: str, field_name: str) -> str:
    if not value.strip():
        raise ValueError(f"{field_name} must not be empty or whitespace")
    try:
        value.encode(ENCODING)
    except UnicodeEncodeError as e:
        raise ValueError(f"{field_name} cannot be encoded as {ENCODING}: {e.reason}") from e
    return value


class ServerConfiguration(BaseModel):
    """What a discovery server listens on, which messages it accepts and what it replies."""

    port: int = Field(gt=0, le=65535)
    response_message: str
    filter: MessageFilter

    model_config = {"frozen": True}

    @field_validator("response_message")
    @classmethod
    def _validate_response_message(cls, value: str) -> str:
        return _require_text(value, "response_message")


class ClientConfiguration(BaseModel):
    """What a discovery client broadcasts, where, and how long it waits for a reply."""

    port: int = Field(gt=0, le=65535)
    message: str
    # Seconds
    timeout: float = Field(gt=0)
    broadcast_address: IPv4Address = IPv4Address(DEFAULT_BROADCAST_ADDRESS)

    model_config = {"frozen": True}

    @field_validator("message")
    @classmethod
    def _validate_message(cls, value: str) -> str:
        return _require_text(value, "message")

    @field_validator("timeout", mode="before")
    @classmethod
    def _convert_timedelta(cls, value: Any) -> Any:
        if isinstance(value, timedelta):
            return value.total_seconds()
        return value


class ServerToken:
    """
    Opaque handle for one running discovery server.

    Tokens are only created by the registry. Two tokens are equal only if
    they wrap the same generated identifier.
    """

    __slots__ = ("_id",)

    def __init__(self) -> None:
        self._id: UUID = uuid4()

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, ServerToken):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __repr__(self) -> str:
        return f"ServerToken({str(self._id)[:8]}...)"


@dataclass(frozen=True)
class ServerResponse:
    """Reply a discovery server sent to a client probe."""

    message: str
    configuration: ClientConfiguration
    address: IPAddress


@dataclass(frozen=True)
class ClientMessage:
    """Accepted client message, as seen by the server's observation events."""

    address: IPAddress
    message: str
    configuration: ServerConfiguration


# Exception classes
class BeaconError(Exception):
    """Base exception for Beacon errors."""

    pass


class ServerBindError(BeaconError):
    """Discovery server could not open its listening socket."""

    def __init__(self, port: int, reason: str = ""):
        self.port = port
        self.reason = reason
        super().__init__(f"Failed to bind discovery server on port {port}: {reason}")
