"""
Connection abstraction shared by the router, downlinks and the web layer.

A Connection is one bidirectional peer channel with a role fixed at
connect time. The web layer wraps aiohttp WebSockets; tests use fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum, auto

IPV4_MAPPED_PREFIX = "::ffff:"


class Role(Enum):
    """Who is on the other end of a connection."""

    OPERATOR = auto()  # Browser client, receives angle broadcasts
    CONTROLLER = auto()  # Actuator controller, sends feedback


def normalize_address(address: str | None) -> str | None:
    """Strip the IPv4-mapped IPv6 prefix (::ffff:10.0.0.7 -> 10.0.0.7)."""
    if address and address.startswith(IPV4_MAPPED_PREFIX):
        return address[len(IPV4_MAPPED_PREFIX):]
    return address


class Connection(ABC):
    """One connected peer."""

    def __init__(self, role: Role, peer: str | None):
        self.role = role
        self.peer = normalize_address(peer)

    @property
    @abstractmethod
    def closed(self) -> bool:
        ...

    @abstractmethod
    async def send(self, text: str) -> None:
        """Send a text message. May raise if the peer is gone."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection."""
        ...

    def __repr__(self):
        return f"<{type(self).__name__} {self.role.name} {self.peer}>"
