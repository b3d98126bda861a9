"""Core data types shared by the tracker clients."""

from __future__ import annotations

import abc
import dataclasses
from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "ClientConfig",
    "NonCompactPeer",
    "Peer",
    "Tracker",
    "TrackerError",
    "TrackerResponse",
    "TransferStats",
]


class TrackerError(Exception):
    """Raised when a tracker request or its response is invalid."""


@dataclass(frozen=True)
class Peer:
    """Address of a peer: dotted IPv4 string and port."""

    ip: str
    port: int


@dataclass(frozen=True)
class TransferStats:
    """Transfer counters sent with an announce request."""

    uploaded: int = 0
    downloaded: int = 0
    left: int = 0


@dataclass(frozen=True)
class ClientConfig:
    """Identity of the announcing client."""

    peer_id: str
    address: Peer


@dataclass
class TrackerResponse:
    """Generic tracker announce response.

    ``peers`` is either compact peer bytes or a list of peer dictionaries.
    """

    failure_reason: str = field(default="", metadata={"bencode": "failure reason"})
    interval: int = field(default=0, metadata={"bencode": "interval"})
    peers: Any = field(default=None, metadata={"bencode": "peers"})


@dataclass
class NonCompactPeer:
    """A peer as described in a non-compact tracker response."""

    ip: str = field(default="", metadata={"bencode": "ip"})
    port: int = field(default=0, metadata={"bencode": "port"})
    peer_id: str = field(default="", metadata={"bencode": "peer_id"})

    def to_peer(self) -> Peer:
        """Return the address part of this peer."""
        return Peer(self.ip, self.port)


class Tracker(abc.ABC):
    """A tracker that can be sent announce requests."""

    @abc.abstractmethod
    def announce(self, info_hash: str, stats: TransferStats) -> list[Peer]:
        """Announce ``info_hash`` with ``stats`` and return the peers received."""


# Keep dataclasses referenced for type checkers inspecting field metadata.
_FIELDS = dataclasses.fields