"""Parsing of compact peer lists."""

from __future__ import annotations

import struct

from trackertester.types import Peer, TrackerError

__all__ = ["parse_compact_peers"]

_COMPACT_PEER = struct.Struct(">4BH")


def parse_compact_peers(data: bytes | bytearray | memoryview) -> list[Peer]:
    """Parse a compact peer list: 4 bytes of IPv4 and 2 bytes of port each."""
    raw = bytes(data)
    if len(raw) % _COMPACT_PEER.size:
        raise TrackerError("invalid peer format")
    return [
        Peer(f"{a}.{b}.{c}.{d}", port)
        for a, b, c, d, port in _COMPACT_PEER.iter_unpack(raw)
    ]