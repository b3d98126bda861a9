"""Announce client for UDP trackers."""

from __future__ import annotations

import random
import re
import socket
import struct
import urllib.parse

from trackertester.peers import parse_compact_peers
from trackertester.types import ClientConfig, Peer, Tracker, TrackerError, TransferStats

__all__ = [
    "UDPTracker",
    "build_announce_request",
    "build_connect_request",
    "parse_announce_response",
    "parse_connect_response",
    "url_path_query",
]

PROTOCOL_ID = 0x41727101980
ACTION_CONNECT = 0
ACTION_ANNOUNCE = 1
URL_DATA_OPTION = 0x2

_HEX_HASH = re.compile(r"[0-9a-fA-F]{40}")
_CONNECT_REQUEST = struct.Struct(">QII")
_CONNECT_RESPONSE = struct.Struct(">IIq")
_ANNOUNCE_HEAD = struct.Struct(">qii")
_ANNOUNCE_TAIL = struct.Struct(">qqqiIIiH")
_ANNOUNCE_RESPONSE_HEAD = struct.Struct(">II")
_ANNOUNCE_HEADER_SIZE = 20
_MAX_RESPONSE = 1024


def build_connect_request(transaction_id: int) -> bytes:
    """Return the 16-byte connect request."""
    return _CONNECT_REQUEST.pack(
        PROTOCOL_ID, ACTION_CONNECT, transaction_id & 0xFFFFFFFF
    )


def parse_connect_response(data: bytes, transaction_id: int) -> int:
    """Validate a connect response and return its connection id."""
    if len(data) < _CONNECT_RESPONSE.size:
        raise TrackerError(
            f"error receiving connect response: short read (read {len(data)} bytes)"
        )
    action, response_tid, connection_id = _CONNECT_RESPONSE.unpack_from(data)
    if action != ACTION_CONNECT or response_tid != transaction_id & 0xFFFFFFFF:
        raise TrackerError("invalid connect response")
    return connection_id


def build_announce_request(
    connection_id: int,
    transaction_id: int,
    info_hash: bytes,
    peer_id: str,
    stats: TransferStats,
    port: int,
    path_query: str,
) -> bytes:
    """Return an announce request, with a URLData option when ``path_query`` is set."""
    request = bytearray(
        _ANNOUNCE_HEAD.pack(connection_id, ACTION_ANNOUNCE, transaction_id)
    )
    request += bytes(info_hash)
    request += peer_id.encode("utf-8")
    request += _ANNOUNCE_TAIL.pack(
        stats.downloaded,
        stats.left,
        stats.uploaded,
        0,  # event: none
        0,  # ip: use the sender's address
        0,  # key
        -1,  # num_want: tracker default
        port & 0xFFFF,
    )
    if path_query:
        raw = path_query.encode("utf-8")
        request += bytes([URL_DATA_OPTION, len(raw) & 0xFF])
        request += raw
    return bytes(request)


def parse_announce_response(data: bytes, transaction_id: int) -> list[Peer]:
    """Validate an announce response and return the peers it lists."""
    if len(data) < _ANNOUNCE_HEADER_SIZE:
        raise TrackerError(
            f"error receiving announce response: short read ({len(data)} bytes)"
        )
    action, response_tid = _ANNOUNCE_RESPONSE_HEAD.unpack_from(data)
    if action != ACTION_ANNOUNCE or response_tid != transaction_id & 0xFFFFFFFF:
        raise TrackerError("invalid announce response")
    return parse_compact_peers(data[_ANNOUNCE_HEADER_SIZE:])


def url_path_query(tracker_url: str) -> str:
    """Return the decoded path of ``tracker_url`` plus its raw query, if any."""
    try:
        parts = urllib.parse.urlsplit(tracker_url)
    except ValueError as exc:
        raise TrackerError(f"invalid tracker URL: {exc}") from exc
    path_query = urllib.parse.unquote(parts.path)
    if parts.query:
        path_query += "?" + parts.query
    return path_query


class UDPTracker(Tracker):
    """Sends announce requests to a UDP tracker over a connected socket."""

    def __init__(
        self, tracker_url: str, config: ClientConfig, timeout: float | None
    ) -> None:
        try:
            parts = urllib.parse.urlsplit(tracker_url)
            port = parts.port
        except ValueError as exc:
            raise TrackerError(f"error parsing tracker URL: {exc}") from exc
        if parts.scheme != "udp":
            raise TrackerError(
                f"tracker URL must use udp scheme, found '{parts.scheme}'"
            )
        if port is None:
            raise TrackerError("error resolving UDP address: missing port in address")
        host = parts.hostname or "localhost"

        try:
            family, socktype, proto, _, address = socket.getaddrinfo(
                host, port, type=socket.SOCK_DGRAM
            )[0]
        except OSError as exc:
            raise TrackerError(f"error resolving UDP address: {exc}") from exc

        sock = socket.socket(family, socktype, proto)
        try:
            sock.connect(address)
        except OSError as exc:
            sock.close()
            raise TrackerError(f"error connecting to UDP tracker: {exc}") from exc

        self.tracker_url = tracker_url
        self.config = config
        self.timeout = timeout
        self._sock = sock

    def __enter__(self) -> UDPTracker:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the tracker's socket."""
        self._sock.close()

    def announce(self, info_hash: str, stats: TransferStats) -> list[Peer]:
        """Connect, announce, and return the peers; the socket is closed afterwards."""
        if not isinstance(info_hash, str) or not _HEX_HASH.fullmatch(info_hash):
            raise TrackerError(
                "invalid info_hash: must be a 40-character hexadecimal hash"
            )
        hash_bytes = bytes.fromhex(info_hash)
        try:
            connection_id = self._connect()
            return self._announce(connection_id, hash_bytes, stats)
        finally:
            self.close()

    def _exchange(self, payload: bytes, what: str, bufsize: int) -> bytes:
        try:
            self._sock.settimeout(self.timeout)
            self._sock.send(payload)
        except OSError as exc:
            raise TrackerError(f"error sending {what}: {exc}") from exc
        try:
            return self._sock.recv(bufsize)
        except OSError as exc:
            raise TrackerError(f"error receiving {what} response: {exc}") from exc

    def _connect(self) -> int:
        transaction_id = random.getrandbits(31)
        reply = self._exchange(
            build_connect_request(transaction_id), "connect", _CONNECT_RESPONSE.size
        )
        return parse_connect_response(reply, transaction_id)

    def _announce(
        self, connection_id: int, info_hash: bytes, stats: TransferStats
    ) -> list[Peer]:
        transaction_id = random.getrandbits(31)
        request = build_announce_request(
            connection_id,
            transaction_id,
            info_hash,
            self.config.peer_id,
            stats,
            self.config.address.port,
            url_path_query(self.tracker_url),
        )
        reply = self._exchange(request, "announce", _MAX_RESPONSE)
        return parse_announce_response(reply, transaction_id)