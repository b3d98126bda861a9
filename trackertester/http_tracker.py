"""Announce client for HTTP and HTTPS trackers."""

from __future__ import annotations

import http.client
import re
import urllib.error
import urllib.parse
import urllib.request
from typing import Any

from trackertester.bencode import BencodeError, decode_into, encode
from trackertester.peers import parse_compact_peers
from trackertester.types import (
    ClientConfig,
    NonCompactPeer,
    Peer,
    Tracker,
    TrackerError,
    TrackerResponse,
    TransferStats,
)

__all__ = ["HTTPTracker", "parse_non_compact_peers", "parse_tracker_response"]

_HEX_HASH = re.compile(r"[0-9a-fA-F]{40}")


def _check_info_hash(info_hash: str) -> None:
    if not isinstance(info_hash, str) or not _HEX_HASH.fullmatch(info_hash):
        raise TrackerError(
            "invalid info_hash: must be a 40-character hexadecimal hash"
        )


class HTTPTracker(Tracker):
    """Sends announce requests to an HTTP tracker.

    ``compact`` selects whether a compact peer list is requested; it is on
    by default.
    """

    def __init__(
        self, tracker_url: str, config: ClientConfig, timeout: float | None
    ) -> None:
        self.tracker_url = tracker_url
        self.config = config
        self.timeout = timeout
        self.compact = True

    def build_announce_url(self, info_hash: str, stats: TransferStats) -> str:
        """Return the full announce URL for ``info_hash`` and ``stats``."""
        _check_info_hash(info_hash)
        params = {
            "info_hash": info_hash,
            "peer_id": self.config.peer_id,
            "port": str(self.config.address.port),
            "uploaded": str(stats.uploaded),
            "downloaded": str(stats.downloaded),
            "left": str(stats.left),
            "compact": "1" if self.compact else "0",
        }
        query = urllib.parse.urlencode(sorted(params.items()))
        return f"{self.tracker_url}?{query}"

    def announce(self, info_hash: str, stats: TransferStats) -> list[Peer]:
        """Announce to the tracker and return the peers it lists."""
        url = self.build_announce_url(info_hash, stats)
        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as response:
                status = response.status
                reason = response.reason
                body = response.read()
        except urllib.error.HTTPError as exc:
            exc.close()
            raise TrackerError(
                f"unexpected tracker response: {exc.code} {exc.reason}"
            ) from exc
        except (OSError, http.client.HTTPException) as exc:
            raise TrackerError(f"error contacting HTTP tracker: {exc}") from exc

        if status != 200:
            raise TrackerError(f"unexpected tracker response: {status} {reason}")
        return parse_tracker_response(body, self.compact)


def parse_tracker_response(body: bytes, compact: bool) -> list[Peer]:
    """Decode a bencoded announce response body into its peers."""
    try:
        response = decode_into(body, TrackerResponse)
    except BencodeError as exc:
        raise TrackerError(f"error decoding response: {exc}") from exc

    if response.failure_reason:
        raise TrackerError(f"failure reason: {response.failure_reason}")

    if compact:
        if not isinstance(response.peers, bytes):
            raise TrackerError("expected compact peers as string")
        return parse_compact_peers(response.peers)

    if not isinstance(response.peers, list):
        raise TrackerError("expected non-compact peers as list")
    return parse_non_compact_peers(response.peers)


def parse_non_compact_peers(peer_list: list[Any]) -> list[Peer]:
    """Convert a list of peer dictionaries into peers."""
    peers = []
    for item in peer_list:
        if not isinstance(item, dict):
            raise TrackerError("invalid non-compact peer format")
        try:
            data = encode(item)
        except BencodeError as exc:
            raise TrackerError(f"error marshaling peer dict: {exc}") from exc
        try:
            peer = decode_into(data, NonCompactPeer)
        except BencodeError as exc:
            raise TrackerError(f"error unmarshaling peer dict: {exc}") from exc
        peers.append(peer.to_peer())
    return peers