"""Random identities and transfer values for announce requests."""

from __future__ import annotations

import random

from trackertester.config import RequestParams
from trackertester.types import ClientConfig, Peer

__all__ = [
    "generate_client_pool",
    "generate_info_hash",
    "generate_info_hash_pool",
    "generate_ipv4",
    "generate_peer_id",
    "random_int64",
]

_CLIENT_ID = "GO"
_CLIENT_VERSION = "0001"


def generate_info_hash(rng: random.Random) -> str:
    """Return a random info_hash as 40 lowercase hex characters."""
    return rng.randbytes(20).hex()


def generate_peer_id(rng: random.Random) -> str:
    """Return a 20-character peer id of the form ``-GO0001-<12 hex digits>``."""
    return f"-{_CLIENT_ID}{_CLIENT_VERSION}-{rng.randbytes(6).hex()}"


def generate_ipv4(rng: random.Random) -> str:
    """Return a random dotted IPv4 address."""
    return ".".join(str(rng.randrange(256)) for _ in range(4))


def random_int64(rng: random.Random, low: int, high: int) -> int:
    """Return a random integer in the inclusive range ``[low, high]``."""
    if high < low:
        raise ValueError(f"invalid range: {low} > {high}")
    return low + rng.randrange(high - low + 1)


def generate_info_hash_pool(size: int, rng: random.Random) -> list[str]:
    """Return ``size`` random info_hashes."""
    return [generate_info_hash(rng) for _ in range(size)]


def generate_client_pool(
    size: int, params: RequestParams, rng: random.Random
) -> list[ClientConfig]:
    """Return ``size`` random clients with ports drawn from ``params``."""
    return [
        ClientConfig(
            peer_id=generate_peer_id(rng),
            address=Peer(
                ip=generate_ipv4(rng),
                port=random_int64(rng, params.min_port, params.max_port),
            ),
        )
        for _ in range(size)
    ]