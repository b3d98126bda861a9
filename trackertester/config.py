"""Command-line configuration of the announce load generator."""

from __future__ import annotations

import argparse
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from fractions import Fraction

__all__ = ["Config", "ConfigError", "RequestParams", "parse_args", "parse_duration"]

_GIB = 1 << 30
_NANOSECONDS_PER_SECOND = 1_000_000_000
_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": _NANOSECONDS_PER_SECOND,
    "m": 60 * _NANOSECONDS_PER_SECOND,
    "h": 3600 * _NANOSECONDS_PER_SECOND,
}
_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")
_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class ConfigError(ValueError):
    """Raised when the command-line configuration is invalid."""


@dataclass
class RequestParams:
    """Ranges and choices used to build random announce requests."""

    min_port: int = 1
    max_port: int = 65535
    min_uploaded: int = 0
    max_uploaded: int = _GIB
    min_downloaded: int = 0
    max_downloaded: int = _GIB
    min_left: int = 0
    max_left: int = _GIB
    events: tuple[str, ...] = ("started", "completed", "stopped", "")
    ip_range: tuple[str, ...] = ("", "127.0.0.1", "192.168.1.1", "10.0.0.1")
    min_num_want: int = 0
    max_num_want: int = 200
    min_key_length: int = 8
    max_key_length: int = 12


@dataclass
class Config:
    """Settings of one load-generation run; durations are in seconds.

    A ``duration`` of zero means run until interrupted.
    """

    concurrent_requests: int = 1
    http_tracker_url: str = ""
    udp_tracker_url: str = ""
    duration: float = 0.0
    request_timeout: float = 10.0
    verbose: bool = True
    info_hash_pool_size: int = 100
    client_pool_size: int = 50
    seeder_probability: float = 0.3
    request_params: RequestParams = field(default_factory=RequestParams)


def parse_duration(text: str) -> float:
    """Parse a duration such as ``"1h30m"`` or ``"-1.5s"`` into seconds.

    Accepted units are ns, us (or µs), ms, s, m and h.
    """
    rest = text
    negative = False
    if rest[:1] in ("-", "+"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return 0.0
    if not rest:
        raise ConfigError(f'time: invalid duration "{text}"')

    limit = (1 << 63) if negative else (1 << 63) - 1
    total = 0
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ConfigError(f'time: invalid duration "{text}"')
        if not unit:
            raise ConfigError(f'time: missing unit in duration "{text}"')
        scale = _UNITS.get(unit)
        if scale is None:
            raise ConfigError(f'time: unknown unit "{unit}" in duration "{text}"')
        value = int(whole or "0") * scale
        if fraction:
            value += int(Fraction(int(fraction), 10 ** len(fraction)) * scale)
        total += value
        if total > limit:
            raise ConfigError(f'time: invalid duration "{text}"')
        pos = match.end()

    seconds = total / _NANOSECONDS_PER_SECOND
    return -seconds if negative else seconds


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


def _build_parser() -> argparse.ArgumentParser:
    defaults = Config()
    parser = argparse.ArgumentParser(
        prog="trackertester",
        description="Send random announce requests to BitTorrent trackers.",
        allow_abbrev=False,
    )
    parser.add_argument(
        "-concurrent",
        "--concurrent",
        dest="concurrent_requests",
        type=int,
        default=defaults.concurrent_requests,
        help="Number of concurrent requests",
    )
    parser.add_argument(
        "-http-tracker",
        "--http-tracker",
        dest="http_tracker_url",
        default=defaults.http_tracker_url,
        help="HTTP Tracker URL",
    )
    parser.add_argument(
        "-udp-tracker",
        "--udp-tracker",
        dest="udp_tracker_url",
        default=defaults.udp_tracker_url,
        help="UDP Tracker URL",
    )
    parser.add_argument(
        "-duration",
        "--duration",
        dest="duration",
        default="",
        help="Duration to run (e.g., 1m, 1h, 30s)",
    )
    parser.add_argument(
        "-verbose",
        "--verbose",
        dest="verbose",
        type=_parse_bool,
        nargs="?",
        const=True,
        default=defaults.verbose,
        help="Verbose output",
    )
    parser.add_argument(
        "-hashpool",
        "--hashpool",
        dest="info_hash_pool_size",
        type=int,
        default=defaults.info_hash_pool_size,
        help="Size of the info_hash pool",
    )
    parser.add_argument(
        "-clientpool",
        "--clientpool",
        dest="client_pool_size",
        type=int,
        default=defaults.client_pool_size,
        help="Size of the peer pool",
    )
    parser.add_argument(
        "-seeders",
        "--seeders",
        dest="seeder_probability",
        type=float,
        default=defaults.seeder_probability,
        help="Probability of generating seeder requests (0.0-1.0)",
    )
    parser.add_argument("remaining", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> Config:
    """Build a :class:`Config` from command-line arguments.

    Malformed flags exit through argparse; invalid values raise
    :class:`ConfigError`.
    """
    namespace = _build_parser().parse_args(None if argv is None else list(argv))

    probability = namespace.seeder_probability
    if probability < 0 or probability > 1:
        raise ConfigError(
            f"Invalid seeder probability: {probability:.2f} "
            "(must be between 0.0 and 1.0)"
        )

    duration = 0.0
    if namespace.duration:
        try:
            duration = parse_duration(namespace.duration)
        except ConfigError as exc:
            raise ConfigError(f"Invalid duration: {exc}") from exc

    return Config(
        concurrent_requests=namespace.concurrent_requests,
        http_tracker_url=namespace.http_tracker_url,
        udp_tracker_url=namespace.udp_tracker_url,
        duration=duration,
        verbose=namespace.verbose,
        info_hash_pool_size=namespace.info_hash_pool_size,
        client_pool_size=namespace.client_pool_size,
        seeder_probability=probability,
    )