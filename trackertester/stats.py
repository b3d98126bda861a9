"""Collection and reporting of announce statistics."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

__all__ = ["AnnounceResult", "Statistics", "format_duration"]

_log = logging.getLogger(__name__)

_NS_PER_SECOND = 1_000_000_000


@dataclass(frozen=True)
class AnnounceResult:
    """Outcome of one announce request; ``request_time`` is in seconds."""

    success: bool
    request_time: float
    peers_count: int = 0
    error_message: str = ""
    info_hash: str = ""
    peer_id: str = ""
    is_seeder: bool = False


def _fraction(value: int, precision: int) -> str:
    digits = f"{value:0{precision}d}".rstrip("0")
    return f".{digits}" if digits else ""


def _format_nanoseconds(nanoseconds: int) -> str:
    sign = "-" if nanoseconds < 0 else ""
    magnitude = abs(nanoseconds)
    if magnitude == 0:
        return "0s"
    if magnitude < _NS_PER_SECOND:
        if magnitude < 1_000:
            return f"{sign}{magnitude}ns"
        precision, unit = (3, "\u00b5s") if magnitude < 1_000_000 else (6, "ms")
        whole, rest = divmod(magnitude, 10**precision)
        return f"{sign}{whole}{_fraction(rest, precision)}{unit}"

    whole_seconds, rest = divmod(magnitude, _NS_PER_SECOND)
    text = f"{whole_seconds % 60}{_fraction(rest, 9)}s"
    minutes = whole_seconds // 60
    if minutes:
        text = f"{minutes % 60}m{text}"
        hours = minutes // 60
        if hours:
            text = f"{hours}h{text}"
    return sign + text


def format_duration(seconds: float) -> str:
    """Format ``seconds`` compactly, e.g. ``1h2m3.5s``, ``1.5ms`` or ``0s``."""
    return _format_nanoseconds(round(seconds * _NS_PER_SECOND))


@dataclass
class Statistics:
    """Thread-safe running totals over announce results."""

    requests_sent: int = 0
    requests_success: int = 0
    requests_failed: int = 0
    seeders_sent: int = 0
    seeders_success: int = 0
    leechers_sent: int = 0
    leechers_success: int = 0
    total_request_ns: int = 0
    total_peers: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def record(self, result: AnnounceResult) -> None:
        """Add ``result`` to the totals, logging it if it failed."""
        with self._lock:
            self.requests_sent += 1
            if result.is_seeder:
                self.seeders_sent += 1
                self.seeders_success += result.success
            else:
                self.leechers_sent += 1
                self.leechers_success += result.success

            if result.success:
                self.requests_success += 1
                self.total_peers += result.peers_count
            else:
                self.requests_failed += 1
            self.total_request_ns += round(result.request_time * _NS_PER_SECOND)

        if not result.success:
            peer_type = "seeder" if result.is_seeder else "leecher"
            _log.warning(
                "Request failed (%s): %s (InfoHash: %s, PeerID: %s)",
                peer_type,
                result.error_message,
                result.info_hash,
                result.peer_id,
            )

    def report_lines(self) -> list[str]:
        """Return the statistics report, one line per entry."""
        with self._lock:
            sent = self.requests_sent
            average_ns = self.total_request_ns // sent if sent else 0
            average_peers = (
                self.total_peers / self.requests_success
                if self.requests_success
                else 0.0
            )
            success_rate = self.requests_success * 100 / sent if sent else 0.0
            seeder_rate = self.seeders_sent * 100 / sent if sent else 0.0
            seeder_success_rate = (
                self.seeders_success * 100 / self.seeders_sent
                if self.seeders_sent
                else 0.0
            )
            leecher_success_rate = (
                self.leechers_success * 100 / self.leechers_sent
                if self.leechers_sent
                else 0.0
            )
            return [
                "Statistics:",
                f"  Requests: {sent} total, {self.requests_success} successful "
                f"({success_rate:.1f}%), {self.requests_failed} failed",
                f"  Types: {self.seeders_sent} seeders ({seeder_rate:.1f}%), "
                f"{self.leechers_sent} leechers ({100 - seeder_rate:.1f}%)",
                f"  Success rates: seeders {seeder_success_rate:.1f}%, "
                f"leechers {leecher_success_rate:.1f}%",
                f"  Average request time: {_format_nanoseconds(average_ns)}",
                f"  Average peers per response: {average_peers:.1f}",
            ]