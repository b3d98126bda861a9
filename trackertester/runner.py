"""Load generation: sends random announce requests and tallies the results."""

from __future__ import annotations

import logging
import random
import sys
import threading
import time
from collections.abc import Sequence

from trackertester.config import Config, ConfigError, RequestParams, parse_args
from trackertester.http_tracker import HTTPTracker
from trackertester.random_data import (
    generate_client_pool,
    generate_info_hash_pool,
    random_int64,
)
from trackertester.stats import AnnounceResult, Statistics, format_duration
from trackertester.types import ClientConfig, Tracker, TrackerError, TransferStats
from trackertester.udp_tracker import UDPTracker

__all__ = [
    "create_tracker",
    "main",
    "make_announce",
    "make_transfer_stats",
    "run",
]

_log = logging.getLogger(__name__)

REPORT_INTERVAL = 5.0


def _tracker_urls(config: Config) -> list[str]:
    return [url for url in (config.http_tracker_url, config.udp_tracker_url) if url]


def create_tracker(tracker_url: str, client: ClientConfig, config: Config) -> Tracker:
    """Return a tracker client suited to the scheme of ``tracker_url``."""
    lowered = tracker_url.lower()
    if lowered.startswith(("http://", "https://")):
        return HTTPTracker(tracker_url, client, config.request_timeout)
    if lowered.startswith("udp://"):
        return UDPTracker(tracker_url, client, config.request_timeout)
    raise TrackerError(f"unsupported protocol in URL: {tracker_url}")


def make_transfer_stats(
    is_seeder: bool, params: RequestParams, rng: random.Random
) -> TransferStats:
    """Return random transfer counters for a seeder or a leecher."""
    if is_seeder:
        # Seeders have nothing left, a finished download and larger uploads.
        return TransferStats(
            uploaded=random_int64(rng, params.min_uploaded, params.max_uploaded) * 2,
            downloaded=random_int64(
                rng, params.max_downloaded // 2, params.max_downloaded
            ),
            left=0,
        )
    return TransferStats(
        uploaded=random_int64(rng, params.min_uploaded, params.max_uploaded),
        downloaded=random_int64(rng, params.min_downloaded, params.max_downloaded),
        left=random_int64(rng, params.min_left, params.max_left),
    )


def make_announce(
    config: Config,
    info_hashes: Sequence[str],
    clients: Sequence[ClientConfig],
    rng: random.Random,
) -> AnnounceResult:
    """Send one random announce request and return its outcome."""
    urls = _tracker_urls(config)
    if not urls:
        raise ConfigError("No defined target trackers")

    tracker_url = rng.choice(urls)
    is_seeder = rng.random() < config.seeder_probability
    info_hash = rng.choice(info_hashes)
    client = rng.choice(clients)
    stats = make_transfer_stats(is_seeder, config.request_params, rng)

    if config.verbose:
        kind = "seeder" if is_seeder else "leecher"
        _log.info("Sending %s request to: %s", kind, tracker_url)

    try:
        tracker = create_tracker(tracker_url, client, config)
    except TrackerError as exc:
        return AnnounceResult(
            success=False,
            request_time=0.0,
            error_message=str(exc),
            info_hash=info_hash,
            peer_id=client.peer_id,
            is_seeder=is_seeder,
        )

    peers = []
    error_message = ""
    success = True
    start = time.perf_counter()
    try:
        peers = tracker.announce(info_hash, stats)
    except (TrackerError, ValueError) as exc:
        success = False
        error_message = str(exc)
    elapsed = time.perf_counter() - start

    return AnnounceResult(
        success=success,
        request_time=elapsed,
        peers_count=len(peers),
        error_message=error_message,
        info_hash=info_hash,
        peer_id=client.peer_id,
        is_seeder=is_seeder,
    )


def _log_report(statistics: Statistics) -> None:
    for line in statistics.report_lines():
        _log.info("%s", line)


def run(config: Config) -> Statistics:
    """Generate announce load until the duration ends or the run is interrupted."""
    if not _tracker_urls(config):
        raise ConfigError("No defined target trackers")
    if config.concurrent_requests > 0 and (
        config.info_hash_pool_size < 1 or config.client_pool_size < 1
    ):
        raise ConfigError("info_hash and peer pools must not be empty")

    _log.info("Starting BitTorrent tracker announcer")
    if config.http_tracker_url:
        _log.info("HTTP Target tracker: %s", config.http_tracker_url)
    if config.udp_tracker_url:
        _log.info("UDP Target tracker: %s", config.udp_tracker_url)
    _log.info("Concurrent requests: %d", config.concurrent_requests)
    _log.info("Info hash pool size: %d", config.info_hash_pool_size)
    _log.info("Peer pool size: %d", config.client_pool_size)
    _log.info(
        "Seeder probability: %.2f (%.1f%%)",
        config.seeder_probability,
        config.seeder_probability * 100,
    )
    if config.duration > 0:
        _log.info("Running for: %s", format_duration(config.duration))
    else:
        _log.info("Running indefinitely (press Ctrl+C to stop)")

    rng = random.Random()
    info_hashes = generate_info_hash_pool(config.info_hash_pool_size, rng)
    clients = generate_client_pool(config.client_pool_size, config.request_params, rng)
    _log.info("Generated %d unique info_hashes", len(info_hashes))
    _log.info("Generated %d unique peers", len(clients))

    statistics = Statistics()
    stop = threading.Event()

    def work(worker_rng: random.Random) -> None:
        while not stop.is_set():
            statistics.record(make_announce(config, info_hashes, clients, worker_rng))

    def report() -> None:
        while not stop.wait(REPORT_INTERVAL):
            _log_report(statistics)

    reporter = threading.Thread(target=report, name="stats-reporter", daemon=True)
    workers = [
        threading.Thread(
            target=work,
            args=(random.Random(rng.getrandbits(64)),),
            name=f"announcer-{number}",
            daemon=True,
        )
        for number in range(max(config.concurrent_requests, 0))
    ]
    reporter.start()
    for worker in workers:
        worker.start()

    try:
        stop.wait(config.duration if config.duration > 0 else None)
        _log.info("Duration completed, shutting down...")
    except KeyboardInterrupt:
        _log.info("Interrupt received, shutting down...")
    stop.set()

    reporter.join()
    for worker in workers:
        worker.join()

    _log_report(statistics)
    _log.info("Program completed.")
    return statistics


def main(argv: Sequence[str] | None = None) -> int:
    """Command-line entry point; returns the process exit status."""
    try:
        config = parse_args(argv)
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        return 1

    if config.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s.%(msecs)03d %(message)s",
            datefmt="%H:%M:%S",
        )
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    try:
        run(config)
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())