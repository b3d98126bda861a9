import random
import threading
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from trackertester.bencode import encode
from trackertester.config import Config, ConfigError, RequestParams
from trackertester.http_tracker import HTTPTracker
from trackertester.runner import (
    create_tracker,
    main,
    make_announce,
    make_transfer_stats,
    run,
)
from trackertester.types import ClientConfig, Peer, TrackerError, TransferStats
from trackertester.udp_tracker import UDPTracker

COMPACT_PEER = bytes([127, 0, 0, 1, 26, 145])
INFO_HASHES = ["ab" * 20, "cd" * 20]
CLIENTS = [
    ClientConfig(peer_id="-GO0001-000000000001", address=Peer("10.0.0.1", 6881)),
    ClientConfig(peer_id="-GO0001-000000000002", address=Peer("10.0.0.2", 6882)),
]


class _TrackerHandler(BaseHTTPRequestHandler):
    def do_GET(self):
        self.server.requests.append(self.path)
        body = self.server.body
        self.send_response(200)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, *args):
        pass


@pytest.fixture
def tracker_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _TrackerHandler)
    server.body = encode({"interval": 1800, "peers": COMPACT_PEER})
    server.requests = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


def _url(server):
    return f"http://127.0.0.1:{server.server_address[1]}/announce"


def test_create_tracker_http():
    config = Config(request_timeout=3.0)
    tracker = create_tracker("http://tracker.example.com/announce", CLIENTS[0], config)
    assert isinstance(tracker, HTTPTracker)
    assert tracker.tracker_url == "http://tracker.example.com/announce"
    assert tracker.timeout == 3.0
    assert tracker.config == CLIENTS[0]


def test_create_tracker_https_uppercase_scheme():
    tracker = create_tracker("HTTPS://tracker.example.com/a", CLIENTS[1], Config())
    assert isinstance(tracker, HTTPTracker)
    assert tracker.tracker_url == "HTTPS://tracker.example.com/a"


def test_create_tracker_udp():
    tracker = create_tracker("udp://127.0.0.1:6969/announce", CLIENTS[0], Config())
    try:
        assert isinstance(tracker, UDPTracker)
        assert tracker.tracker_url == "udp://127.0.0.1:6969/announce"
    finally:
        tracker.close()


def test_create_tracker_unsupported_protocol():
    with pytest.raises(TrackerError, match="unsupported protocol in URL: ftp://x"):
        create_tracker("ftp://x", CLIENTS[0], Config())


@pytest.mark.parametrize("seed", range(20))
def test_seeder_stats_invariants(seed):
    params = RequestParams()
    stats = make_transfer_stats(True, params, random.Random(seed))
    assert stats.left == 0
    assert stats.uploaded % 2 == 0
    assert 0 <= stats.uploaded <= 2 * params.max_uploaded
    assert params.max_downloaded // 2 <= stats.downloaded <= params.max_downloaded


@pytest.mark.parametrize("seed", range(20))
def test_leecher_stats_in_ranges(seed):
    params = RequestParams()
    stats = make_transfer_stats(False, params, random.Random(seed))
    assert params.min_uploaded <= stats.uploaded <= params.max_uploaded
    assert params.min_downloaded <= stats.downloaded <= params.max_downloaded
    assert params.min_left <= stats.left <= params.max_left


def test_leecher_stats_fixed_ranges():
    params = RequestParams(
        min_uploaded=7,
        max_uploaded=7,
        min_downloaded=3,
        max_downloaded=3,
        min_left=9,
        max_left=9,
    )
    stats = make_transfer_stats(False, params, random.Random(1))
    assert stats == TransferStats(uploaded=7, downloaded=3, left=9)


def test_transfer_stats_deterministic_for_seed():
    params = RequestParams()
    first = make_transfer_stats(True, params, random.Random(42))
    second = make_transfer_stats(True, params, random.Random(42))
    assert first == second


def test_make_announce_success(tracker_server):
    config = Config(http_tracker_url=_url(tracker_server), verbose=False)
    result = make_announce(config, INFO_HASHES, CLIENTS, random.Random(3))
    assert result.success
    assert result.error_message == ""
    assert result.peers_count == 1
    assert result.info_hash in INFO_HASHES
    assert result.peer_id in {client.peer_id for client in CLIENTS}
    assert result.request_time >= 0
    query = urllib.parse.parse_qs(urllib.parse.urlsplit(tracker_server.requests[0]).query)
    assert query["info_hash"] == [result.info_hash]
    assert query["peer_id"] == [result.peer_id]


@pytest.mark.parametrize("probability,expected", [(1.0, True), (0.0, False)])
def test_make_announce_seeder_probability(tracker_server, probability, expected):
    config = Config(
        http_tracker_url=_url(tracker_server),
        seeder_probability=probability,
        verbose=False,
    )
    result = make_announce(config, INFO_HASHES, CLIENTS, random.Random(5))
    assert result.is_seeder is expected
    query = urllib.parse.parse_qs(urllib.parse.urlsplit(tracker_server.requests[0]).query)
    if expected:
        assert query["left"] == ["0"]
    else:
        assert int(query["left"][0]) >= 0


def test_make_announce_failure_reason(tracker_server):
    tracker_server.body = encode({"failure reason": "denied"})
    config = Config(http_tracker_url=_url(tracker_server), verbose=False)
    result = make_announce(config, INFO_HASHES, CLIENTS, random.Random(7))
    assert not result.success
    assert "failure reason" in result.error_message
    assert result.peers_count == 0


def test_make_announce_unsupported_url():
    config = Config(http_tracker_url="ftp://tracker.example.com", verbose=False)
    result = make_announce(config, INFO_HASHES, CLIENTS, random.Random(1))
    assert not result.success
    assert "unsupported protocol" in result.error_message


def test_make_announce_without_trackers():
    with pytest.raises(ConfigError, match="No defined target trackers"):
        make_announce(Config(), INFO_HASHES, CLIENTS, random.Random(1))


def test_run_without_trackers():
    with pytest.raises(ConfigError, match="No defined target trackers"):
        run(Config())


def test_run_with_empty_pool():
    config = Config(http_tracker_url="http://tracker.example.com", info_hash_pool_size=0)
    with pytest.raises(ConfigError):
        run(config)


def test_run_collects_statistics(tracker_server):
    config = Config(
        http_tracker_url=_url(tracker_server),
        duration=0.3,
        request_timeout=2.0,
        concurrent_requests=2,
        info_hash_pool_size=3,
        client_pool_size=2,
        verbose=False,
    )
    statistics = run(config)
    assert statistics.requests_sent >= 1
    assert statistics.requests_failed == 0
    assert statistics.requests_success == statistics.requests_sent
    assert statistics.total_peers == statistics.requests_sent
    assert statistics.seeders_sent + statistics.leechers_sent == statistics.requests_sent


def test_run_with_no_workers_sends_nothing():
    config = Config(
        http_tracker_url="http://tracker.example.com/announce",
        duration=0.05,
        concurrent_requests=0,
        verbose=False,
    )
    statistics = run(config)
    assert statistics.requests_sent == 0


def test_main_without_trackers(capsys):
    assert main([]) == 1
    assert "No defined target trackers" in capsys.readouterr().err


def test_main_invalid_seeder_probability(capsys):
    assert main(["-seeders", "2"]) == 1
    assert "Invalid seeder probability" in capsys.readouterr().err


def test_main_runs_against_tracker(tracker_server):
    status = main(["-http-tracker", _url(tracker_server), "-duration", "200ms"])
    assert status == 0
    assert len(tracker_server.requests) >= 1