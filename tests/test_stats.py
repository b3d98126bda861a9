import logging
import threading

from trackertester.stats import AnnounceResult, Statistics, format_duration


def _ok(peers, seeder=False, seconds=0.001):
    return AnnounceResult(
        success=True, request_time=seconds, peers_count=peers, is_seeder=seeder
    )


def _fail(seeder=False, seconds=0.001):
    return AnnounceResult(
        success=False,
        request_time=seconds,
        error_message="boom",
        info_hash="abc",
        peer_id="xyz",
        is_seeder=seeder,
    )


def test_format_duration_zero():
    assert format_duration(0) == "0s"


def test_format_duration_hours():
    assert format_duration(3600) == "1h0m0s"


def test_format_duration_milliseconds():
    assert format_duration(0.0015) == "1.5ms"


def test_format_duration_units_by_magnitude():
    assert format_duration(500e-9).endswith("ns")
    assert format_duration(2e-6).endswith("µs")
    assert format_duration(0.25).endswith("ms")
    assert format_duration(2.5).endswith("s")
    assert "m" in format_duration(125)


def test_format_duration_negative_mirrors_positive():
    for seconds in (2.5, 0.0015, 3600, 125):
        assert format_duration(-seconds) == "-" + format_duration(seconds)


def test_record_counts_by_kind():
    stats = Statistics()
    stats.record(_ok(4, seeder=True))
    stats.record(_ok(6))
    stats.record(_fail(seeder=True))
    stats.record(_fail())
    stats.record(_fail())
    assert stats.requests_sent == 5
    assert stats.requests_success == 2
    assert stats.requests_failed == 3
    assert stats.seeders_sent == 2
    assert stats.seeders_success == 1
    assert stats.leechers_sent == 3
    assert stats.leechers_success == 1
    assert stats.total_peers == 4 + 6


def test_failed_peers_not_counted():
    stats = Statistics()
    stats.record(
        AnnounceResult(success=False, request_time=0.0, peers_count=9)
    )
    assert stats.total_peers == 0


def test_failure_is_logged(caplog):
    stats = Statistics()
    with caplog.at_level(logging.WARNING):
        stats.record(_fail(seeder=True))
        stats.record(_ok(1))
    assert "Request failed (seeder): boom (InfoHash: abc, PeerID: xyz)" in caplog.text
    assert caplog.text.count("Request failed") == 1


def test_report_lines_structure():
    stats = Statistics()
    stats.record(_ok(4, seconds=0.001))
    stats.record(_fail(seconds=0.001))
    lines = stats.report_lines()
    assert len(lines) == 6
    assert lines[0] == "Statistics:"
    assert lines[1].startswith("  Requests: 2 total, 1 successful")
    assert lines[1].endswith("1 failed")
    assert "(50.0%)" in lines[1]
    assert lines[2].startswith("  Types: 0 seeders")
    assert lines[4] == "  Average request time: " + format_duration(0.001)
    assert lines[5] == "  Average peers per response: " + f"{4.0:.1f}"


def test_report_lines_when_empty():
    lines = Statistics().report_lines()
    assert lines[1].startswith("  Requests: 0 total, 0 successful")
    assert "leechers (100.0%)" in lines[2]
    assert lines[4] == "  Average request time: " + format_duration(0)


def test_concurrent_records_are_all_counted():
    stats = Statistics()

    def worker():
        for _ in range(200):
            stats.record(_ok(1))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert stats.requests_sent == 8 * 200
    assert stats.total_peers == 8 * 200
    assert stats.leechers_success == stats.requests_success