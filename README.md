# trackertester

A small load generator for BitTorrent trackers. It keeps a fixed number of
announce requests in flight against an HTTP tracker, a UDP tracker, or both,
and reports statistics about how the tracker responds.

Each request picks a random info hash from a pool, a random client (peer id,
address and port) from a second pool, and decides whether to announce as a
seeder (`left=0`, a download of at least half the maximum, doubled upload
figures) or as a leecher (all three counters random). Failed requests are
logged together with the info hash and peer id that were used.

Every five seconds, and again when the run ends, it logs:

- total, successful and failed requests
- the split between seeder and leecher requests
- the success rate for each kind
- the average request time
- the average number of peers per successful response

## Installation

```
pip install .
```

## Usage

At least one tracker must be given:

```
trackertester --http-tracker http://localhost:6969/announce
trackertester --udp-tracker udp://localhost:6969/announce --concurrent 20 --duration 1m
```

The same command can be started with `python -m trackertester.runner`.
When both trackers are given, each request goes to one of them, picked at
random. Each option may be written with one dash or two (`-concurrent` or
`--concurrent`).

| Option | Default | Meaning |
| --- | --- | --- |
| `--concurrent N` | 1 | Number of worker threads sending requests |
| `--http-tracker URL` | | HTTP or HTTPS announce URL |
| `--udp-tracker URL` | | UDP announce URL (`udp://host:port/path`) |
| `--duration D` | run until stopped | Run time such as `30s`, `1m`, `1h30m`, `250ms` |
| `--verbose [BOOL]` | on | Timestamped log lines and one line per request; `--verbose false` turns it off |
| `--hashpool N` | 100 | Number of distinct info hashes |
| `--clientpool N` | 50 | Number of distinct simulated peers |
| `--seeders P` | 0.3 | Probability (0.0 to 1.0) that a request is from a seeder |

Without `--duration` the run continues until interrupted with Ctrl+C; the
final statistics are then logged.

The program exits with status 1 for a seeder probability outside 0.0–1.0,
an invalid duration, no tracker, or an empty info hash or peer pool.
Malformed options are reported by the argument parser with status 2.

## Protocol details

- HTTP announces send `info_hash` (as the 40-character hex string),
  `peer_id`, `port`, `uploaded`, `downloaded`, `left` and `compact=1`. No
  `event` is sent. A response carrying a `failure reason` counts as a failed
  request.
- UDP announces perform the connect/announce exchange of the UDP tracker
  protocol on a fresh socket per request, with event "none", `num_want=-1`
  and no key. The path and query of the tracker URL are sent as a URLData
  option, so path-based UDP trackers can be tested too.

## Library use

The building blocks are available on their own:

```python
from trackertester.bencode import decode, encode
from trackertester.peers import parse_compact_peers
from trackertester.types import ClientConfig, Peer, TransferStats
from trackertester.http_tracker import HTTPTracker

assert encode({"interval": 1800, "peers": ""}) == b"d8:intervali1800e5:peers0:e"
assert decode(b"li1e3:twoe") == [1, b"two"]   # strings decode to bytes
assert parse_compact_peers(bytes([127, 0, 0, 1, 26, 145]))[0].port == 6801

client = ClientConfig(peer_id="-GO0001-0123456789ab", address=Peer("10.0.0.1", 6881))
tracker = HTTPTracker("http://localhost:6969/announce", client, timeout=10.0)
peers = tracker.announce("ab" * 20, TransferStats(uploaded=0, downloaded=0, left=1024))
```

- `trackertester.bencode`: `encode`, `decode` and `decode_into(data, cls)`,
  which fills a dataclass whose fields carry `metadata={"bencode": "name"}`.
  Errors raise `BencodeError`.
- `trackertester.http_tracker`: `HTTPTracker` (set its `compact` attribute to
  `False` to ask for dictionary peer lists), `parse_tracker_response` and
  `parse_non_compact_peers`.
- `trackertester.udp_tracker`: `UDPTracker` with the same `announce` method
  (it closes its socket afterwards), plus functions that build and parse the
  individual packets.
- `trackertester.stats`: `Statistics`, a thread-safe tally of
  `AnnounceResult` values with `record` and `report_lines`.
- `trackertester.runner`: `run(config)` runs a whole load test from a
  `trackertester.config.Config` and returns the `Statistics`.

Tracker failures raise `TrackerError`.

## Limits

Announces never carry an event, an IP, a key or a `num_want` choice: the
`events`, `ip_range`, `min_num_want`/`max_num_want` and key length fields of
`RequestParams` are not used when building requests. Only IPv4 compact peer
lists are understood.

## Running the tests

```
pip install .[test]
pytest
```