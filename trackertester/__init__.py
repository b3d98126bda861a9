"""Load generator and client library for BitTorrent HTTP and UDP trackers."""

__version__ = "0.1.0"