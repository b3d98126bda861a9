[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "trackertester"
version = "0.1.0"
description = "Load generator that sends random announce requests to BitTorrent HTTP and UDP trackers"
requires-python = ">=3.10"
dependencies = []
keywords = ["bittorrent", "tracker", "announce", "load-testing", "bencode", "udp"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: File Sharing",
    "Topic :: Software Development :: Testing :: Traffic Generation",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
trackertester = "trackertester.runner:main"

[tool.hatch.build.targets.wheel]
packages = ["trackertester"]

[tool.pytest.ini_options]
addopts = "-ra"
