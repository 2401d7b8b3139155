"""
Pytest configuration and shared fixtures for EPG service tests.
"""

from __future__ import annotations

import gzip
import os
import tempfile
from pathlib import Path

import httpx
import pytest

# Settings are read at import time, keep them away from the working directory
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="epg_tests_"))
os.environ.setdefault("DOWNLOAD_DIR", str(_TEST_ROOT / "download"))
os.environ.setdefault("SNAPSHOT_PATH", str(_TEST_ROOT / "data" / "epg_cache.db"))
os.environ.setdefault("TIMEZONE", "UTC")

from app.services.epg_types import CacheIndex, ProgramItem  # noqa: E402


FEED_URL = "http://feed.test/e.xml.gz"

SAMPLE_GUIDE = """<?xml version="1.0" encoding="UTF-8"?>
<tv generator-info-name="test-grabber">
  <channel id="c1">
    <display-name lang="en">CCTV-1 General</display-name>
    <display-name lang="zh">CCTV1</display-name>
  </channel>
  <channel id="c2">
    <display-name lang="en">English Only</display-name>
  </channel>
  <channel id="c3">
    <display-name lang="zh">湖南卫视</display-name>
    <icon src="http://img.test/c3.png"/>
  </channel>
  <programme channel="c1" start="20240101120000 +0800" stop="20240101130000 +0800">
    <title lang="zh">News</title>
    <desc>Evening news</desc>
  </programme>
  <programme channel="c1" start="20240102080500 +0800" stop="20240102093000 +0800">
    <title>Morning Show</title>
  </programme>
  <programme channel="c2" start="20240101100000" stop="20240101110000">
    <title>Hidden</title>
  </programme>
  <programme channel="c3" start="2024010110 +0800" stop="20240101110000 +0800">
    <title>Broken</title>
  </programme>
</tv>
""".encode("utf-8")


@pytest.fixture
def sample_guide() -> bytes:
    """Guide document with three channels and four programmes (one malformed)."""
    return SAMPLE_GUIDE


@pytest.fixture
def sample_archive(sample_guide: bytes) -> bytes:
    """Gzip-compressed sample guide as served by the feed."""
    return gzip.compress(sample_guide)


@pytest.fixture
def feed_transport(sample_archive: bytes) -> httpx.MockTransport:
    """Transport serving the compressed sample guide and recording requests."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, content=sample_archive)

    transport = httpx.MockTransport(handler)
    transport.requests = requests  # type: ignore[attr-defined]
    return transport


@pytest.fixture
def download_dir(tmp_path: Path) -> Path:
    path = tmp_path / "download"
    path.mkdir()
    return path


@pytest.fixture
def sample_index() -> CacheIndex:
    """Small hand-built index with two channels."""
    return CacheIndex(
        channel_map={"CCTV1": "c1", "Orphan": "c9"},
        program_data={
            "c1": {
                "2024-01-01": [
                    ProgramItem(start="12:00", end="13:00", title="News"),
                    ProgramItem(start="06:00", end="07:00", title="Early"),
                ],
                "2024-01-02": [ProgramItem(start="08:05", end="09:30", title="Morning Show")],
            },
            "c2": {"2024-01-01": [ProgramItem(start="10:00", end="11:00", title="")]},
        },
    )
