"""Tests for download, decompression and cleanup helpers."""

import gzip
from pathlib import Path

import httpx
import pytest

from app.exceptions import DecompressError, FetchError
from app.utils import file_operations
from app.utils.file_operations import (
    cleanup_temp_file,
    decompress_gzip,
    download_file,
    working_file_name,
)

FEED_URL = "http://feed.test/e.xml.gz"


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Skip retry backoff waits and record them."""
    waits: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        waits.append(seconds)

    monkeypatch.setattr(file_operations.asyncio, "sleep", fake_sleep)
    return waits


class TestDownloadFile:
    @pytest.mark.asyncio
    async def test_success(self, download_dir: Path, sample_archive: bytes, feed_transport) -> None:
        path = await download_file(FEED_URL, download_dir, transport=feed_transport)

        assert path.parent == download_dir
        assert path.name.startswith("epg_")
        assert path.suffix == ".gz"
        assert path.read_bytes() == sample_archive
        assert len(feed_transport.requests) == 1

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, download_dir: Path, no_sleep: list[float]) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(FetchError):
            await download_file(FEED_URL, download_dir, transport=httpx.MockTransport(handler))

        assert len(calls) == 1
        assert no_sleep == []
        assert list(download_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_server_error_retried(self, download_dir: Path, sample_archive: bytes, no_sleep: list[float]) -> None:
        responses = [httpx.Response(503), httpx.Response(200, content=sample_archive)]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        path = await download_file(
            FEED_URL,
            download_dir,
            max_retries=3,
            backoff_factor=2.0,
            transport=httpx.MockTransport(handler),
        )

        assert path.read_bytes() == sample_archive
        assert no_sleep == [1.0]
        assert list(download_dir.iterdir()) == [path]

    @pytest.mark.asyncio
    async def test_transport_error_exhausts_retries(self, download_dir: Path, no_sleep: list[float]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError) as exc_info:
            await download_file(
                FEED_URL,
                download_dir,
                max_retries=3,
                backoff_factor=2.0,
                transport=httpx.MockTransport(handler),
            )

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert no_sleep == [1.0, 2.0]
        assert list(download_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_redirect_loop(self, download_dir: Path, no_sleep: list[float]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(302, headers={"Location": FEED_URL})

        with pytest.raises(FetchError) as exc_info:
            await download_file(FEED_URL, download_dir, transport=httpx.MockTransport(handler))

        assert isinstance(exc_info.value.__cause__, httpx.TooManyRedirects)
        assert no_sleep == []
        assert list(download_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_bad_content_encoding(self, download_dir: Path, no_sleep: list[float]) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip data")

        with pytest.raises(FetchError) as exc_info:
            await download_file(FEED_URL, download_dir, transport=httpx.MockTransport(handler))

        assert isinstance(exc_info.value.__cause__, httpx.DecodingError)
        assert list(download_dir.iterdir()) == []


class TestWorkingFileName:
    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("epg_123.gz", "epg_123.xml"),
            ("guide.xml.gz", "guide.xml"),
            ("GUIDE.XML.gz", "GUIDE.XML"),
            ("guide", "guide.xml"),
        ],
    )
    def test_names(self, source: str, expected: str) -> None:
        assert working_file_name(Path(source)) == expected


class TestDecompressGzip:
    def test_decompress(self, tmp_path: Path, sample_guide: bytes) -> None:
        source = tmp_path / "epg_abc.gz"
        source.write_bytes(gzip.compress(sample_guide))

        target = decompress_gzip(source, tmp_path)

        assert target == tmp_path / "epg_abc.xml"
        assert target.read_bytes() == sample_guide

    def test_not_gzip(self, tmp_path: Path) -> None:
        source = tmp_path / "epg_bad.gz"
        source.write_bytes(b"<tv></tv>")

        with pytest.raises(DecompressError):
            decompress_gzip(source, tmp_path)

        assert not (tmp_path / "epg_bad.xml").exists()

    def test_truncated(self, tmp_path: Path, sample_guide: bytes) -> None:
        source = tmp_path / "epg_cut.gz"
        source.write_bytes(gzip.compress(sample_guide)[:40])

        with pytest.raises(DecompressError):
            decompress_gzip(source, tmp_path)


class TestCleanupTempFile:
    def test_removes_file(self, tmp_path: Path) -> None:
        path = tmp_path / "x.gz"
        path.write_bytes(b"x")

        assert cleanup_temp_file(path) is True
        assert not path.exists()

    def test_missing_file(self, tmp_path: Path) -> None:
        assert cleanup_temp_file(tmp_path / "missing") is False
        assert cleanup_temp_file(None) is False
