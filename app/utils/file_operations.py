"""
File operation utilities

This module handles guide download, decompression and cleanup with retry logic.
"""
import gzip
import logging
import os
import shutil
import tempfile
import zlib
from pathlib import Path
import asyncio

import aiofiles
import httpx

from app.exceptions import DecompressError, FetchError


logger = logging.getLogger(__name__)

GZIP_SUFFIX = ".gz"
XML_SUFFIX = ".xml"
CHUNK_SIZE = 1024 * 1024


async def download_file(
    url: str,
    download_dir: Path | str,
    timeout: float = 120.0,
    max_retries: int = 3,
    backoff_factor: float = 2.0,
    transport: httpx.AsyncBaseTransport | None = None
) -> Path:
    """
    Download a file from URL with exponential backoff retry logic

    Retries on transient network errors (timeouts, connection errors) and 5xx.
    Does NOT retry on 4xx HTTP errors (client errors).

    Args:
        url: URL to download from
        download_dir: Directory for the temporary epg_*.gz file
        timeout: HTTP timeout in seconds
        max_retries: Maximum number of attempts
        backoff_factor: Exponential backoff multiplier (wait = backoff_factor ^ attempt)
        transport: Optional httpx transport (used by tests)

    Returns:
        Path to downloaded temporary file

    Raises:
        FetchError: If download fails after all retries or with a 4xx status
    """
    logger.info(f"Downloading file from {url}...")

    last_error: Exception | None = None

    for attempt in range(max_retries):
        try:
            temp_file = _create_temp_path(download_dir)
        except OSError as e:
            raise FetchError(f"Cannot create download file in {download_dir}: {e}") from e

        try:
            async with httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()

                    size = 0
                    async with aiofiles.open(temp_file, 'wb') as f:
                        async for chunk in response.aiter_bytes(CHUNK_SIZE):
                            await f.write(chunk)
                            size += len(chunk)

            logger.info(f"Downloaded {size / (1024 * 1024):.2f} MB to {temp_file}")
            return temp_file

        except httpx.TransportError as e:
            # Transient network errors - retry
            cleanup_temp_file(temp_file)
            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Download attempt {attempt + 1}/{max_retries} failed (transient error): {type(e).__name__}. "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Download failed after {max_retries} attempts (transient error)")

        except httpx.HTTPStatusError as e:
            cleanup_temp_file(temp_file)
            # HTTP errors - don't retry on 4xx (client error), retry on 5xx (server error)
            if 400 <= e.response.status_code < 500:
                logger.error(f"HTTP {e.response.status_code} (client error): {e}")
                raise FetchError(f"HTTP {e.response.status_code} fetching {url}") from e

            last_error = e
            if attempt < max_retries - 1:
                wait_time = backoff_factor ** attempt
                logger.warning(
                    f"Download attempt {attempt + 1}/{max_retries} failed "
                    f"(HTTP {e.response.status_code} server error). "
                    f"Retrying in {wait_time:.1f}s..."
                )
                await asyncio.sleep(wait_time)
            else:
                logger.error(f"Download failed after {max_retries} attempts (HTTP {e.response.status_code})")

        except httpx.HTTPError as e:
            # Redirect loops, bad content encoding: retrying gives the same answer
            cleanup_temp_file(temp_file)
            logger.error(f"Download of {url} failed: {type(e).__name__}: {e}")
            raise FetchError(f"Failed to download {url}: {e}") from e

        except OSError as e:
            cleanup_temp_file(temp_file)
            raise FetchError(f"Cannot write download to {temp_file}: {e}") from e

    raise FetchError(f"Failed to download {url} after {max_retries} attempts: {last_error}") from last_error


def _create_temp_path(download_dir: Path | str) -> Path:
    fd, name = tempfile.mkstemp(prefix="epg_", suffix=GZIP_SUFFIX, dir=download_dir)
    os.close(fd)
    return Path(name)


def working_file_name(source: Path) -> str:
    """
    Name of the decompressed file for a downloaded archive

    'epg_abc.gz' -> 'epg_abc.xml', 'guide.xml.gz' -> 'guide.xml'
    """
    name = source.name
    if name.endswith(GZIP_SUFFIX):
        name = name[:-len(GZIP_SUFFIX)]
    if not name.lower().endswith(XML_SUFFIX):
        name += XML_SUFFIX
    return name


def decompress_gzip(source: Path, dest_dir: Path | str) -> Path:
    """
    Decompress a single gzip layer next to the download

    Args:
        source: Path to the .gz file
        dest_dir: Directory for the working file

    Returns:
        Path to the decompressed document

    Raises:
        DecompressError: If the archive is malformed or truncated
    """
    target = Path(dest_dir) / working_file_name(source)
    logger.debug(f"Decompressing {source} -> {target}")

    try:
        with gzip.open(source, 'rb') as src, open(target, 'wb') as dst:
            shutil.copyfileobj(src, dst, CHUNK_SIZE)
    except (OSError, EOFError, zlib.error) as e:
        cleanup_temp_file(target)
        raise DecompressError(f"Failed to decompress {source.name}: {e}") from e

    logger.info(f"Decompressed to {target} ({target.stat().st_size / (1024 * 1024):.2f} MB)")
    return target


def cleanup_temp_file(file_path: Path | None) -> bool:
    """
    Safely delete a temporary file

    Args:
        file_path: Path to file to delete

    Returns:
        True if deleted successfully, False otherwise
    """
    if not file_path or not file_path.exists():
        return False

    try:
        file_path.unlink()
        logger.debug(f"Cleaned up temporary file: {file_path}")
        return True
    except (OSError, PermissionError) as e:
        logger.warning(f"Failed to delete temporary file {file_path}: {e}")
        return False
