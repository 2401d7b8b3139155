"""
EPG Downloader Service

Handles downloading, decompressing and parsing the remote guide.
Separated from orchestration logic for better testability.
"""
import logging
import asyncio
from pathlib import Path

import httpx

from app.exceptions import DocumentParseError
from app.services.epg_types import GuideDocument
from app.services.xmltv_parser_service import parse_guide_file
from app.utils.file_operations import cleanup_temp_file, decompress_gzip, download_file


logger = logging.getLogger(__name__)


async def fetch_guide(
    source_url: str,
    download_dir: Path | str,
    *,
    timeout: float = 120.0,
    max_retries: int = 3,
    backoff_factor: float = 2.0,
    parse_timeout_seconds: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None
) -> GuideDocument:
    """
    Run the fetch, decompress and parse stages for one guide URL

    Downloaded and decompressed files are always removed, whatever the outcome.

    Args:
        source_url: URL of the gzip-compressed guide
        download_dir: Working directory for temporary files

    Keyword Args:
        timeout: HTTP timeout in seconds
        max_retries: Download attempts
        backoff_factor: Exponential backoff multiplier between attempts
        parse_timeout_seconds: Timeout in seconds for parsing (0/None disables timeout)
        transport: Optional httpx transport (used by tests)

    Returns:
        Parsed guide document

    Raises:
        FetchError: Download failed
        DecompressError: Archive is not valid gzip
        DocumentParseError: Document is not valid XMLTV or parsing timed out
    """
    archive: Path | None = None
    document: Path | None = None
    try:
        logger.info("Starting download...")
        logger.debug(f"  Download URL: {source_url}")
        archive = await download_file(
            source_url,
            download_dir,
            timeout=timeout,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
            transport=transport,
        )
        logger.info(f"Download successful, file saved to {archive}")

        logger.info("Decompressing guide archive...")
        loop = asyncio.get_running_loop()
        document = await loop.run_in_executor(None, decompress_gzip, archive, download_dir)

        logger.info("Parsing guide document...")
        guide = await parse_guide_async(document, parse_timeout_seconds=parse_timeout_seconds)
        return guide

    finally:
        for path in (archive, document):
            if path is not None:
                if cleanup_temp_file(path):
                    logger.debug(f"Removed temporary file {path}")
                else:
                    logger.debug(f"Cleanup skipped for {path} (file not found)")


async def parse_guide_async(
    file_path: Path | str,
    *,
    parse_timeout_seconds: int | None = None
) -> GuideDocument:
    """
    Parse guide file asynchronously with timeout protection.

    File parsing is offloaded to thread pool to avoid blocking event loop.

    Args:
        file_path: Path to decompressed guide (Path or str)

    Keyword Args:
        parse_timeout_seconds: Timeout in seconds for parsing (0/None disables timeout)

    Raises:
        DocumentParseError: If the document is malformed or parsing times out
    """
    if isinstance(file_path, str):
        file_path = Path(file_path)

    logger.debug(f"  File size: {file_path.stat().st_size / 1024 / 1024:.2f} MB")

    effective_timeout = parse_timeout_seconds if parse_timeout_seconds and parse_timeout_seconds > 0 else None
    timeout_display = f"{effective_timeout}s" if effective_timeout else "disabled"

    try:
        loop = asyncio.get_running_loop()
        logger.debug("Offloading XML parsing to thread pool executor (timeout: %s)...", timeout_display)
        parse_task = loop.run_in_executor(None, parse_guide_file, file_path)
        if effective_timeout:
            guide = await asyncio.wait_for(parse_task, timeout=effective_timeout)
        else:
            guide = await parse_task
    except asyncio.TimeoutError as e:
        logger.error(
            "XML parsing timed out after %s for %s",
            timeout_display,
            file_path
        )
        raise DocumentParseError("XML parsing timed out - file may be too large or malformed") from e

    if not guide.channels:
        logger.warning("No channels found in guide document")
    if not guide.programmes:
        logger.warning("No programmes found in guide document")

    return guide
