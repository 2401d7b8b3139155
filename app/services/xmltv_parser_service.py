from pathlib import Path
from typing import Optional
import logging

from lxml import etree # type: ignore

from app.exceptions import DocumentParseError
from app.services.epg_types import DisplayName, GuideChannel, GuideDocument, GuideProgramme

logger = logging.getLogger(__name__)

ROOT_TAG = "tv"


def _make_parser() -> etree.XMLParser:
    # Guide files routinely exceed libxml2's default size limits
    return etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


def parse_guide_file(file_path: Path | str) -> GuideDocument:
    """
    Parse guide XML file into a GuideDocument

    Args:
        file_path: Path to XMLTV file

    Returns:
        Parsed channels and programmes in document order

    Raises:
        DocumentParseError: If XML is malformed or root element is not <tv>
        OSError: If file can't be read
    """
    logger.debug(f"Parsing guide file: {file_path}")

    try:
        tree = etree.parse(str(file_path), _make_parser())
    except etree.XMLSyntaxError as e:
        logger.error(f"  XML parsing error: {e}")
        raise DocumentParseError(f"Malformed guide document: {e}") from e

    return _parse_root(tree.getroot())


def parse_guide_bytes(data: bytes) -> GuideDocument:
    """
    Parse raw guide XML bytes into a GuideDocument

    Raises:
        DocumentParseError: If XML is empty, malformed or root element is not <tv>
    """
    if not data:
        raise DocumentParseError("Empty guide document")

    try:
        root = etree.fromstring(data, _make_parser())
    except etree.XMLSyntaxError as e:
        logger.error(f"  XML parsing error: {e}")
        raise DocumentParseError(f"Malformed guide document: {e}") from e

    return _parse_root(root)


def _parse_root(root: etree._Element) -> GuideDocument:
    if root.tag != ROOT_TAG:
        raise DocumentParseError(f"Unexpected root element <{root.tag}>, expected <{ROOT_TAG}>")

    logger.debug("  Extracting channels...")
    channels = _parse_channels(root)

    logger.debug("  Extracting programmes...")
    programmes = _parse_programmes(root)

    logger.info(f"Guide parsing complete: {len(channels)} channels, {len(programmes)} programmes")

    return GuideDocument(channels=channels, programmes=programmes)


def _parse_channels(root: etree._Element) -> list[GuideChannel]:
    """Extract channels from XMLTV root element"""
    channels = []

    for channel in root.iterchildren('channel'):
        display_names = [
            DisplayName(value=(name.text or "").strip(), lang=name.get('lang', ''))
            for name in channel.iterchildren('display-name')
        ]
        channels.append(GuideChannel(
            id=channel.get('id', ''),
            display_names=display_names,
        ))

    return channels


def _parse_programmes(root: etree._Element) -> list[GuideProgramme]:
    """Extract programmes from XMLTV root element"""
    programmes = []

    for programme in root.iterchildren('programme'):
        # Timestamps are validated later, per record, by the index builder
        programmes.append(GuideProgramme(
            channel=programme.get('channel', ''),
            start=programme.get('start', ''),
            stop=programme.get('stop', ''),
            title=_get_text(programme, 'title', default='') or '',
        ))

    return programmes


def _get_text(element: etree._Element, tag: str, default: Optional[str] = None) -> Optional[str]:
    """Safely extract text from XML element"""
    child = element.find(tag)
    if child is None or not child.text:
        return default
    return child.text.strip()
