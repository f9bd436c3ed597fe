"""RSS feed fetching and parsing into a typed channel."""

from __future__ import annotations

import logging

# Bandit: parsing handled via defusedxml safe APIs
import xml.etree.ElementTree as ET  # nosec B405
from typing import List, Optional, Tuple

import requests
from defusedxml.ElementTree import fromstring as safe_fromstring, ParseError as DefusedXMLParseError

from . import downloader
from .adapters.base import HostAdapter
from .exceptions import DownloadError, FeedError
from .models import Episode, FeedChannel, FeedEnclosure, FeedItem, ShowMetadata
from .run_log import ImportLogger

logger = logging.getLogger(__name__)

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"
PODCAST_NS = "https://podcastindex.org/namespace/1.0"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
DC_NS = "http://purl.org/dc/elements/1.1/"


def _itunes(tag: str) -> str:
    return f"{{{ITUNES_NS}}}{tag}"


def _text(parent: ET.Element, tag: str) -> Optional[str]:
    """Stripped text of the first direct child ``tag``, None when absent or empty."""
    el = parent.find(tag)
    if el is None or el.text is None:
        return None
    text = el.text.strip()
    return text or None


def _attr(parent: ET.Element, tag: str, name: str) -> Optional[str]:
    el = parent.find(tag)
    if el is None:
        return None
    value = el.attrib.get(name)
    if value is None:
        return None
    return value.strip() or None


def _parse_item(item: ET.Element) -> FeedItem:
    enclosure: Optional[FeedEnclosure] = None
    enc_el = item.find("enclosure")
    if enc_el is not None:
        url = (enc_el.attrib.get("url") or "").strip() or None
        enclosure = FeedEnclosure(
            url=url,
            length=enc_el.attrib.get("length"),
            type=enc_el.attrib.get("type"),
        )

    return FeedItem(
        title=_text(item, "title"),
        guid=_text(item, "guid"),
        link=_text(item, "link"),
        pub_date=_text(item, "pubDate"),
        description=_text(item, "description"),
        content_encoded=_text(item, f"{{{CONTENT_NS}}}encoded"),
        itunes_summary=_text(item, _itunes("summary")),
        enclosure=enclosure,
        itunes_episode=_text(item, _itunes("episode")),
        itunes_duration=_text(item, _itunes("duration")),
        itunes_image=_attr(item, _itunes("image"), "href"),
        itunes_explicit=_text(item, _itunes("explicit")),
        itunes_keywords=_text(item, _itunes("keywords")),
        itunes_author=_text(item, _itunes("author")),
        dc_creator=_text(item, f"{{{DC_NS}}}creator"),
    )


def parse_feed_document(xml_bytes: bytes) -> FeedChannel:
    """Parse RSS XML into a typed channel.

    Args:
        xml_bytes: Raw RSS feed XML content

    Returns:
        FeedChannel with named fields for the RSS, ``itunes:``, ``podcast:``,
        ``content:`` and ``dc:`` elements used by the adapters

    Raises:
        FeedError: If the document is not well-formed XML or has no channel
    """
    try:
        root = safe_fromstring(xml_bytes)
    except (DefusedXMLParseError, ET.ParseError) as exc:
        raise FeedError(f"Invalid XML: {exc}") from exc

    channel = root if root.tag == "channel" else root.find("channel")
    if channel is None:
        raise FeedError(f"No <channel> element found (root element is <{root.tag}>)")

    image_el = channel.find("image")
    image_url = _text(image_el, "url") if image_el is not None else None

    # Only top-level categories; subcategories are nested inside their parent
    categories: List[str] = []
    for cat_el in channel.findall(_itunes("category")):
        text = (cat_el.attrib.get("text") or "").strip()
        if text and text not in categories:
            categories.append(text)

    items = [_parse_item(item) for item in channel.findall("item")]

    return FeedChannel(
        title=_text(channel, "title"),
        description=_text(channel, "description"),
        link=_text(channel, "link"),
        language=_text(channel, "language"),
        copyright=_text(channel, "copyright"),
        author=_text(channel, "author"),
        image_url=image_url,
        itunes_author=_text(channel, _itunes("author")),
        itunes_image=_attr(channel, _itunes("image"), "href"),
        itunes_categories=categories,
        itunes_keywords=_text(channel, _itunes("keywords")),
        itunes_explicit=_text(channel, _itunes("explicit")),
        podcast_guid=_text(channel, f"{{{PODCAST_NS}}}guid"),
        items=items,
    )


def parse_feed(
    feed_url: str,
    adapter: HostAdapter,
    *,
    session: requests.Session,
    logger: ImportLogger,
    timeout: int,
) -> Tuple[ShowMetadata, List[Episode]]:
    """Fetch a feed and extract canonical show and episode records.

    Performs exactly one HTTP GET. There is no partial feed: any network or
    parse failure is fatal.

    Args:
        feed_url: Feed URL
        adapter: Host adapter used for semantic extraction
        session: HTTP session owned by the caller
        logger: Run logger
        timeout: Request timeout in seconds

    Returns:
        Tuple of (show metadata, episodes in feed order)

    Raises:
        FeedError: If the feed cannot be fetched or parsed
    """
    logger.info(f"Fetching RSS feed from {feed_url}")
    try:
        xml_bytes, _ = downloader.fetch_bytes(session, feed_url, timeout)
        channel = parse_feed_document(xml_bytes)
        show = adapter.parse_show_metadata(channel)
        episodes = adapter.parse_episodes(channel)
    except (DownloadError, FeedError, ValueError) as exc:
        logger.error("Failed to parse RSS feed", {"url": feed_url, "error": str(exc)})
        raise FeedError(f"Failed to parse RSS feed: {exc}") from exc

    dropped = len(channel.items) - len(episodes)
    logger.info(
        f"Parsed show: {show.title}",
        {"author": show.author, "categories": show.categories, "adapter": adapter.name},
    )
    logger.info(
        f"Found {len(episodes)} episodes",
        {"items": len(channel.items), "excluded": dropped},
    )
    return show, episodes
