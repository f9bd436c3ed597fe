"""Transistor.fm feed adapter (https://transistor.fm).

Transistor publishes plain RSS 2.0 with the Apple Podcasts and Podcasting 2.0
namespaces, so this adapter doubles as the generic fallback for unknown hosts.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..models import Episode, FeedChannel, FeedItem, ShowMetadata
from . import helpers

logger = logging.getLogger(__name__)

TRANSISTOR_FEED_HOST = "feeds.transistor.fm"


class TransistorAdapter:
    """Adapter for Transistor.fm feeds and generic iTunes-tagged RSS."""

    name = "Transistor"

    def can_handle(self, feed_url: str) -> bool:
        return TRANSISTOR_FEED_HOST in feed_url

    def parse_show_metadata(self, channel: FeedChannel) -> ShowMetadata:
        return ShowMetadata(
            title=channel.title or "",
            description=helpers.strip_html(channel.description) or "",
            author=channel.itunes_author or channel.author,
            copyright=channel.copyright,
            language=channel.language,
            image_url=channel.itunes_image or channel.image_url,
            website_url=channel.link,
            categories=list(channel.itunes_categories),
            keywords=helpers.split_keywords(channel.itunes_keywords),
            explicit=helpers.parse_explicit(channel.itunes_explicit),
            guid=channel.podcast_guid,
        )

    def parse_episodes(self, channel: FeedChannel) -> List[Episode]:
        episodes: List[Episode] = []
        for idx, item in enumerate(channel.items, start=1):
            if not item.guid:
                logger.debug("Dropping item %s without a GUID: %s", idx, item.title)
                continue
            episode = self._parse_episode(item)
            if episode is None:
                logger.debug("Dropping item %s without audio: %s", idx, item.title)
                continue
            episodes.append(episode)
        return episodes

    def _parse_episode(self, item: FeedItem) -> Optional[Episode]:
        enclosure = item.enclosure
        if enclosure is None or not enclosure.url:
            return None

        title = item.title or ""
        explicit_number = helpers.parse_int(item.itunes_episode)
        description = helpers.strip_html(item.content_encoded or item.description)
        summary = helpers.strip_html(item.itunes_summary or item.description)

        return Episode(
            title=title,
            guid=item.guid or "",
            episode_number=helpers.extract_episode_number(title, explicit_number),
            publish_date=helpers.parse_date(item.pub_date),
            audio_url=enclosure.url,
            audio_file_size=helpers.parse_int(enclosure.length),
            duration=helpers.parse_duration(item.itunes_duration),
            description=description,
            summary=summary,
            image_url=item.itunes_image,
            explicit=helpers.parse_explicit(item.itunes_explicit),
            keywords=helpers.split_keywords(item.itunes_keywords),
            author=item.itunes_author or item.dc_creator,
        )
