#!/usr/bin/env python3
"""Tests for RSS parsing functionality."""

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from podcast_importer import rss_parser
from podcast_importer.adapters import TransistorAdapter
from podcast_importer.exceptions import FeedError
from podcast_importer.run_log import ImportLogger

# Add tests directory to path for conftest import
tests_dir = Path(__file__).parents[2]
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from conftest import (  # noqa: E402
    build_feed_xml,
    build_item_xml,
    create_error_response,
    create_rss_response,
    TEST_AUTHOR,
    TEST_FEED_TITLE,
    TEST_FEED_URL,
    TEST_IMAGE_URL,
)

pytestmark = pytest.mark.unit


class TestParseFeedDocument(unittest.TestCase):
    """Tests for parse_feed_document."""

    def test_channel_fields(self):
        xml = build_feed_xml(
            channel_extra=(
                '<itunes:category text="Technology"><itunes:category text="Software" /></itunes:category>'
                '<itunes:category text="Education" />'
                "<itunes:keywords>python, rss</itunes:keywords>"
                "<itunes:explicit>false</itunes:explicit>"
                "<podcast:guid>abc-123</podcast:guid>"
                "<copyright>2024 Test</copyright>"
                "<image><url>https://example.com/rss.png</url></image>"
            )
        )
        channel = rss_parser.parse_feed_document(xml.encode("utf-8"))
        self.assertEqual(channel.title, TEST_FEED_TITLE)
        self.assertEqual(channel.link, "https://example.com")
        self.assertEqual(channel.language, "en-us")
        self.assertEqual(channel.itunes_author, TEST_AUTHOR)
        self.assertEqual(channel.itunes_image, TEST_IMAGE_URL)
        self.assertEqual(channel.image_url, "https://example.com/rss.png")
        self.assertEqual(channel.itunes_categories, ["Technology", "Education"])
        self.assertEqual(channel.itunes_keywords, "python, rss")
        self.assertEqual(channel.itunes_explicit, "false")
        self.assertEqual(channel.podcast_guid, "abc-123")
        self.assertEqual(channel.copyright, "2024 Test")

    def test_item_fields(self):
        item = build_item_xml(
            "Episode 3: Items",
            guid="guid-3",
            duration="1:02:03",
            episode="3",
            image_url="https://img.example.com/3.jpg",
            description="<p>Notes</p>",
            extra=(
                "<content:encoded><![CDATA[<p>Full <b>notes</b></p>]]></content:encoded>"
                "<itunes:summary>Summary</itunes:summary>"
                "<dc:creator>Writer</dc:creator>"
            ),
        )
        channel = rss_parser.parse_feed_document(build_feed_xml([item]).encode("utf-8"))
        [parsed] = channel.items
        self.assertEqual(parsed.title, "Episode 3: Items")
        self.assertEqual(parsed.guid, "guid-3")
        self.assertEqual(parsed.pub_date, "Mon, 15 Jan 2024 10:00:00 GMT")
        self.assertEqual(parsed.enclosure.url, "https://media.example.com/ep1.mp3")
        self.assertEqual(parsed.enclosure.length, "1234")
        self.assertEqual(parsed.itunes_duration, "1:02:03")
        self.assertEqual(parsed.itunes_episode, "3")
        self.assertEqual(parsed.itunes_image, "https://img.example.com/3.jpg")
        self.assertEqual(parsed.description, "<p>Notes</p>")
        self.assertEqual(parsed.content_encoded, "<p>Full <b>notes</b></p>")
        self.assertEqual(parsed.itunes_summary, "Summary")
        self.assertEqual(parsed.dc_creator, "Writer")

    def test_missing_optional_fields_are_none(self):
        item = build_item_xml("Bare", guid=None, audio_url=None, pub_date=None)
        channel = rss_parser.parse_feed_document(build_feed_xml([item], image_url=None).encode())
        [parsed] = channel.items
        self.assertIsNone(parsed.guid)
        self.assertIsNone(parsed.enclosure)
        self.assertIsNone(parsed.pub_date)
        self.assertIsNone(channel.itunes_image)
        self.assertEqual(channel.itunes_categories, [])

    def test_invalid_xml_raises(self):
        with self.assertRaises(FeedError):
            rss_parser.parse_feed_document(b"<rss><channel><title>broken")

    def test_document_without_channel_raises(self):
        with self.assertRaises(FeedError):
            rss_parser.parse_feed_document(b"<html><body>Not a feed</body></html>")


class TestParseFeed(unittest.TestCase):
    """Tests for parse_feed."""

    def setUp(self):
        self.session = MagicMock(spec=requests.Session)
        self.run_log = ImportLogger(verbose=False)

    def _parse(self):
        return rss_parser.parse_feed(
            TEST_FEED_URL,
            TransistorAdapter(),
            session=self.session,
            logger=self.run_log,
            timeout=5,
        )

    def test_returns_show_and_episodes(self):
        items = [
            build_item_xml("Episode 1: One", guid="g1"),
            build_item_xml("No audio", guid="g2", audio_url=None),
            build_item_xml("Episode 3: Three", guid="g3"),
        ]
        self.session.get.return_value = create_rss_response(build_feed_xml(items))

        show, episodes = self._parse()

        self.assertEqual(show.title, TEST_FEED_TITLE)
        self.assertEqual(show.description, "A show about testing things.")
        self.assertEqual([e.guid for e in episodes], ["g1", "g3"])
        self.assertEqual(self.session.get.call_count, 1)
        messages = [e.message for e in self.run_log.entries]
        self.assertIn("Found 2 episodes", messages)

    def test_http_error_is_fatal(self):
        self.session.get.return_value = create_error_response(TEST_FEED_URL, 503, "Unavailable")
        with self.assertRaises(FeedError) as ctx:
            self._parse()
        self.assertIn("Failed to parse RSS feed", str(ctx.exception))
        self.assertIn("503", str(ctx.exception))
        self.assertEqual(self.run_log.error_count, 1)

    def test_network_error_is_fatal(self):
        self.session.get.side_effect = requests.ConnectionError("connection refused")
        with self.assertRaises(FeedError) as ctx:
            self._parse()
        self.assertIn("connection refused", str(ctx.exception))

    def test_parse_error_is_fatal(self):
        self.session.get.return_value = create_rss_response("<rss><channel>")
        with self.assertRaises(FeedError) as ctx:
            self._parse()
        self.assertTrue(str(ctx.exception).startswith("Failed to parse RSS feed:"))


if __name__ == "__main__":
    unittest.main()
