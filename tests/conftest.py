"""Shared fixtures and test utilities for podcast_importer tests.

This module contains:
- Test constants
- Helper functions for creating test objects and feed XML
- Mock HTTP responses and an in-memory content store
- Network isolation for every test

All test files can import from this module using pytest's conftest.py mechanism.
"""

import logging
import os

# Keep Config from reading a developer's .env while tests run
os.environ.setdefault("TESTING", "1")

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from unittest.mock import patch
from xml.sax.saxutils import escape, quoteattr

import pytest
import requests

from podcast_importer import config, importer, models, run_log
from podcast_importer.exceptions import StoreError
from podcast_importer.store.base import Patch

# Test constants
TEST_FEED_URL = "https://feeds.transistor.fm/test-show"
TEST_GENERIC_FEED_URL = "https://example.com/podcast/feed.xml"
TEST_FEED_TITLE = "Test Show"
TEST_FEED_DESCRIPTION = "<p>A show about <b>testing</b> things.</p>"
TEST_AUTHOR = "Test Host"
TEST_IMAGE_URL = "https://img.example.com/show/cover.png"
TEST_EPISODE_IMAGE_URL = "https://img.example.com/episodes/ep1.jpg"
TEST_AUDIO_URL = "https://media.example.com/ep1.mp3"
TEST_EPISODE_TITLE = "Episode 1: Getting Started"
TEST_EPISODE_GUID = "guid-0001"
TEST_PUB_DATE = "Mon, 15 Jan 2024 10:00:00 GMT"
TEST_PROJECT_ID = "testproj"
TEST_DATASET = "production"
TEST_TOKEN = "sk-test-token"
TEST_USER_AGENT = "test-agent"
TEST_IMAGE_BYTES = b"\x89PNG\r\n\x1a\nfake-image"

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"
PODCAST_NS = "https://podcastindex.org/namespace/1.0"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
DC_NS = "http://purl.org/dc/elements/1.1/"


# Test helper functions
def create_test_config(**overrides):
    """Create test Config object with defaults.

    No run file, no throttling and explicit store credentials unless overridden.

    Args:
        **overrides: Fields to override from defaults

    Returns:
        config.Config object with test defaults
    """
    defaults = {
        "feed_url": TEST_FEED_URL,
        "project_id": TEST_PROJECT_ID,
        "dataset": TEST_DATASET,
        "token": TEST_TOKEN,
        "user_agent": TEST_USER_AGENT,
        "timeout": 5,
        "delay_ms": 0,
        "log_file": None,
    }
    defaults.update(overrides)
    return config.Config(**defaults)


def create_test_episode(**overrides):
    """Create test Episode object with defaults.

    Args:
        **overrides: Fields to override from defaults

    Returns:
        models.Episode object with test defaults
    """
    defaults = {
        "title": TEST_EPISODE_TITLE,
        "guid": TEST_EPISODE_GUID,
        "publish_date": datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
        "audio_url": TEST_AUDIO_URL,
        "episode_number": 1,
        "duration": 3725,
        "description": "First episode.",
    }
    defaults.update(overrides)
    return models.Episode(**defaults)


def create_test_show(**overrides):
    """Create test ShowMetadata object with defaults."""
    defaults = {
        "title": TEST_FEED_TITLE,
        "description": "A show about testing things.",
        "author": TEST_AUTHOR,
        "image_url": TEST_IMAGE_URL,
    }
    defaults.update(overrides)
    return models.ShowMetadata(**defaults)


def build_item_xml(
    title: str,
    guid: Optional[str] = None,
    audio_url: Optional[str] = TEST_AUDIO_URL,
    *,
    pub_date: Optional[str] = TEST_PUB_DATE,
    duration: Optional[str] = None,
    episode: Optional[str] = None,
    image_url: Optional[str] = None,
    description: Optional[str] = None,
    extra: str = "",
) -> str:
    """Build one RSS <item>.

    Args:
        title: Item title (escaped)
        guid: Item GUID; omitted when None
        audio_url: Enclosure URL; no enclosure when None
        pub_date: pubDate value; omitted when None
        duration: itunes:duration value
        episode: itunes:episode value
        image_url: itunes:image href
        description: Description (escaped, so markup survives as text)
        extra: Raw XML appended inside the item

    Returns:
        Item XML string
    """
    parts = [f"<title>{escape(title)}</title>"]
    if guid is not None:
        parts.append(f'<guid isPermaLink="false">{escape(guid)}</guid>')
    if pub_date:
        parts.append(f"<pubDate>{pub_date}</pubDate>")
    if audio_url:
        parts.append(f'<enclosure url={quoteattr(audio_url)} length="1234" type="audio/mpeg" />')
    if duration is not None:
        parts.append(f"<itunes:duration>{duration}</itunes:duration>")
    if episode is not None:
        parts.append(f"<itunes:episode>{episode}</itunes:episode>")
    if image_url:
        parts.append(f"<itunes:image href={quoteattr(image_url)} />")
    if description is not None:
        parts.append(f"<description>{escape(description)}</description>")
    parts.append(extra)
    return "<item>" + "".join(parts) + "</item>"


def build_feed_xml(
    items: Sequence[str] = (),
    *,
    title: str = TEST_FEED_TITLE,
    description: str = TEST_FEED_DESCRIPTION,
    image_url: Optional[str] = TEST_IMAGE_URL,
    author: Optional[str] = TEST_AUTHOR,
    channel_extra: str = "",
) -> str:
    """Build an RSS 2.0 feed with the itunes, podcast, content and dc namespaces.

    Args:
        items: Item XML strings (see ``build_item_xml``)
        title: Channel title
        description: Channel description (escaped)
        image_url: itunes:image href; omitted when None
        author: itunes:author; omitted when None
        channel_extra: Raw XML appended inside the channel

    Returns:
        RSS XML string
    """
    channel_parts = [
        f"<title>{escape(title)}</title>",
        f"<description>{escape(description)}</description>",
        "<link>https://example.com</link>",
        "<language>en-us</language>",
    ]
    if author:
        channel_parts.append(f"<itunes:author>{escape(author)}</itunes:author>")
    if image_url:
        channel_parts.append(f"<itunes:image href={quoteattr(image_url)} />")
    channel_parts.append(channel_extra)
    return (
        "<?xml version='1.0' encoding='UTF-8'?>\n"
        f'<rss version="2.0" xmlns:itunes="{ITUNES_NS}" xmlns:podcast="{PODCAST_NS}" '
        f'xmlns:content="{CONTENT_NS}" xmlns:dc="{DC_NS}">\n'
        "<channel>\n" + "\n".join(channel_parts) + "\n" + "\n".join(items) + "\n</channel>\n</rss>"
    )


class MockHTTPResponse:
    """Simple mock for HTTP responses returned by a mocked requests.Session."""

    def __init__(
        self,
        *,
        content=b"",
        url="",
        headers=None,
        status_code=200,
        reason="OK",
        json_data=None,
    ):
        self.content = content
        self.url = url
        self.headers = headers or {}
        self.status_code = status_code
        self.reason = reason
        self._json_data = json_data
        self.closed = False

    @property
    def text(self):
        return self.content.decode("utf-8", errors="replace")

    def json(self):
        if self._json_data is None:
            raise ValueError("No JSON body")
        return self._json_data

    def raise_for_status(self):
        if not 200 <= self.status_code < 300:
            raise requests.HTTPError(f"{self.status_code} {self.reason}")
        return None

    def close(self):
        self.closed = True


def create_rss_response(rss_xml, url=TEST_FEED_URL):
    """Create MockHTTPResponse for RSS feed."""
    return MockHTTPResponse(
        content=rss_xml.encode("utf-8"),
        url=url,
        headers={"Content-Type": "application/rss+xml"},
    )


def create_image_response(image_bytes=TEST_IMAGE_BYTES, url=TEST_IMAGE_URL, content_type="image/png"):
    """Create MockHTTPResponse for an image."""
    return MockHTTPResponse(
        content=image_bytes,
        url=url,
        headers={"Content-Type": content_type, "Content-Length": str(len(image_bytes))},
    )


def create_error_response(url, status_code=404, reason="Not Found"):
    """Create a non-2xx MockHTTPResponse."""
    return MockHTTPResponse(url=url, status_code=status_code, reason=reason)


class FakeContentStore:
    """In-memory content store implementing the four-operation store contract.

    Understands the two queries issued by the importer. Every call is recorded
    in ``calls`` so tests can assert on writes.

    Args:
        documents: Documents to seed the store with (each needs ``_id``)
        fail_titles: Titles whose create/patch raises StoreError
        fail_uploads: Make every asset upload raise StoreError
    """

    def __init__(
        self,
        documents: Optional[Sequence[Dict[str, Any]]] = None,
        *,
        fail_titles: Sequence[str] = (),
        fail_uploads: bool = False,
    ):
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.assets: List[Tuple[str, bytes, str]] = []
        self.calls: List[Tuple[Any, ...]] = []
        self.fail_titles = set(fail_titles)
        self.fail_uploads = fail_uploads
        self._counter = 0
        for doc in documents or ():
            self.documents[doc["_id"]] = dict(doc)

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}-{self._counter}"

    def fetch(self, query, params=None):
        self.calls.append(("fetch", query, dict(params or {})))
        if query == importer.SHOW_QUERY:
            return [{"_id": d["_id"]} for d in self.documents_of_type("podcast")]
        if query == importer.EPISODE_BY_GUID_QUERY:
            guid = (params or {}).get("guid")
            for doc in self.documents_of_type("episode"):
                if doc.get("rssGuid") == guid:
                    return dict(doc)
            return None
        raise AssertionError(f"Unexpected query: {query}")

    def create(self, document):
        self.calls.append(("create", dict(document)))
        if document.get("title") in self.fail_titles:
            raise StoreError("Mutation rejected", status_code=500)
        doc = dict(document)
        doc["_id"] = self._next_id(document["_type"])
        self.documents[doc["_id"]] = doc
        return dict(doc)

    def patch(self, doc_id):
        return Patch(doc_id, self._commit_patch)

    def _commit_patch(self, doc_id, fields):
        self.calls.append(("patch", doc_id, dict(fields)))
        if fields.get("title") in self.fail_titles:
            raise StoreError("Mutation rejected", status_code=500)
        if doc_id not in self.documents:
            raise StoreError(f"Document not found: {doc_id}", status_code=404)
        self.documents[doc_id].update(fields)
        return dict(self.documents[doc_id])

    def upload_asset(self, kind, data, filename):
        self.calls.append(("upload_asset", kind, filename))
        if self.fail_uploads:
            raise StoreError("Asset upload rejected", status_code=413)
        asset_id = self._next_id(f"{kind}-asset")
        self.assets.append((asset_id, data, filename))
        return {"_id": asset_id}

    def documents_of_type(self, doc_type):
        return [d for d in self.documents.values() if d.get("_type") == doc_type]

    def calls_named(self, name):
        return [c for c in self.calls if c[0] == name]

    @property
    def write_calls(self):
        return [c for c in self.calls if c[0] in ("create", "patch", "upload_asset")]


class NetworkCallDetectedError(Exception):
    """Raised when a test attempts a real HTTP request."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(
            f"Network call detected in test: {url}\n"
            "Tests must not make network calls. Mock the requests.Session instead."
        )


@pytest.fixture(autouse=True)
def block_network():
    """Fail any request that reaches the real transport adapter."""

    def _blocked_send(self, request, *args, **kwargs):
        raise NetworkCallDetectedError(request.url)

    with patch("requests.adapters.HTTPAdapter.send", _blocked_send):
        yield


@pytest.fixture(autouse=True)
def clean_store_environment(monkeypatch):
    """Remove feed and store variables so tests only see explicit values."""
    for names in (
        config.config_constants.ENV_FEED_URL,
        config.config_constants.ENV_PROJECT_ID,
        config.config_constants.ENV_DATASET,
        config.config_constants.ENV_TOKEN,
    ):
        for name in names:
            monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def reset_run_console():
    """Restore the run console logger so handlers never outlive a test's captured streams."""
    console = logging.getLogger(run_log.CONSOLE_LOGGER_NAME)
    saved = (list(console.handlers), console.propagate, console.level)
    yield
    console.handlers[:] = saved[0]
    console.propagate = saved[1]
    console.setLevel(saved[2])
