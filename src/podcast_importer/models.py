"""Data models for parsed feeds, canonical podcast records and import results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

LogLevel = Literal["info", "warn", "error"]


@dataclass
class FeedEnclosure:
    """Media attachment of an RSS item (``<enclosure url length type>``)."""

    url: Optional[str] = None
    length: Optional[str] = None
    type: Optional[str] = None


@dataclass
class FeedItem:
    """Typed view of an RSS ``<item>`` element.

    Every field is the raw (stripped) text or attribute value from the feed, or
    None when the element is absent. Namespaced extensions are exposed under
    their prefix, e.g. ``itunes:duration`` becomes ``itunes_duration``.
    """

    title: Optional[str] = None
    guid: Optional[str] = None
    link: Optional[str] = None
    pub_date: Optional[str] = None
    description: Optional[str] = None
    content_encoded: Optional[str] = None
    itunes_summary: Optional[str] = None
    enclosure: Optional[FeedEnclosure] = None
    itunes_episode: Optional[str] = None
    itunes_duration: Optional[str] = None
    itunes_image: Optional[str] = None
    itunes_explicit: Optional[str] = None
    itunes_keywords: Optional[str] = None
    itunes_author: Optional[str] = None
    dc_creator: Optional[str] = None


@dataclass
class FeedChannel:
    """Typed view of an RSS ``<channel>`` element and its items.

    Attributes:
        title: Channel ``<title>``.
        description: Channel ``<description>`` (may contain HTML).
        link: Publisher website (``<link>``).
        image_url: RSS 2.0 ``<image><url>`` value.
        itunes_image: ``href`` attribute of ``<itunes:image>``.
        itunes_categories: ``text`` attributes of top-level ``<itunes:category>``.
        podcast_guid: Podcasting 2.0 ``<podcast:guid>``.
        items: Items in feed order.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    link: Optional[str] = None
    language: Optional[str] = None
    copyright: Optional[str] = None
    author: Optional[str] = None
    image_url: Optional[str] = None
    itunes_author: Optional[str] = None
    itunes_image: Optional[str] = None
    itunes_categories: List[str] = field(default_factory=list)
    itunes_keywords: Optional[str] = None
    itunes_explicit: Optional[str] = None
    podcast_guid: Optional[str] = None
    items: List[FeedItem] = field(default_factory=list)


@dataclass
class ShowMetadata:
    """Canonical show-level metadata produced by an adapter."""

    title: str
    description: str = ""
    author: Optional[str] = None
    copyright: Optional[str] = None
    language: Optional[str] = None
    image_url: Optional[str] = None
    website_url: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    explicit: bool = False
    guid: Optional[str] = None


@dataclass
class Episode:
    """Canonical episode record produced by an adapter.

    ``guid`` is the only identity used for deduplication against the store.

    Attributes:
        title: Episode title as published (may change between runs).
        guid: Stable unique identifier from the feed item.
        publish_date: Timezone-aware publication datetime.
        audio_url: Enclosure URL; items without one never become episodes.
        episode_number: Explicit or title-derived number, None when unknown.
        duration: Duration in seconds, None when unknown.
    """

    title: str
    guid: str
    publish_date: datetime
    audio_url: str
    episode_number: Optional[int] = None
    audio_file_size: Optional[int] = None
    duration: Optional[int] = None
    description: Optional[str] = None
    summary: Optional[str] = None
    image_url: Optional[str] = None
    explicit: bool = False
    keywords: List[str] = field(default_factory=list)
    author: Optional[str] = None


@dataclass
class ShowImportResult:
    """Outcome of the show upsert."""

    success: bool
    store_id: Optional[str] = None
    created: bool = False
    updated: bool = False
    skipped: bool = False
    skip_reason: Optional[str] = None
    error: Optional[str] = None
    dry_run: bool = False


@dataclass
class EpisodeImportResult:
    """Outcome of one episode upsert."""

    success: bool
    episode_title: str
    episode_guid: str
    store_id: Optional[str] = None
    created: bool = False
    updated: bool = False
    skipped: bool = False
    skip_reason: Optional[str] = None
    error: Optional[str] = None
    dry_run: bool = False

    @property
    def outcome(self) -> str:
        if not self.success:
            return "failed"
        if self.skipped:
            return "skipped"
        if self.updated:
            return "updated"
        return "created"


@dataclass(frozen=True)
class ImportLogEntry:
    """A single run log record. Never mutated once created."""

    timestamp: datetime
    level: LogLevel
    message: str
    details: Any = None


@dataclass
class ImportReport:
    """Aggregate outcome of one import run.

    ``started_at``/``finished_at`` bracket the episode phase only.
    """

    show: ShowImportResult
    episodes: List[EpisodeImportResult]
    started_at: datetime
    finished_at: datetime

    @property
    def total(self) -> int:
        return len(self.episodes)

    @property
    def imported(self) -> int:
        return sum(1 for r in self.episodes if r.success and not r.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.episodes if r.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.episodes if not r.success)

    @property
    def failed_episodes(self) -> List[EpisodeImportResult]:
        return [r for r in self.episodes if not r.success]

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dictionary."""
        return {
            "show": self.show.__dict__.copy(),
            "episodes": [r.__dict__.copy() for r in self.episodes],
            "summary": {
                "total": self.total,
                "imported": self.imported,
                "skipped": self.skipped,
                "failed": self.failed,
            },
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
        }
