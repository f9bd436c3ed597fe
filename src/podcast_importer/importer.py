"""Idempotent reconciliation of parsed feed records against the content store.

The show is upserted first, then every episode in feed order, keyed by its
feed GUID. Store failures for one episode are recorded as that episode's
result and never abort the batch.
"""

from __future__ import annotations

import logging
import re
import time
from datetime import timezone
from typing import Any, Callable, Dict, List, Optional

from .config import Config
from .exceptions import StoreError
from .images import ImageHandler
from .models import Episode, EpisodeImportResult, ShowImportResult, ShowMetadata
from .run_log import ImportLogger
from .store.base import ContentStore, Document

logger = logging.getLogger(__name__)

# The store is expected to hold at most one podcast document
SHOW_QUERY = '*[_type == "podcast"]{_id}'
EPISODE_BY_GUID_QUERY = '*[_type == "episode" && rssGuid == $guid][0]'

ALREADY_EXISTS = "Already exists"
UNKNOWN_EPISODE_NUMBER = "unknown"
DEFAULT_SLUG = "untitled"

_SLUG_SEPARATOR_RE = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Derive a URL-safe slug from a title.

    Lowercases, collapses every run of non-alphanumeric characters to a single
    hyphen and trims hyphens from both ends. Deterministic for the same title.

    Example:
        >>> slugify("AI & ML: Part One!")
        'ai-ml-part-one'
    """
    slug = _SLUG_SEPARATOR_RE.sub("-", (title or "").lower()).strip("-")
    return slug or DEFAULT_SLUG


def format_duration(seconds: int) -> str:
    """Format seconds as ``H:MM:SS`` (an hour or more) or ``M:SS``."""
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _without_empty(document: Dict[str, Any]) -> Document:
    return {k: v for k, v in document.items() if v is not None}


def build_show_document(show: ShowMetadata, logo: Optional[Dict[str, Any]] = None) -> Document:
    """Podcast document for the store.

    Tagline, platform and social links are left for manual editing.
    """
    return _without_empty(
        {
            "_type": "podcast",
            "name": show.title,
            "tagline": "",
            "description": show.description,
            "logo": logo,
            "isActive": True,
        }
    )


def build_episode_document(
    episode: Episode, cover_image: Optional[Dict[str, Any]] = None
) -> Document:
    """Episode document for the store, keyed by ``rssGuid``."""
    publish_date = episode.publish_date.astimezone(timezone.utc).strftime("%Y-%m-%d")
    return _without_empty(
        {
            "_type": "episode",
            "title": episode.title,
            "slug": {"_type": "slug", "current": slugify(episode.title)},
            "episodeNumber": episode.episode_number,
            "publishDate": publish_date,
            "duration": format_duration(episode.duration) if episode.duration else None,
            "description": episode.description or episode.summary or "",
            "audioUrl": episode.audio_url,
            "rssGuid": episode.guid,
            "coverImage": cover_image,
            "featured": False,
        }
    )


class Importer:
    """Upserts show and episodes into a content store.

    The store client, run logger and config are shared by every upsert of a
    run and are passed in, never created here.

    Args:
        store: Content store client
        run_log: Run logger
        cfg: Run configuration (dry_run, skip_images, update_existing, delay_ms)
        image_handler: Image pipeline; required unless images are skipped or
            the run is a dry run
        sleep_fn: Called with the inter-episode delay in seconds
    """

    def __init__(
        self,
        store: ContentStore,
        run_log: ImportLogger,
        cfg: Config,
        image_handler: Optional[ImageHandler] = None,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.run_log = run_log
        self.cfg = cfg
        self.image_handler = image_handler
        self._sleep = sleep_fn
        # guid -> record handled earlier in this run ({"_id": None} for dry-run creates)
        self._seen: Dict[str, Dict[str, Any]] = {}

    def _upload_image(self, url: str, filename: str, label: str) -> Optional[Dict[str, Any]]:
        """Upload an image, downgrading any failure to a warning."""
        if self.cfg.skip_images or self.cfg.dry_run or self.image_handler is None:
            return None
        try:
            return self.image_handler.upload_from_url(url, filename)
        except Exception as exc:
            self.run_log.warn(f"Failed to upload {label}, continuing without it: {exc}")
            return None

    def _find_show(self) -> Optional[Dict[str, Any]]:
        docs = self.store.fetch(SHOW_QUERY)
        if not docs:
            return None
        if isinstance(docs, dict):
            return docs
        if len(docs) > 1:
            ids = [d.get("_id") for d in docs]
            raise StoreError(
                f"Expected at most one podcast document, found {len(docs)}: {', '.join(map(str, ids))}"
            )
        return docs[0]

    def import_show(self, show: ShowMetadata) -> ShowImportResult:
        """Create or update the singleton podcast document.

        An existing document is left untouched unless ``update_existing`` is set.
        """
        dry_run = self.cfg.dry_run
        try:
            self.run_log.info(f"Importing show metadata: {show.title}")
            existing = self._find_show()
            existing_id = existing.get("_id") if existing else None

            if existing and not self.cfg.update_existing:
                self.run_log.warn("Podcast document already exists. Skipping show import.")
                return ShowImportResult(
                    success=True,
                    store_id=existing_id,
                    skipped=True,
                    skip_reason=ALREADY_EXISTS,
                    dry_run=dry_run,
                )

            logo = None
            if show.image_url:
                logo = self._upload_image(show.image_url, f"{show.title}-logo.jpg", "show logo")
            document = build_show_document(show, logo)

            if dry_run:
                action = "update" if existing else "create"
                self.run_log.info(f"Dry run: Would {action} podcast document", {"name": show.title})
                return ShowImportResult(
                    success=True,
                    store_id=existing_id,
                    created=not existing,
                    updated=bool(existing),
                    dry_run=True,
                )

            if existing:
                result = self.store.patch(existing_id).set(document).commit()
                self.run_log.info(f"Updated podcast document: {result['_id']}")
                return ShowImportResult(success=True, store_id=result["_id"], updated=True)

            result = self.store.create(document)
            self.run_log.info(f"Created podcast document: {result['_id']}")
            return ShowImportResult(success=True, store_id=result["_id"], created=True)
        except Exception as exc:
            self.run_log.error(f"Failed to import show: {exc}", {"error": type(exc).__name__})
            logger.debug("Show import failed", exc_info=True)
            return ShowImportResult(success=False, error=str(exc), dry_run=dry_run)

    def _find_episode(self, guid: str) -> Optional[Dict[str, Any]]:
        if guid in self._seen:
            return self._seen[guid]
        return self.store.fetch(EPISODE_BY_GUID_QUERY, {"guid": guid})

    def import_episode(self, episode: Episode) -> EpisodeImportResult:
        """Create, update or skip one episode keyed by its GUID.

        Never raises: any failure is returned as an unsuccessful result.
        """
        dry_run = self.cfg.dry_run
        try:
            self.run_log.info(f"Importing episode: {episode.title}")
            existing = self._find_episode(episode.guid)
            existing_id = existing.get("_id") if existing else None

            if existing and not self.cfg.update_existing:
                self.run_log.info(f"Episode already exists (GUID: {episode.guid}). Skipping.")
                self._seen.setdefault(episode.guid, existing)
                return EpisodeImportResult(
                    success=True,
                    episode_title=episode.title,
                    episode_guid=episode.guid,
                    store_id=existing_id,
                    skipped=True,
                    skip_reason=ALREADY_EXISTS,
                    dry_run=dry_run,
                )

            cover_image = None
            if episode.image_url:
                number = episode.episode_number or UNKNOWN_EPISODE_NUMBER
                cover_image = self._upload_image(
                    episode.image_url, f"episode-{number}-cover.jpg", "episode cover"
                )
            document = build_episode_document(episode, cover_image)

            if dry_run:
                action = "update" if existing else "create"
                self.run_log.info(
                    f"Dry run: Would {action} episode document",
                    {"title": episode.title, "slug": document["slug"]["current"]},
                )
                self._seen[episode.guid] = existing or {"_id": None}
                return EpisodeImportResult(
                    success=True,
                    episode_title=episode.title,
                    episode_guid=episode.guid,
                    store_id=existing_id,
                    created=not existing,
                    updated=bool(existing),
                    dry_run=True,
                )

            if existing:
                result = self.store.patch(existing_id).set(document).commit()
                self.run_log.info(f"Updated episode: {result['_id']}")
            else:
                result = self.store.create(document)
                self.run_log.info(f"Created episode: {result['_id']}")
            self._seen[episode.guid] = {"_id": result["_id"]}
            return EpisodeImportResult(
                success=True,
                episode_title=episode.title,
                episode_guid=episode.guid,
                store_id=result["_id"],
                created=not existing,
                updated=bool(existing),
            )
        except Exception as exc:
            self.run_log.error(
                f'Failed to import episode "{episode.title}": {exc}',
                {"guid": episode.guid, "error": type(exc).__name__},
            )
            logger.debug("Episode import failed for %s", episode.guid, exc_info=True)
            return EpisodeImportResult(
                success=False,
                episode_title=episode.title,
                episode_guid=episode.guid,
                error=str(exc),
                dry_run=dry_run,
            )

    def import_episodes(self, episodes: List[Episode]) -> List[EpisodeImportResult]:
        """Import episodes strictly in order, pausing after every one."""
        self.run_log.info(f"Importing {len(episodes)} episodes...")
        delay = self.cfg.delay_ms / 1000.0
        results: List[EpisodeImportResult] = []
        for idx, episode in enumerate(episodes, start=1):
            self.run_log.info(f"Processing episode {idx}/{len(episodes)}")
            results.append(self.import_episode(episode))
            self._sleep(delay)
        return results
