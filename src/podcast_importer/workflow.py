"""End-to-end import run and logging setup."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import requests

from . import config, downloader, rss_parser
from .adapters import select_adapter
from .exceptions import FeedError
from .images import ImageHandler
from .importer import Importer
from .models import ImportReport
from .report import save_report
from .run_log import ImportLogger
from .store import ContentStore, SanityStore

logger = logging.getLogger(__name__)


def apply_log_level(level: str) -> None:
    """Apply logging level to root logger and configure the console handler.

    Args:
        level: Log level string (e.g., 'DEBUG', 'INFO', 'WARNING')

    Raises:
        ValueError: If log level is invalid
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    root_logger = logging.getLogger()
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    if not root_logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)
        root_logger.setLevel(numeric_level)
    else:
        root_logger.setLevel(numeric_level)
        for handler in root_logger.handlers:
            handler.setLevel(numeric_level)
            handler.setFormatter(formatter)

    logger.setLevel(numeric_level)


def run_import(
    cfg: config.Config,
    *,
    store: Optional[ContentStore] = None,
    session: Optional[requests.Session] = None,
    run_log: Optional[ImportLogger] = None,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> ImportReport:
    """Import one feed into the content store.

    Stages:

    1. Select the host adapter for the feed URL
    2. Fetch and parse the feed (fatal on failure)
    3. Upsert the show document
    4. Upsert every episode sequentially, keyed by GUID
    5. Write the run log summary and, if configured, the JSON report

    The HTTP session and store client are created once here and shared by every
    stage. Sessions passed in by the caller are not closed.

    Args:
        cfg: Validated configuration
        store: Content store (default: `SanityStore` built from ``cfg``)
        session: HTTP session for feed and image downloads
        run_log: Run logger (default: built from ``cfg.verbose``/``cfg.log_file``)
        sleep_fn: Inter-episode pause function

    Returns:
        ImportReport for the run

    Raises:
        FeedError: If the feed cannot be fetched or parsed
        StoreConfigError: If store credentials are missing
    """
    if run_log is None:
        run_log = ImportLogger(verbose=cfg.verbose, log_file=cfg.log_file)

    run_log.info("Starting RSS import process")
    run_log.info(f"Feed URL: {cfg.feed_url}")
    run_log.info(f"Dry run: {cfg.dry_run}")
    run_log.info(f"Skip images: {cfg.skip_images}")
    run_log.info(f"Update existing: {cfg.update_existing}")

    http_session = session or downloader.create_session(cfg.user_agent)
    store_session: Optional[requests.Session] = None
    try:
        if store is None:
            store_session = downloader.create_session(cfg.user_agent, retries=False)
            store = SanityStore.from_config(cfg, store_session)

        adapter = select_adapter(cfg.feed_url)
        run_log.info(f"Using adapter: {adapter.name}")

        try:
            show, episodes = rss_parser.parse_feed(
                cfg.feed_url,
                adapter,
                session=http_session,
                logger=run_log,
                timeout=cfg.timeout,
            )
        except FeedError:
            run_log.write_summary()
            raise

        image_handler = ImageHandler(store, http_session, run_log, timeout=cfg.timeout)
        importer = Importer(store, run_log, cfg, image_handler=image_handler, sleep_fn=sleep_fn)

        show_result = importer.import_show(show)

        started_at = datetime.now(timezone.utc)
        episode_results = importer.import_episodes(episodes)
        finished_at = datetime.now(timezone.utc)
    finally:
        if session is None:
            http_session.close()
        if store_session is not None:
            store_session.close()

    report = ImportReport(
        show=show_result,
        episodes=episode_results,
        started_at=started_at,
        finished_at=finished_at,
    )
    run_log.info(
        "Import finished",
        {"imported": report.imported, "skipped": report.skipped, "failed": report.failed},
    )
    run_log.write_summary()

    if cfg.report_file:
        save_report(report, cfg.report_file, feed_url=cfg.feed_url)

    return report
