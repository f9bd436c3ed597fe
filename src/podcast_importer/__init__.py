"""podcast_importer: synchronize a podcast RSS feed into a content store.

Typical use::

    from podcast_importer import Config, run_import

    cfg = Config(
        feed_url="https://feeds.transistor.fm/my-show",
        project_id="abc123",
        token="sk...",
        dry_run=True,
    )
    report = run_import(cfg)
"""

from __future__ import annotations

__version__ = "1.0.0"

from .config import Config, load_config_file
from .exceptions import (
    DownloadError,
    FeedError,
    ImageUploadError,
    ImporterError,
    StoreConfigError,
    StoreError,
)
from .models import (
    Episode,
    EpisodeImportResult,
    ImportLogEntry,
    ImportReport,
    ShowImportResult,
    ShowMetadata,
)
from .workflow import apply_log_level, run_import

__all__ = [
    "__version__",
    "Config",
    "DownloadError",
    "Episode",
    "EpisodeImportResult",
    "FeedError",
    "ImageUploadError",
    "ImportLogEntry",
    "ImportReport",
    "ImporterError",
    "ShowImportResult",
    "ShowMetadata",
    "StoreConfigError",
    "StoreError",
    "apply_log_level",
    "load_config_file",
    "run_import",
]
