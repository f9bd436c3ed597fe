"""Configuration constants for podcast_importer.

All constants are re-exported from config.py for convenience.
"""

# General defaults
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = "rss-import.log"
DEFAULT_TIMEOUT_SECONDS = 30
MIN_TIMEOUT_SECONDS = 1
DEFAULT_USER_AGENT = "podcast-feed-importer/1.0 (+https://pypi.org/project/podcast-feed-importer/)"

# Pause between episode upserts, keeps request rate under the store's limits
DEFAULT_EPISODE_DELAY_MS = 100

# Content store defaults
DEFAULT_STORE_DATASET = "production"
DEFAULT_STORE_API_VERSION = "2024-01-01"

# Environment variables consulted when a value is not given explicitly.
# Earlier names win.
ENV_FEED_URL = ("RSS_FEED_URL",)
ENV_PROJECT_ID = ("SANITY_PROJECT_ID", "PUBLIC_SANITY_PROJECT_ID")
ENV_DATASET = ("SANITY_DATASET", "PUBLIC_SANITY_DATASET")
ENV_TOKEN = ("SANITY_TOKEN", "SANITY_WRITE_TOKEN")

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
