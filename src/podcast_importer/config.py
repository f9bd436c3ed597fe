from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from . import config_constants


# .env supplies feed URL and store credentials for local runs.
# SKIP .env loading in test environments - tests should use Config objects and
# environment variables directly, never rely on .env files
def _is_test_environment() -> bool:
    """Check if we're running in a test environment."""
    import sys

    if "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ:
        return True
    if os.environ.get("TESTING", "").lower() in ("1", "true", "yes"):
        return True
    return False


if not _is_test_environment():
    try:
        load_dotenv(Path.cwd() / ".env", override=False)
    except (PermissionError, OSError):
        # If loading fails, continue without .env file
        pass

DEFAULT_LOG_LEVEL = config_constants.DEFAULT_LOG_LEVEL
DEFAULT_LOG_FILE = config_constants.DEFAULT_LOG_FILE
DEFAULT_TIMEOUT_SECONDS = config_constants.DEFAULT_TIMEOUT_SECONDS
MIN_TIMEOUT_SECONDS = config_constants.MIN_TIMEOUT_SECONDS
DEFAULT_USER_AGENT = config_constants.DEFAULT_USER_AGENT
DEFAULT_EPISODE_DELAY_MS = config_constants.DEFAULT_EPISODE_DELAY_MS
DEFAULT_STORE_DATASET = config_constants.DEFAULT_STORE_DATASET
DEFAULT_STORE_API_VERSION = config_constants.DEFAULT_STORE_API_VERSION
VALID_LOG_LEVELS = config_constants.VALID_LOG_LEVELS


def _first_env(names: Sequence[str]) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return None


class Config(BaseModel):
    """Options for one feed import run.

    The model is frozen: a run reads the same options from start to finish.
    Values not given explicitly are looked up in the environment (and a ``.env``
    file in the working directory outside of tests).

    Attributes:
        feed_url: RSS feed URL to import (env: RSS_FEED_URL).
        project_id: Content store project id (env: SANITY_PROJECT_ID).
        dataset: Content store dataset (env: SANITY_DATASET, default "production").
        token: Content store write token (env: SANITY_TOKEN / SANITY_WRITE_TOKEN).
        api_version: Content store API version date.
        dry_run: Report intended changes without writing to the store.
        skip_images: Do not download or upload cover images.
        update_existing: Patch records that already exist instead of skipping them.
        verbose: Print info and warning log entries to the console.
        log_file: Run log path, truncated at the start of every run. None disables it.
        report_file: Optional path for a JSON copy of the final report.
        timeout: HTTP request timeout in seconds (minimum: 1).
        user_agent: HTTP User-Agent header for feed and image requests.
        delay_ms: Pause after every episode upsert in milliseconds.

    Example:
        >>> cfg = Config(
        ...     feed_url="https://feeds.transistor.fm/my-show",
        ...     project_id="abc123",
        ...     token="sk-write-token",
        ...     dry_run=True,
        ... )
    """

    feed_url: str = Field(alias="feed", description="RSS feed URL to import.")
    project_id: Optional[str] = Field(default=None, description="Content store project id.")
    dataset: str = Field(default=DEFAULT_STORE_DATASET, description="Content store dataset.")
    token: Optional[str] = Field(default=None, description="Content store write token.")
    api_version: str = Field(default=DEFAULT_STORE_API_VERSION)
    dry_run: bool = False
    skip_images: bool = False
    update_existing: bool = Field(default=False, alias="update")
    verbose: bool = False
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = DEFAULT_LOG_FILE
    report_file: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    delay_ms: int = DEFAULT_EPISODE_DELAY_MS

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _fill_from_environment(cls, data: Any) -> Any:
        """Fill feed URL and store credentials from the environment when missing."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("feed_url") is None and data.get("feed") is None:
            env_value = _first_env(config_constants.ENV_FEED_URL)
            if env_value:
                data["feed_url"] = env_value
        if data.get("project_id") is None:
            data["project_id"] = _first_env(config_constants.ENV_PROJECT_ID)
        if data.get("dataset") is None:
            data["dataset"] = _first_env(config_constants.ENV_DATASET) or DEFAULT_STORE_DATASET
        if data.get("token") is None:
            data["token"] = _first_env(config_constants.ENV_TOKEN)
        return data

    @field_validator("feed_url", mode="before")
    @classmethod
    def _strip_feed_url(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("feed_url", mode="after")
    @classmethod
    def _validate_feed_url(cls, value: str) -> str:
        if not value:
            raise ValueError("Feed URL is required")
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"Feed URL must be http or https: {value}")
        if not parsed.netloc:
            raise ValueError(f"Feed URL must have a valid hostname: {value}")
        return value

    @field_validator("project_id", "token", "log_file", "report_file", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("user_agent", mode="before")
    @classmethod
    def _coerce_user_agent(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_USER_AGENT
        return str(value).strip() or DEFAULT_USER_AGENT

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_LOG_LEVEL
        return str(value).strip().upper() or DEFAULT_LOG_LEVEL

    @field_validator("log_level", mode="after")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        if value not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {VALID_LOG_LEVELS}, got: {value}")
        return value

    @field_validator("timeout", mode="before")
    @classmethod
    def _ensure_timeout(cls, value: Any) -> int:
        if value is None or value == "":
            return DEFAULT_TIMEOUT_SECONDS
        try:
            timeout = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("timeout must be an integer") from exc
        return max(MIN_TIMEOUT_SECONDS, timeout)

    @field_validator("delay_ms", mode="before")
    @classmethod
    def _ensure_delay_ms(cls, value: Any) -> int:
        if value is None or value == "":
            return DEFAULT_EPISODE_DELAY_MS
        try:
            delay = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("delay_ms must be an integer") from exc
        if delay < 0:
            raise ValueError("delay_ms must be non-negative")
        return delay

    @model_validator(mode="after")
    def _require_store_credentials(self) -> "Config":
        """Missing store credentials are fatal before any network call is made."""
        if not self.project_id:
            raise ValueError(
                "SANITY_PROJECT_ID not found. Set it in .env or pass --project-id"
            )
        if not self.token:
            raise ValueError("SANITY_TOKEN not found. Set it in .env or pass --token")
        return self


def load_config_file(path: str) -> Dict[str, Any]:
    """Load configuration from a JSON or YAML file.

    The file format is auto-detected from the extension (`.json`, `.yaml` or
    `.yml`). The returned dictionary can be unpacked into `Config`.

    Args:
        path: Path to configuration file. Supports tilde expansion.

    Returns:
        Dictionary of configuration values (aliases such as ``feed`` and
        ``update`` are accepted by `Config`).

    Raises:
        ValueError: If the path is empty, missing, unreadable, of an unsupported
            type, or does not contain a mapping at the top level.

    Example:
        >>> cfg = Config(**load_config_file("import.yaml"))
    """
    if not path:
        raise ValueError("Config path cannot be empty")

    cfg_path = Path(path).expanduser()
    try:
        resolved = cfg_path.resolve()
    except (OSError, RuntimeError) as exc:
        raise ValueError(f"Invalid config path: {path} ({exc})") from exc

    if not resolved.exists():
        raise ValueError(f"Config file not found: {resolved}")

    suffix = resolved.suffix.lower()
    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Failed to read config file {resolved}: {exc}") from exc

    if suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON config file {resolved}: {exc}") from exc
    elif suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML config file {resolved}: {exc}") from exc
    else:
        raise ValueError(f"Unsupported config file type: {resolved.suffix}")

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping/object at the top level")

    return data
