"""Parsing helpers shared by all host adapters.

These are plain functions so that every adapter normalizes durations, dates,
episode numbers and markup the same way.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from html import unescape
from html.parser import HTMLParser
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

# Time conversion constants
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600

# Duration parsing constants
DURATION_PARTS_HHMMSS = 3
DURATION_PARTS_MMSS = 2
DURATION_PARTS_SS = 1

# Title patterns tried in order when no explicit episode number is present
EPISODE_NUMBER_PATTERNS = (
    re.compile(r"\bEpisode\s+(\d+)", re.IGNORECASE),
    re.compile(r"\bEp\.?\s*(\d+)", re.IGNORECASE),
    re.compile(r"#(\d+)"),
    re.compile(r"^(\d+)\s*[-:]"),
)

EXPLICIT_VALUES = frozenset({"yes", "true", "explicit"})


def parse_duration(value: Union[str, int, float, None]) -> Optional[int]:
    """Parse a duration into whole seconds.

    Accepts ``H:MM:SS``, ``MM:SS``, ``SS`` or a bare number of seconds.

    Args:
        value: Raw ``itunes:duration`` value

    Returns:
        Duration in seconds, or None if absent or malformed
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value >= 0 else None

    duration_str = value.strip()
    if not duration_str:
        return None
    try:
        parts = duration_str.split(":")
        if len(parts) == DURATION_PARTS_HHMMSS:  # HH:MM:SS
            hours, minutes, seconds = (int(p) for p in parts)
            total = hours * SECONDS_PER_HOUR + minutes * SECONDS_PER_MINUTE + seconds
        elif len(parts) == DURATION_PARTS_MMSS:  # MM:SS
            minutes, seconds = (int(p) for p in parts)
            total = minutes * SECONDS_PER_MINUTE + seconds
        elif len(parts) == DURATION_PARTS_SS:  # SS, sometimes with a fraction
            total = int(float(parts[0]))
        else:
            return None
    except ValueError:
        logger.debug("Unparsable duration %r", value)
        return None
    return total if total >= 0 else None


def parse_date(value: Optional[str]) -> datetime:
    """Parse an RFC 822 or ISO 8601 date string.

    Falls back to the current time (UTC) when the value is absent or cannot be
    parsed, so that a bad date never drops an episode. Naive results are
    assumed to be UTC.
    """
    if value and value.strip():
        text = value.strip()
        parsed: Optional[datetime] = None
        try:
            parsed = parsedate_to_datetime(text)
        # Intentional fallback for date parsing
        except (TypeError, ValueError, IndexError):
            parsed = None
        if parsed is None:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed
        logger.debug("Unparsable date %r, using current time", value)
    return datetime.now(timezone.utc)


def extract_episode_number(title: str, explicit_number: Optional[int] = None) -> Optional[int]:
    """Return the explicit episode number, else one found in the title.

    Title patterns are tried in order: ``Episode <n>``, ``Ep. <n>``, ``#<n>``
    and ``<n> -`` / ``<n>:`` at the start of the title.

    Returns:
        The episode number, or None when nothing matches
    """
    if explicit_number is not None:
        return explicit_number

    for pattern in EPISODE_NUMBER_PATTERNS:
        match = pattern.search(title or "")
        if match:
            return int(match.group(1))
    return None


def parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


class _HTMLStripper(HTMLParser):
    """Simple HTML tag stripper that keeps text segments separated by spaces."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.text_parts: List[str] = []

    def handle_data(self, data):
        if data.strip():
            self.text_parts.append(data.strip())

    def get_text(self):
        return " ".join(self.text_parts)


def strip_html(text: Optional[str]) -> Optional[str]:
    """Strip HTML tags from text and decode entities.

    Args:
        text: Text potentially containing HTML

    Returns:
        Plain text with normalized whitespace, or None for empty input
    """
    if not text:
        return None

    # Feeds sometimes double-escape markup inside CDATA
    text = unescape(text)

    stripper = _HTMLStripper()
    try:
        stripper.feed(text)
        stripper.close()
        cleaned = stripper.get_text()
    except Exception:
        # Fallback: simple regex-based stripping if parser fails
        cleaned = re.sub(r"<[^>]+>", " ", text)

    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned or None


def split_keywords(value: Optional[str]) -> List[str]:
    """Split a comma separated ``itunes:keywords`` value."""
    if not value:
        return []
    return [k.strip() for k in value.split(",") if k.strip()]


def parse_explicit(value: Optional[str]) -> bool:
    """Interpret an ``itunes:explicit`` value."""
    return bool(value) and value.strip().lower() in EXPLICIT_VALUES
