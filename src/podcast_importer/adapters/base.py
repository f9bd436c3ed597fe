"""HostAdapter protocol definition.

This module defines the protocol that all host adapters must implement. An
adapter turns the typed channel produced by the feed parser into the canonical
show and episode records for one podcast host's dialect of RSS.
"""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from ..models import Episode, FeedChannel, ShowMetadata


@runtime_checkable
class HostAdapter(Protocol):
    """Protocol for podcast host adapters."""

    #: Human readable host name, e.g. "Transistor"
    name: str

    def can_handle(self, feed_url: str) -> bool:
        """Return True if this adapter recognizes the feed's host."""
        ...

    def parse_show_metadata(self, channel: FeedChannel) -> ShowMetadata:
        """Extract show-level metadata from the parsed channel."""
        ...

    def parse_episodes(self, channel: FeedChannel) -> List[Episode]:
        """Extract episodes in feed order.

        Items without a GUID or without an audio enclosure are excluded.
        """
        ...
