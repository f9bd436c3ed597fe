"""Adapter selection for feed URLs."""

from __future__ import annotations

from typing import Optional, Sequence

from .base import HostAdapter
from .transistor import TransistorAdapter


def default_adapters() -> list[HostAdapter]:
    """Registered adapters in probe order.

    New host adapters are added here, ahead of the generic entries.
    """
    return [TransistorAdapter()]


def select_adapter(
    feed_url: str,
    adapters: Optional[Sequence[HostAdapter]] = None,
    default: Optional[HostAdapter] = None,
) -> HostAdapter:
    """Pick the first adapter that claims the feed URL.

    Args:
        feed_url: Feed URL to probe
        adapters: Candidates in priority order (default: `default_adapters()`)
        default: Adapter used when no candidate claims the URL
            (default: `TransistorAdapter`, which handles generic RSS)

    Returns:
        The selected adapter. Never fails for an unrecognized host.
    """
    candidates = default_adapters() if adapters is None else adapters
    for adapter in candidates:
        if adapter.can_handle(feed_url):
            return adapter
    return default if default is not None else TransistorAdapter()
