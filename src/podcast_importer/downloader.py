"""HTTP session management and download helpers for podcast_importer.

Sessions are created explicitly by the caller (once per run) and passed to the
helpers below; nothing in this module caches a session globally.
"""

from __future__ import annotations

import logging
from typing import cast, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from requests.utils import requote_uri
from urllib3.util.retry import Retry

from .exceptions import DownloadError

logger = logging.getLogger(__name__)

DEFAULT_HTTP_BACKOFF_FACTOR = 0.5
DEFAULT_HTTP_RETRY_TOTAL = 3
HTTP_RETRY_ALLOWED_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
HTTP_RETRY_STATUS_CODES = (429, 500, 502, 503, 504)


def normalize_url(url: str) -> str:
    """Normalize URLs while preserving already-encoded segments."""
    normalized = requote_uri(url)
    if normalized != url:
        logger.debug("Normalized URL %s -> %s", url, normalized)
    return cast(str, normalized)


def _configure_http_session(session: requests.Session) -> None:
    """Attach retry-enabled HTTP adapters to a session."""

    class LoggingRetry(Retry):
        def increment(self, method=None, url=None, *args, **kwargs):  # type: ignore[override]
            new_retry = super().increment(method=method, url=url, *args, **kwargs)
            attempt = len(new_retry.history) + 1
            reason = kwargs.get("error") or kwargs.get("response")
            logger.warning(
                f"Retrying HTTP request (attempt {attempt}/{new_retry.total}) "
                f"{method or ''} {url or ''} due to {reason}"
            )
            return new_retry

    retry = LoggingRetry(
        total=DEFAULT_HTTP_RETRY_TOTAL,
        read=DEFAULT_HTTP_RETRY_TOTAL,
        connect=DEFAULT_HTTP_RETRY_TOTAL,
        status=DEFAULT_HTTP_RETRY_TOTAL,
        backoff_factor=DEFAULT_HTTP_BACKOFF_FACTOR,
        status_forcelist=HTTP_RETRY_STATUS_CODES,
        allowed_methods=HTTP_RETRY_ALLOWED_METHODS,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    logger.debug("Configured HTTP session %s with retry-enabled adapters", hex(id(session)))


def create_session(user_agent: str, *, retries: bool = True) -> requests.Session:
    """Create an HTTP session owned by the caller.

    Args:
        user_agent: Value of the User-Agent header sent with every request
        retries: Mount retry adapters for idempotent requests. Content store
            sessions pass False so that store errors surface immediately.

    Returns:
        A configured ``requests.Session``; the caller is responsible for closing it.
    """
    session = requests.Session()
    session.headers["User-Agent"] = user_agent
    if retries:
        _configure_http_session(session)
    return session


def fetch_url(session: requests.Session, url: str, timeout: int) -> requests.Response:
    """Execute an HTTP GET and return the successful response.

    Raises:
        DownloadError: On network failure or a non-2xx status code
    """
    normalized_url = normalize_url(url)
    logger.debug("GET %s (timeout=%s) via session %s", normalized_url, timeout, hex(id(session)))
    try:
        resp = session.get(normalized_url, timeout=timeout)
    except requests.RequestException as exc:
        raise DownloadError(f"Failed to fetch {url}: {exc}", url) from exc

    if not 200 <= resp.status_code < 300:
        reason = resp.reason or "HTTP error"
        status = resp.status_code
        resp.close()
        raise DownloadError(f"Failed to fetch {url}: {status} {reason}", url, status)

    logger.debug(
        "HTTP request to %s succeeded with status %s and Content-Length=%s",
        normalized_url,
        resp.status_code,
        resp.headers.get("Content-Length"),
    )
    return resp


def fetch_bytes(
    session: requests.Session, url: str, timeout: int
) -> Tuple[bytes, Optional[str]]:
    """Fetch a URL and return its body and Content-Type header.

    Raises:
        DownloadError: On network failure, a non-2xx status, or a read error
    """
    resp = fetch_url(session, url, timeout)
    try:
        return resp.content, resp.headers.get("Content-Type")
    except (requests.RequestException, OSError) as exc:
        raise DownloadError(f"Failed to read response from {url}: {exc}", url) from exc
    finally:
        resp.close()
