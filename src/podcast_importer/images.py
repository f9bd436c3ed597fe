"""Re-hosting of remote images in the content store."""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests

from . import downloader
from .exceptions import ImageUploadError
from .run_log import ImportLogger
from .store.base import ContentStore

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_EXTENSION = "jpg"
_EXTENSION_RE = re.compile(r"\.([a-z0-9]+)$", re.IGNORECASE)


def extension_from_url(url: str) -> Optional[str]:
    """Return the file extension of the URL path, or None if it has none."""
    try:
        path = urlparse(url).path
    except ValueError:
        return None
    match = _EXTENSION_RE.search(path)
    return match.group(1) if match else None


def image_reference(asset_id: str) -> Dict[str, Any]:
    """Wrap an asset ID into the image field shape used by documents."""
    return {"_type": "image", "asset": {"_type": "reference", "_ref": asset_id}}


class ImageHandler:
    """Downloads images over HTTP and uploads them to the content store.

    Errors are not handled here. Callers decide whether a failed image is
    fatal; the importer downgrades it to a warning.

    Args:
        store: Content store receiving the asset
        session: HTTP session used for the download
        run_log: Run logger
        timeout: Download timeout in seconds
    """

    def __init__(
        self,
        store: ContentStore,
        session: requests.Session,
        run_log: Optional[ImportLogger] = None,
        timeout: int = 30,
    ) -> None:
        self.store = store
        self.session = session
        self.run_log = run_log
        self.timeout = timeout

    def upload_from_url(self, url: str, filename: Optional[str] = None) -> Dict[str, Any]:
        """Fetch an image and upload it as a store asset.

        Args:
            url: Image URL
            filename: Asset filename; derived from the URL when omitted

        Returns:
            ``{"_type": "image", "asset": {"_type": "reference", "_ref": <asset id>}}``

        Raises:
            DownloadError: If the image cannot be fetched (network error or non-2xx)
            ImageUploadError: If the store rejects the upload
        """
        if self.run_log:
            self.run_log.info(f"Downloading image: {url}")
        data, content_type = downloader.fetch_bytes(self.session, url, self.timeout)
        logger.debug("Fetched %s bytes (%s) from %s", len(data), content_type, url)

        ext = extension_from_url(url) or DEFAULT_IMAGE_EXTENSION
        name = filename or f"image-{int(time.time() * 1000)}.{ext}"

        if self.run_log:
            self.run_log.info(f"Uploading image: {name}")
        try:
            asset = self.store.upload_asset("image", data, name)
        except Exception as exc:
            raise ImageUploadError(f"Failed to upload image {name}: {exc}") from exc

        asset_id = asset.get("_id") if isinstance(asset, dict) else None
        if not asset_id:
            raise ImageUploadError(f"Asset upload for {name} returned no ID")
        if self.run_log:
            self.run_log.info(f"Image uploaded successfully: {asset_id}")
        return image_reference(asset_id)
