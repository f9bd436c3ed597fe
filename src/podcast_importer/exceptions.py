"""Custom exceptions for podcast_importer.

Exception Hierarchy:
    ImporterError (base)
    ├── FeedError - Feed could not be fetched or parsed (fatal to a run)
    ├── DownloadError - HTTP GET failed or returned a non-2xx status
    ├── ImageUploadError - Image could not be re-hosted in the content store
    └── StoreError - Content store rejected a request
        └── StoreConfigError - Store credentials missing or invalid
"""

from typing import Optional


class ImporterError(Exception):
    """Base exception for all podcast_importer errors."""

    pass


class FeedError(ImporterError):
    """Raised when the feed cannot be acquired or parsed.

    There is no partial feed: this error aborts the whole run.
    """

    pass


class DownloadError(ImporterError):
    """Raised when an HTTP download fails.

    Attributes:
        url: URL that was requested
        status_code: HTTP status code, None for network-level failures
    """

    def __init__(self, message: str, url: str, status_code: Optional[int] = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class ImageUploadError(ImporterError):
    """Raised when an image cannot be uploaded to the content store."""

    pass


class StoreError(ImporterError):
    """Raised when the content store rejects a query or mutation.

    Attributes:
        status_code: HTTP status code returned by the store, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class StoreConfigError(StoreError):
    """Raised when required store credentials are missing."""

    def __init__(self, message: str, config_key: Optional[str] = None) -> None:
        self.config_key = config_key
        if config_key and config_key not in message:
            message = f"{message} (config key: {config_key})"
        super().__init__(message)
