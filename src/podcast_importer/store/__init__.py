"""Content store contract and the Sanity implementation."""

from .base import ContentStore, Document, Patch
from .sanity import SanityStore

__all__ = ["ContentStore", "Document", "Patch", "SanityStore"]
