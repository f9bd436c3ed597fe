"""ContentStore protocol definition.

The importer is written against this four-operation contract only, so any
document store that satisfies it can be used in place of Sanity (the tests use
an in-memory implementation).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Protocol, runtime_checkable

Document = Dict[str, Any]


class Patch:
    """Pending partial update of one document.

    Fields passed to ``set`` are merged in call order and sent on ``commit``.

    Args:
        doc_id: Identity of the document being patched
        commit_fn: Called as ``commit_fn(doc_id, fields)`` and returns the
            updated document (at least ``{"_id": ...}``)
    """

    def __init__(self, doc_id: str, commit_fn: Callable[[str, Document], Document]) -> None:
        self.doc_id = doc_id
        self._commit_fn = commit_fn
        self._set: Document = {}

    def set(self, fields: Mapping[str, Any]) -> "Patch":
        self._set.update(fields)
        return self

    @property
    def fields(self) -> Document:
        return dict(self._set)

    def commit(self) -> Document:
        return self._commit_fn(self.doc_id, dict(self._set))


@runtime_checkable
class ContentStore(Protocol):
    """Protocol for the remote document store."""

    def fetch(self, query: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Run a query and return its result (a document, a list, or None)."""
        ...

    def create(self, document: Mapping[str, Any]) -> Document:
        """Create a document and return it with its new ``_id``."""
        ...

    def patch(self, doc_id: str) -> Patch:
        """Start a patch of an existing document."""
        ...

    def upload_asset(self, kind: str, data: bytes, filename: str) -> Document:
        """Upload binary data (``kind`` is ``"image"`` or ``"file"``) and return the asset document."""
        ...
