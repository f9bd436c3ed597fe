"""Sanity content store over the HTTP API.

https://www.sanity.io/docs/http-api

A ``SanityStore`` is built once per run from the validated Config and passed
explicitly to everything that talks to the store. It uses its own session
without retry adapters so that a store error becomes that episode's failure
immediately.
"""

from __future__ import annotations

import json
import logging
import mimetypes
from typing import Any, Dict, Mapping, Optional

import requests

from ..config import Config
from ..exceptions import StoreConfigError, StoreError
from .base import Document, Patch

logger = logging.getLogger(__name__)

API_HOST_TEMPLATE = "https://{project_id}.api.sanity.io/v{api_version}"
ASSET_ENDPOINTS = {"image": "images", "file": "files"}


class SanityStore:
    """ContentStore implementation for a Sanity project dataset.

    Args:
        project_id: Sanity project ID
        dataset: Dataset name (e.g. ``production``)
        token: Write token, sent as a bearer token
        api_version: Dated API version, e.g. ``2024-01-01``
        session: HTTP session owned by the caller
        timeout: Request timeout in seconds

    Raises:
        StoreConfigError: If the project ID, dataset or token is missing
    """

    def __init__(
        self,
        project_id: str,
        dataset: str,
        token: str,
        api_version: str,
        session: requests.Session,
        timeout: int = 30,
    ) -> None:
        if not project_id:
            raise StoreConfigError("Sanity project ID is required", config_key="project_id")
        if not dataset:
            raise StoreConfigError("Sanity dataset is required", config_key="dataset")
        if not token:
            raise StoreConfigError("Sanity write token is required", config_key="token")

        self.project_id = project_id
        self.dataset = dataset
        self.api_version = api_version.lstrip("v")
        self.session = session
        self.timeout = timeout
        self.base_url = API_HOST_TEMPLATE.format(
            project_id=project_id, api_version=self.api_version
        )
        self._headers = {"Authorization": f"Bearer {token}"}

    @classmethod
    def from_config(cls, cfg: Config, session: requests.Session) -> "SanityStore":
        return cls(
            project_id=cfg.project_id or "",
            dataset=cfg.dataset,
            token=cfg.token or "",
            api_version=cfg.api_version,
            session=session,
            timeout=cfg.timeout,
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = dict(self._headers)
        headers.update(kwargs.pop("headers", {}))
        logger.debug("%s %s", method, url)
        try:
            resp = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise StoreError(f"Sanity request failed: {exc}") from exc

        try:
            if not 200 <= resp.status_code < 300:
                raise StoreError(
                    f"Sanity API error {resp.status_code}: {_error_message(resp)}",
                    status_code=resp.status_code,
                )
            try:
                return resp.json()
            except ValueError as exc:
                raise StoreError(
                    f"Invalid JSON from Sanity API: {exc}", status_code=resp.status_code
                ) from exc
        finally:
            resp.close()

    def fetch(self, query: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        query_params: Dict[str, str] = {"query": query}
        for key, value in (params or {}).items():
            query_params[f"${key}"] = json.dumps(value)
        body = self._request("GET", f"/data/query/{self.dataset}", params=query_params)
        return body.get("result")

    def _mutate(self, mutation: Dict[str, Any]) -> Document:
        body = self._request(
            "POST",
            f"/data/mutate/{self.dataset}",
            params={"returnIds": "true", "returnDocuments": "true"},
            json={"mutations": [mutation]},
        )
        results = body.get("results") or []
        if not results:
            raise StoreError("Sanity mutation returned no results")
        first = results[0]
        document = dict(first.get("document") or {})
        doc_id = first.get("id") or document.get("_id")
        if not doc_id:
            raise StoreError("Sanity mutation returned no document ID")
        document["_id"] = doc_id
        return document

    def create(self, document: Mapping[str, Any]) -> Document:
        return self._mutate({"create": dict(document)})

    def patch(self, doc_id: str) -> Patch:
        return Patch(doc_id, self._commit_patch)

    def _commit_patch(self, doc_id: str, fields: Document) -> Document:
        # The document type is immutable in Sanity
        fields = {k: v for k, v in fields.items() if k != "_type"}
        return self._mutate({"patch": {"id": doc_id, "set": fields}})

    def upload_asset(self, kind: str, data: bytes, filename: str) -> Document:
        endpoint = ASSET_ENDPOINTS.get(kind)
        if endpoint is None:
            raise ValueError(f"Unsupported asset kind: {kind!r}")
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        body = self._request(
            "POST",
            f"/assets/{endpoint}/{self.dataset}",
            params={"filename": filename},
            data=data,
            headers={"Content-Type": content_type},
        )
        document = body.get("document") or {}
        if not document.get("_id"):
            raise StoreError("Sanity asset upload returned no asset ID")
        return document


def _error_message(resp: requests.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return resp.text[:200] or (resp.reason or "unknown error")
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        return str(error.get("description") or error.get("type") or error)
    if error:
        return str(payload.get("message") or error)
    return str(payload)[:200]
