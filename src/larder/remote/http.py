"""HTTP client for a REST document service backing the shared household store."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from larder.config import get_settings
from larder.errors import RemoteRejected, RemoteUnavailable

from .base import Document, RemoteStore

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {408, 425, 429}


class HttpRemoteStore(RemoteStore):
    """Minimal client wrapper around the document service HTTP API.

    ``GET/PUT/DELETE {base_url}/v1/documents/{path}`` address single documents; a ``GET``
    on a collection path returns ``{"documents": [...]}`` or, with ``idsOnly=true``,
    ``{"ids": [...]}``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        settings = get_settings()
        base = base_url or settings.remote_base_url
        if not base:
            raise RuntimeError("Remote document service base URL is not configured.")
        self._base_url = base.rstrip("/")
        self._token = token or settings.remote_token
        self._timeout = timeout if timeout is not None else settings.remote_timeout
        self._client = httpx.Client(
            base_url=self._base_url,
            headers=self._headers(),
            timeout=self._timeout,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _endpoint(path: str) -> str:
        return "/v1/documents/" + quote(path.strip("/"), safe="/")

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, self._endpoint(path), **kwargs)
        except httpx.TimeoutException as exc:
            raise RemoteUnavailable(f"{method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise RemoteUnavailable(f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 500 or response.status_code in _RETRYABLE_STATUS:
            raise RemoteUnavailable(f"{method} {path} returned {response.status_code}")
        return response

    @staticmethod
    def _reject(method: str, path: str, response: httpx.Response) -> RemoteRejected:
        detail = response.text[:200] if response.text else ""
        return RemoteRejected(
            f"{method} {path} rejected with {response.status_code} {detail}".strip(),
            status_code=response.status_code,
        )

    def _json(self, method: str, path: str, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteRejected(f"{method} {path} returned invalid JSON") from exc

    def list_documents(self, collection_path: str) -> List[Document]:
        response = self._request("GET", collection_path)
        if response.status_code == 404:
            return []
        if response.is_error:
            raise self._reject("GET", collection_path, response)
        payload = self._json("GET", collection_path, response)
        documents = payload.get("documents", []) if isinstance(payload, dict) else []
        return [document for document in documents if isinstance(document, dict)]

    def list_document_ids(self, collection_path: str) -> List[str]:
        response = self._request("GET", collection_path, params={"idsOnly": "true"})
        if response.status_code == 404:
            return []
        if response.is_error:
            raise self._reject("GET", collection_path, response)
        payload = self._json("GET", collection_path, response)
        ids = payload.get("ids", []) if isinstance(payload, dict) else []
        return [str(value) for value in ids]

    def get(self, document_path: str) -> Optional[Document]:
        response = self._request("GET", document_path)
        if response.status_code == 404:
            return None
        if response.is_error:
            raise self._reject("GET", document_path, response)
        payload = self._json("GET", document_path, response)
        return payload if isinstance(payload, dict) else None

    def set(self, document_path: str, data: Document) -> None:
        response = self._request("PUT", document_path, json=data)
        if response.is_error:
            raise self._reject("PUT", document_path, response)
        logger.debug("Stored remote document %s", document_path)

    def delete(self, document_path: str) -> None:
        response = self._request("DELETE", document_path)
        if response.status_code == 404:
            return
        if response.is_error:
            raise self._reject("DELETE", document_path, response)
        logger.debug("Deleted remote document %s", document_path)

    def close(self) -> None:
        self._client.close()


__all__ = ["HttpRemoteStore"]
