"""Tests for the HTTP document store client."""

from __future__ import annotations

import json

import httpx
import pytest

from larder.errors import RemoteRejected, RemoteUnavailable
from larder.remote.http import HttpRemoteStore


def _store(handler, token: str | None = "secret-token") -> HttpRemoteStore:
    return HttpRemoteStore(
        "https://docs.example.test/",
        token,
        timeout=2.0,
        transport=httpx.MockTransport(handler),
    )


def test_set_and_get_use_document_endpoint_with_bearer_token():
    requests: list[httpx.Request] = []
    stored: dict[str, dict] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "PUT":
            stored[request.url.path] = json.loads(request.content)
            return httpx.Response(204)
        return httpx.Response(200, json=stored[request.url.path])

    store = _store(handler)
    store.set("household/H/items/A", {"id": "A", "name": "Milk"})

    assert store.get("household/H/items/A") == {"id": "A", "name": "Milk"}
    assert requests[0].url.path == "/v1/documents/household/H/items/A"
    assert requests[0].headers["Authorization"] == "Bearer secret-token"
    store.close()


def test_list_endpoints_parse_documents_and_ids():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("idsOnly") == "true":
            return httpx.Response(200, json={"ids": ["default", "weekly"]})
        return httpx.Response(200, json={"documents": [{"id": "A"}, "junk", {"id": "B"}]})

    store = _store(handler)

    assert store.list_documents("household/H/items") == [{"id": "A"}, {"id": "B"}]
    assert store.list_document_ids("household/H/groceryEntries") == ["default", "weekly"]


def test_not_found_is_benign_for_reads_and_deletes():
    store = _store(lambda request: httpx.Response(404, json={"error": "not found"}))

    assert store.get("household/H/items/A") is None
    assert store.list_documents("household/H/items") == []
    assert store.list_document_ids("household/H/groceryEntries") == []
    store.delete("household/H/items/A")


@pytest.mark.parametrize("status", [429, 500, 503])
def test_transient_statuses_raise_remote_unavailable(status):
    store = _store(lambda request: httpx.Response(status))

    with pytest.raises(RemoteUnavailable):
        store.set("household/H/items/A", {"id": "A"})


def test_client_errors_raise_remote_rejected():
    store = _store(lambda request: httpx.Response(403, text="forbidden"))

    with pytest.raises(RemoteRejected) as excinfo:
        store.delete("household/H/items/A")

    assert excinfo.value.status_code == 403


def test_transport_failures_raise_remote_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = _store(handler)

    with pytest.raises(RemoteUnavailable):
        store.list_documents("household/H/items")


def test_missing_base_url_is_a_configuration_error():
    with pytest.raises(RuntimeError):
        HttpRemoteStore()
