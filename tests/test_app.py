from __future__ import annotations

import json

import httpx

from larder.app import create_larder
from larder.config import Settings
from larder.db.repository import LocalDatabase
from larder.remote.http import HttpRemoteStore
from larder.remote.memory import InMemoryRemoteStore
from larder.sync.scheduler import ImmediateScheduler, NullScheduler, SyncScheduler


def test_local_only_without_remote():
    larder = create_larder()

    assert larder.engine is None
    assert isinstance(larder.scheduler, NullScheduler)
    item = larder.pantry.create_item("H", name="Milk")
    assert larder.pantry_store.get(item.id).is_synced is False
    larder.close()


def test_foreground_wiring_syncs_on_every_mutation(tmp_path):
    remote = InMemoryRemoteStore()
    larder = create_larder(
        remote,
        database=LocalDatabase(tmp_path / "fg.db"),
        background=False,
    )

    assert isinstance(larder.scheduler, ImmediateScheduler)
    item = larder.pantry.create_item("H", name="Milk", item_id="A")

    assert larder.pantry_store.get(item.id).is_synced
    assert remote.get("household/H/items/A")["name"] == "Milk"
    larder.close()


def test_background_wiring_uses_sync_scheduler(tmp_path):
    remote = InMemoryRemoteStore()
    larder = create_larder(remote, database=LocalDatabase(tmp_path / "bg.db"))

    assert isinstance(larder.scheduler, SyncScheduler)
    larder.households.create_household(name="Flat", owner_id="alice", household_id="H")
    larder.start()
    larder.close()

    assert remote.get("household/H")["name"] == "Flat"


def test_configured_base_url_builds_http_client(tmp_path):
    settings = Settings(database_path=tmp_path / "http.db", remote_base_url="https://docs.test")

    larder = create_larder(settings=settings, background=False)

    assert isinstance(larder.remote, HttpRemoteStore)
    larder.close()


def test_http_remote_end_to_end_with_mock_transport(tmp_path):
    documents: dict[str, dict] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1/documents/")
        if request.method == "PUT":
            documents[path] = json.loads(request.content)
            return httpx.Response(204)
        if request.method == "DELETE":
            documents.pop(path, None)
            return httpx.Response(204)
        # Document paths have an even number of segments, collections an odd number.
        if len(path.split("/")) % 2 == 0:
            if path not in documents:
                return httpx.Response(404)
            return httpx.Response(200, json=documents[path])
        prefix = path + "/"
        children = sorted(
            {key[len(prefix):].split("/")[0] for key in documents if key.startswith(prefix)}
        )
        if request.url.params.get("idsOnly") == "true":
            return httpx.Response(200, json={"ids": children})
        listed = [documents[prefix + child] for child in children if prefix + child in documents]
        return httpx.Response(200, json={"documents": listed})

    remote = HttpRemoteStore(
        "https://docs.test", "token", transport=httpx.MockTransport(handler)
    )
    larder = create_larder(
        remote, database=LocalDatabase(tmp_path / "e2e.db"), background=False
    )

    larder.grocery.create_entry("H", name="Bread", entry_id="E")
    larder.grocery.delete_entry("H", "E")

    assert documents == {}
    assert larder.grocery_store.get("E") is None
    larder.close()
