"""In-process remote store used for tests, demos, and multi-device simulation."""

from __future__ import annotations

import copy
import threading
from typing import Dict, List, Optional

from .base import Document, RemoteStore


def _split(path: str) -> List[str]:
    return [segment for segment in path.strip("/").split("/") if segment]


class InMemoryRemoteStore(RemoteStore):
    """Thread-safe dictionary of documents keyed by full path.

    Writes are serialized by a single lock, so the last ``set`` to reach the store wins.
    Documents are deep-copied in and out to mimic a serialization boundary.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, Document] = {}
        self._lock = threading.Lock()
        self.writes: List[str] = []

    def _children(self, collection_path: str) -> Dict[str, Optional[str]]:
        prefix = _split(collection_path)
        depth = len(prefix)
        children: Dict[str, Optional[str]] = {}
        for path in self._documents:
            segments = _split(path)
            if len(segments) <= depth or segments[:depth] != prefix:
                continue
            child_id = segments[depth]
            if len(segments) == depth + 1:
                children[child_id] = path
            else:
                children.setdefault(child_id, None)
        return children

    def list_documents(self, collection_path: str) -> List[Document]:
        with self._lock:
            return [
                copy.deepcopy(self._documents[path])
                for _, path in sorted(self._children(collection_path).items())
                if path is not None
            ]

    def list_document_ids(self, collection_path: str) -> List[str]:
        with self._lock:
            return sorted(self._children(collection_path))

    def get(self, document_path: str) -> Optional[Document]:
        with self._lock:
            document = self._documents.get("/".join(_split(document_path)))
            return copy.deepcopy(document) if document is not None else None

    def set(self, document_path: str, data: Document) -> None:
        key = "/".join(_split(document_path))
        with self._lock:
            self._documents[key] = copy.deepcopy(data)
            self.writes.append(key)

    def delete(self, document_path: str) -> None:
        key = "/".join(_split(document_path))
        with self._lock:
            self._documents.pop(key, None)
            self.writes.append(key)

    def paths(self) -> List[str]:
        with self._lock:
            return sorted(self._documents)


__all__ = ["InMemoryRemoteStore"]
