"""Synchronization engine, remote/local mapping, and scheduling boundary."""

from larder.sync.engine import RemoteListingFailed, SyncEngine
from larder.sync.scheduler import ImmediateScheduler, NullScheduler, SyncRequester, SyncScheduler

__all__ = [
    "ImmediateScheduler",
    "NullScheduler",
    "RemoteListingFailed",
    "SyncEngine",
    "SyncRequester",
    "SyncScheduler",
]
