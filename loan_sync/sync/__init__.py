"""Realtime mirroring of the record set."""

from loan_sync.sync.base import Subscription, SyncAdapter, SyncStats
from loan_sync.sync.memory import InMemoryCloud, InMemorySyncAdapter
from loan_sync.sync.session import CloudSession

__all__ = [
    "CloudSession",
    "InMemoryCloud",
    "InMemorySyncAdapter",
    "Subscription",
    "SyncAdapter",
    "SyncStats",
]
