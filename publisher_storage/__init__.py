from __future__ import annotations

from .async_provider import AsyncPublishedNodesProvider, AsyncPublishedNodesProviderAdapter
from .errors import (
    AccessError,
    BusyError,
    ClosedError,
    NotFoundError,
    PublishedNodesStorageError,
    StorageIOError,
    WatchError,
)
from .factory import create_provider, seed_if_missing
from .file_provider import FilePublishedNodesProvider
from .interfaces import ChangeEvent, ProviderState, PublishedNodesProvider
from .memory_provider import InMemoryPublishedNodesProvider
from .published_nodes import PublishedNodesFormatError, PublishedNodesStore
from .subscription import DocumentVersion, WatchSubscription
from .watcher import WatchPolicy

__all__ = [
    "DocumentVersion",
    "PublishedNodesProvider",
    "FilePublishedNodesProvider",
    "InMemoryPublishedNodesProvider",
    "AsyncPublishedNodesProvider",
    "AsyncPublishedNodesProviderAdapter",
    "ChangeEvent",
    "ProviderState",
    "WatchSubscription",
    "WatchPolicy",
    "PublishedNodesStore",
    "PublishedNodesFormatError",
    "create_provider",
    "seed_if_missing",
    "PublishedNodesStorageError",
    "NotFoundError",
    "AccessError",
    "StorageIOError",
    "BusyError",
    "ClosedError",
    "WatchError",
]
