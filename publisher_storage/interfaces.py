from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .subscription import WatchSubscription


class ProviderState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


@dataclass(frozen=True)
class ChangeEvent:
    """
    The published nodes document may have changed.

    Carries no content: consumers must call read() again to find out what changed,
    and must tolerate the content being identical to their last read.
    """

    sequence: int
    occurred_at: datetime


class PublishedNodesProvider(Protocol):
    """
    Storage seam for the publisher's published nodes document.

    The document is opaque bytes; parsing it into published node entries is the
    caller's job (see published_nodes.PublishedNodesStore for the JSON format).
    """

    @property
    def locator(self) -> str:
        """Where the document lives. Fixed for the life of the provider."""
        ...

    @property
    def state(self) -> ProviderState:
        ...

    def read(self) -> bytes:
        """Return the full current document. Never a partially written one."""
        ...

    def write(self, content: bytes | str) -> None:
        """Persist the full document atomically (str is encoded as UTF-8)."""
        ...

    def exists(self) -> bool:
        ...

    def watch(self) -> "WatchSubscription":
        """Subscribe to change hints until the subscription is cancelled."""
        ...

    def close(self) -> None:
        """Release watch resources. Every later call raises ClosedError."""
        ...
