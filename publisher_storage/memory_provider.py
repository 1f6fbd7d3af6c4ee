from __future__ import annotations

import logging
import threading

from .base import ProviderBase, as_document_bytes
from .errors import NotFoundError
from .interfaces import PublishedNodesProvider
from .subscription import DocumentVersion, WatchSubscription, content_digest

logger = logging.getLogger(__name__)


class InMemoryPublishedNodesProvider(ProviderBase, PublishedNodesProvider):
    """
    Keeps the published nodes document in process memory.

    Same contract as the file provider. external_write() / external_delete()
    stand in for an operator editing the document behind the provider's back and
    are the only changes reported to watchers.
    """

    def __init__(
        self,
        initial: bytes | str | None = None,
        *,
        default: bytes | str | None = None,
        create_on_write: bool = True,
        write_timeout: float | None = None,
        locator: str = "memory://publishednodes.json",
    ):
        super().__init__(default=default, create_on_write=create_on_write, write_timeout=write_timeout)
        self._locator = locator
        self._content_lock = threading.Lock()
        self._content = None if initial is None else as_document_bytes(initial)
        # Bumped on every store or delete so identical bytes written twice stay distinguishable.
        self._generation = 0
        self._mark_ready()

    @property
    def locator(self) -> str:
        return self._locator

    def read(self) -> bytes:
        self._ensure_open()
        with self._content_lock:
            content = self._content
        if content is not None:
            return content
        if self._default is not None:
            return self._default
        raise NotFoundError(f"published nodes document {self._locator} does not exist", path=self._locator)

    def write(self, content: bytes | str) -> None:
        payload = as_document_bytes(content)
        self._ensure_open()
        with self._write_slot():
            with self._content_lock:
                if self._content is None and not self._create_on_write:
                    raise NotFoundError(
                        f"published nodes document {self._locator} does not exist and create_on_write is disabled",
                        path=self._locator,
                    )
                self._content = payload
                self._generation += 1
                # Announced before any watcher can observe the new generation.
                self._expect_own_write(DocumentVersion(content_digest(payload), self._generation))
            self._notify_all()
        logger.debug("PUBLISHED NODES WRITE: stored %d bytes at %s", len(payload), self._locator)

    def exists(self) -> bool:
        self._ensure_open()
        with self._content_lock:
            return self._content is not None

    def watch(self) -> WatchSubscription:
        self._ensure_open()
        subscription = WatchSubscription(self._current_version, on_cancel=self._unregister)
        self._register(subscription)
        return subscription

    def external_write(self, content: bytes | str) -> None:
        self._ensure_open()
        payload = as_document_bytes(content)
        with self._content_lock:
            self._content = payload
            self._generation += 1
        self._notify_all()

    def external_delete(self) -> None:
        self._ensure_open()
        with self._content_lock:
            self._content = None
            self._generation += 1
        self._notify_all()

    def _current_version(self) -> DocumentVersion | None:
        with self._content_lock:
            content = self._content
            generation = self._generation
        return None if content is None else DocumentVersion(content_digest(content), generation)
