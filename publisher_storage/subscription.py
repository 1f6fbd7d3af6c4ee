from __future__ import annotations

import hashlib
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Hashable, Iterator, NamedTuple

from .errors import WatchError
from .interfaces import ChangeEvent

logger = logging.getLogger(__name__)


class DocumentVersion(NamedTuple):
    """
    What a watcher compares between checks.

    `instance` identifies the stored copy of the content (inode and mtime for a file,
    a write counter in memory), so replacing the document with identical bytes still
    counts as a new version.
    """

    digest: str
    instance: Hashable


VersionSource = Callable[[], "DocumentVersion | None"]


def content_digest(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


class WatchSubscription:
    """
    Lazy, infinite sequence of ChangeEvent for one watch() call.

    Low-level notifications (from a filesystem observer or an in-memory provider)
    only mark the subscription dirty. The consumer's thread then compares the
    current document version against the last one this subscription saw, so bursts
    of notifications coalesce into one event. A forced notification (the document
    was deleted, created or moved, or the watch was lost) yields an event even when
    the version looks unchanged.

    The provider's own write is announced with expect(); the next check that finds
    that version swallows it. The marker is dropped as soon as any other version
    is reported, so it never hides a later external change.

    Once cancelled the subscription never yields again and cannot be restarted.
    """

    def __init__(
        self,
        version_source: VersionSource,
        *,
        on_cancel: Callable[["WatchSubscription"], None] | None = None,
    ):
        self._version_source = version_source
        self._on_cancel = on_cancel
        self._cond = threading.Condition()
        self._dirty = False
        self._forced = False
        self._cancelled = False
        self._error: WatchError | None = None
        self._sequence = 0
        self._expected: DocumentVersion | None = None
        self._last = version_source()

    @property
    def cancelled(self) -> bool:
        with self._cond:
            return self._cancelled

    # Producer side

    def notify(self, force: bool = False) -> None:
        with self._cond:
            if self._cancelled:
                return
            self._dirty = True
            if force:
                self._forced = True
            self._cond.notify_all()

    def fail(self, error: WatchError) -> None:
        with self._cond:
            if self._cancelled:
                return
            self._error = error
            self._cond.notify_all()

    def expect(self, version: DocumentVersion | None) -> None:
        """Mark `version` as the provider's own pending write so it is not reported back."""
        with self._cond:
            if version is not None and version == self._last:
                return
            self._expected = version

    # Consumer side

    def next_event(self, timeout: float | None = None) -> ChangeEvent | None:
        """
        Block until the document changes.

        Returns None on timeout or once the subscription is cancelled.
        Raises WatchError if the underlying watch was lost for good.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._cond:
                while not (self._dirty or self._cancelled or self._error is not None):
                    remaining = None if deadline is None else deadline - time.monotonic()
                    if remaining is not None and remaining <= 0:
                        return None
                    self._cond.wait(remaining)
                if self._cancelled:
                    return None
                if self._error is not None:
                    raise self._error
                forced = self._forced
                self._dirty = False
                self._forced = False

            # Version I/O runs outside the lock so producers never block on it.
            current = self._version_source()

            with self._cond:
                if self._cancelled:
                    return None
                if current is not None and current == self._expected:
                    self._last = current
                    logger.debug("WATCH: suppressed notification for own write")
                    continue
                if current == self._last and not forced:
                    continue
                self._expected = None
                self._last = current
                self._sequence += 1
                return ChangeEvent(sequence=self._sequence, occurred_at=datetime.now(timezone.utc))

    def cancel(self) -> None:
        with self._cond:
            if self._cancelled:
                return
            self._cancelled = True
            self._cond.notify_all()
        if self._on_cancel is not None:
            self._on_cancel(self)

    def __iter__(self) -> Iterator[ChangeEvent]:
        return self

    def __next__(self) -> ChangeEvent:
        event = self.next_event()
        if event is None:
            raise StopIteration
        return event

    def __enter__(self) -> "WatchSubscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()
