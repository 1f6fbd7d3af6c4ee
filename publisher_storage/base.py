from __future__ import annotations

import contextlib
import logging
import threading
from typing import Iterator

from .errors import BusyError, ClosedError
from .interfaces import ProviderState
from .subscription import DocumentVersion, WatchSubscription

logger = logging.getLogger(__name__)


def as_document_bytes(content: bytes | str) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content)
    raise TypeError(f"published nodes content must be bytes or str, not {type(content).__name__}")


class ProviderBase:
    """
    State machine, write serialization and subscription bookkeeping shared by the
    concrete providers. Everything is per-instance; nothing is process-global.
    Subclasses supply `locator`, the name used in errors and log lines.
    """

    def __init__(
        self,
        *,
        default: bytes | str | None = None,
        create_on_write: bool = True,
        write_timeout: float | None = None,
    ):
        if write_timeout is not None and write_timeout < 0:
            raise ValueError("write_timeout must be >= 0 or None")
        self._state = ProviderState.UNINITIALIZED
        self._default = None if default is None else as_document_bytes(default)
        self._create_on_write = create_on_write
        self._write_timeout = write_timeout
        self._write_lock = threading.Lock()
        self._guard = threading.Lock()
        self._subscriptions: set[WatchSubscription] = set()

    @property
    def state(self) -> ProviderState:
        return self._state

    @property
    def watch_count(self) -> int:
        with self._guard:
            return len(self._subscriptions)

    def _mark_ready(self) -> None:
        self._state = ProviderState.READY

    def _ensure_open(self) -> None:
        if self._state is ProviderState.CLOSED:
            raise ClosedError(f"provider for {self.locator} is closed", path=self.locator)
        if self._state is not ProviderState.READY:
            raise ClosedError(f"provider for {self.locator} is not initialized", path=self.locator)

    @contextlib.contextmanager
    def _write_slot(self) -> Iterator[None]:
        # Writers queue by default; with a timeout they fail fast instead.
        timeout = -1 if self._write_timeout is None else self._write_timeout
        if not self._write_lock.acquire(timeout=timeout):
            raise BusyError(
                f"another write to {self.locator} is in progress (waited {self._write_timeout}s)",
                path=self.locator,
            )
        try:
            self._ensure_open()
            yield
        finally:
            self._write_lock.release()

    def _register(self, subscription: WatchSubscription) -> None:
        with self._guard:
            self._ensure_open()
            self._subscriptions.add(subscription)

    def _unregister(self, subscription: WatchSubscription) -> None:
        with self._guard:
            self._subscriptions.discard(subscription)

    def _expect_own_write(self, version: DocumentVersion | None) -> None:
        with self._guard:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.expect(version)

    def _notify_all(self) -> None:
        with self._guard:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.notify()

    def close(self) -> None:
        with self._guard:
            if self._state is ProviderState.CLOSED:
                return
            self._state = ProviderState.CLOSED
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.cancel()
        logger.debug("PUBLISHED NODES: closed provider for %s", self.locator)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
