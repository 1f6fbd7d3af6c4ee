from __future__ import annotations

import logging
import os
from pathlib import Path

from file_store import atomic_write_bytes, read_bytes_with_stat

from .base import ProviderBase, as_document_bytes
from .errors import NotFoundError, storage_error_from_os
from .interfaces import PublishedNodesProvider
from .subscription import DocumentVersion, WatchSubscription, content_digest
from .watcher import DirectoryWatch, ObserverFactory, WatchPolicy

logger = logging.getLogger(__name__)

# Stands in for a document that exists but could not be read during a watch re-check.
_UNREADABLE = DocumentVersion(digest="<unreadable>", instance=None)


class FilePublishedNodesProvider(ProviderBase, PublishedNodesProvider):
    """
    Stores the published nodes document as a single file at a fixed path.

    - read() returns the full file, or `default` when the file is absent.
    - write() replaces the file atomically (temp file + os.replace in the same directory).
    - watch() observes the containing directory, so external edits, deletes and
      recreations are all reported.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        default: bytes | str | None = None,
        create_on_write: bool = True,
        write_timeout: float | None = None,
        watch_policy: WatchPolicy | None = None,
        observer_factory: ObserverFactory | None = None,
    ):
        super().__init__(default=default, create_on_write=create_on_write, write_timeout=write_timeout)
        if not str(path).strip():
            raise ValueError("published nodes path must not be empty")
        self._path = Path(path).expanduser().absolute()
        if self._path.is_dir():
            raise ValueError(f"published nodes path {self._path} is a directory")
        self._watch_policy = watch_policy or WatchPolicy()
        self._observer_factory = observer_factory
        self._watches: dict[WatchSubscription, DirectoryWatch] = {}
        self._mark_ready()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def locator(self) -> str:
        return str(self._path)

    def read(self) -> bytes:
        self._ensure_open()
        try:
            with self._path.open("rb") as f:
                return f.read()
        except FileNotFoundError as e:
            if self._default is not None:
                logger.debug("PUBLISHED NODES READ: %s missing; returning default", self._path)
                return self._default
            raise NotFoundError(f"published nodes file {self._path} does not exist", path=self._path) from e
        except OSError as e:
            raise storage_error_from_os(e, self._path, "read") from e

    def write(self, content: bytes | str) -> None:
        payload = as_document_bytes(content)
        self._ensure_open()
        with self._write_slot():
            if not self._create_on_write and not self._path.exists():
                raise NotFoundError(
                    f"published nodes file {self._path} does not exist and create_on_write is disabled",
                    path=self._path,
                )
            digest = content_digest(payload)

            def _announce(st: os.stat_result) -> None:
                self._expect_own_write(_file_version(digest, st))

            try:
                atomic_write_bytes(
                    self._path, payload, create_parents=self._create_on_write, before_replace=_announce
                )
            except OSError as e:
                self._expect_own_write(None)
                logger.warning("PUBLISHED NODES WRITE: failed to write %s: %r", self._path, e)
                raise storage_error_from_os(e, self._path, "write") from e
        logger.debug("PUBLISHED NODES WRITE: wrote %d bytes to %s", len(payload), self._path)

    def exists(self) -> bool:
        self._ensure_open()
        return self._path.is_file()

    def watch(self) -> WatchSubscription:
        self._ensure_open()
        subscription = WatchSubscription(self._current_version, on_cancel=self._release)
        directory_watch = DirectoryWatch(
            self._path,
            on_change=subscription.notify,
            on_error=subscription.fail,
            policy=self._watch_policy,
            observer_factory=self._observer_factory,
        )
        self._register(subscription)
        with self._guard:
            self._watches[subscription] = directory_watch
        directory_watch.start()
        return subscription

    def _current_version(self) -> DocumentVersion | None:
        try:
            found = read_bytes_with_stat(self._path)
        except OSError as e:
            logger.warning("WATCH: could not read %s for change check: %r", self._path, e)
            return _UNREADABLE
        if found is None:
            return None
        raw, st = found
        return _file_version(content_digest(raw), st)

    def _release(self, subscription: WatchSubscription) -> None:
        self._unregister(subscription)
        with self._guard:
            directory_watch = self._watches.pop(subscription, None)
        if directory_watch is not None:
            directory_watch.stop()


def _file_version(digest: str, st: os.stat_result) -> DocumentVersion:
    return DocumentVersion(digest=digest, instance=(st.st_dev, st.st_ino, st.st_mtime_ns))
