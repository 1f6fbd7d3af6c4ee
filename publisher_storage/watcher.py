from __future__ import annotations

import logging
import os
import stat
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from .errors import WatchError

logger = logging.getLogger(__name__)

ObserverFactory = Callable[[], BaseObserver]

# Emitted by inotify for plain reads, including our own version checks.
_READ_ONLY_EVENT_TYPES = frozenset({"opened", "closed_no_write"})
# The document itself appeared, vanished or was swapped.
_STRUCTURAL_EVENT_TYPES = frozenset({"created", "deleted", "moved"})

ChangeCallback = Callable[[bool], None]


@dataclass(frozen=True)
class WatchPolicy:
    use_polling: bool = False
    poll_interval: float = 1.0
    check_interval: float = 1.0
    retry_attempts: int = 10
    retry_backoff: float = 0.5
    max_backoff: float = 30.0
    start_timeout: float = 5.0

    def backoff_for(self, failures: int) -> float:
        return min(self.retry_backoff * (2 ** max(failures - 1, 0)), self.max_backoff)

    def observer_factory(self) -> ObserverFactory:
        if self.use_polling:
            return lambda: PollingObserver(timeout=self.poll_interval)
        return Observer


class _TargetFileHandler(FileSystemEventHandler):
    """Forwards events touching one file name inside the watched directory."""

    def __init__(self, filename: str, on_change: ChangeCallback):
        super().__init__()
        self._filename = filename
        self._on_change = on_change

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _READ_ONLY_EVENT_TYPES:
            return
        # Atomic replaces show up as a move whose destination is the target.
        for raw in (event.src_path, getattr(event, "dest_path", "")):
            if raw and os.path.basename(os.fsdecode(raw)) == self._filename:
                self._on_change(event.event_type in _STRUCTURAL_EVENT_TYPES)
                return


class DirectoryWatch:
    """
    Watches the directory containing `path` for changes to that one file.

    The directory is watched rather than the file so that deleting and recreating
    the file keeps producing events. A supervisor thread re-establishes the
    observer when it dies or the directory itself disappears or is replaced,
    retrying with exponential backoff and calling `on_error` once
    `policy.retry_attempts` consecutive attempts have failed.
    """

    def __init__(
        self,
        path: Path,
        *,
        on_change: ChangeCallback,
        on_error: Callable[[WatchError], None],
        policy: WatchPolicy | None = None,
        observer_factory: ObserverFactory | None = None,
    ):
        self._path = path
        self._directory = path.parent
        self._on_change = on_change
        self._on_error = on_error
        self._policy = policy or WatchPolicy()
        self._observer_factory = observer_factory or self._policy.observer_factory()
        self._handler = _TargetFileHandler(path.name, on_change)
        self._observer: BaseObserver | None = None
        self._directory_inode: int | None = None
        self._stop = threading.Event()
        self._first_attempt = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("DirectoryWatch cannot be restarted")
        self._thread = threading.Thread(
            target=self._supervise,
            name=f"published-nodes-watch:{self._path.name}",
            daemon=True,
        )
        self._thread.start()
        # Events right after watch() returns must not be missed when the directory exists.
        self._first_attempt.wait(self._policy.start_timeout)

    def stop(self) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _supervise(self) -> None:
        failures = 0
        lost = False
        try:
            while not self._stop.is_set():
                if self._observer is not None and not self._healthy():
                    logger.warning("WATCH: lost watch on %s; re-establishing", self._directory)
                    self._teardown()
                    lost = True
                    self._on_change(True)

                if self._observer is None:
                    try:
                        self._establish()
                    except OSError as e:
                        failures += 1
                        self._first_attempt.set()
                        if failures >= self._policy.retry_attempts:
                            logger.error(
                                "WATCH: giving up on %s after %d attempts: %r", self._directory, failures, e
                            )
                            self._on_error(
                                WatchError(
                                    f"could not watch {self._directory} after {failures} attempts: {e}",
                                    path=self._path,
                                )
                            )
                            return
                        delay = self._policy.backoff_for(failures)
                        logger.warning(
                            "WATCH: attempt %d on %s failed (%r); retrying in %.2fs",
                            failures,
                            self._directory,
                            e,
                            delay,
                        )
                        self._stop.wait(delay)
                        continue
                    if lost or failures:
                        logger.info("WATCH: re-established watch on %s", self._directory)
                    self._first_attempt.set()
                    # Anything that happened while unwatched is caught by a version re-check;
                    # after losing a live watch the consumer is told unconditionally.
                    self._on_change(lost)
                    failures = 0
                    lost = False

                self._stop.wait(self._policy.check_interval)
        finally:
            self._teardown()
            self._first_attempt.set()

    def _establish(self) -> None:
        st = os.stat(self._directory)
        if not stat.S_ISDIR(st.st_mode):
            raise NotADirectoryError(f"{self._directory} is not a directory")

        observer = self._observer_factory()
        observer.schedule(self._handler, str(self._directory), recursive=False)
        observer.start()
        self._observer = observer
        self._directory_inode = st.st_ino
        logger.info("WATCH: watching %s for %s", self._directory, self._path.name)

    def _healthy(self) -> bool:
        observer = self._observer
        if observer is None or not observer.is_alive():
            return False
        emitters = observer.emitters
        if not emitters or not all(e.is_alive() for e in emitters):
            return False
        try:
            st = os.stat(self._directory)
        except OSError:
            return False
        return stat.S_ISDIR(st.st_mode) and st.st_ino == self._directory_inode

    def _teardown(self) -> None:
        observer = self._observer
        self._observer = None
        self._directory_inode = None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=max(self._policy.poll_interval, 1.0) * 2)
