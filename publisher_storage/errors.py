from __future__ import annotations

from pathlib import Path


class PublishedNodesStorageError(Exception):
    """Base class for every failure surfaced by a published nodes provider."""

    def __init__(self, message: str, *, path: Path | str | None = None):
        super().__init__(message)
        self.path = path


class NotFoundError(PublishedNodesStorageError):
    """The document does not exist and no default is configured."""


class AccessError(PublishedNodesStorageError):
    """Permission denied on the document or its directory."""


class StorageIOError(PublishedNodesStorageError):
    """Underlying medium failure (disk full, I/O error, ...)."""


class BusyError(PublishedNodesStorageError):
    """Another write held the write slot longer than the configured timeout."""


class ClosedError(PublishedNodesStorageError):
    """Operation attempted on a closed provider."""


class WatchError(PublishedNodesStorageError):
    """The change watch could not be (re-)established after repeated attempts."""


def storage_error_from_os(exc: OSError, path: Path | str, operation: str) -> PublishedNodesStorageError:
    """Map an OSError raised while touching `path` onto the storage taxonomy."""
    detail = f"{operation} failed for {path}: {exc.strerror or exc}"
    if isinstance(exc, FileNotFoundError):
        return NotFoundError(detail, path=path)
    if isinstance(exc, PermissionError):
        return AccessError(detail, path=path)
    return StorageIOError(detail, path=path)
