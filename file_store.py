from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path
from typing import Callable

DEFAULT_FILE_MODE = 0o644


def read_bytes_with_stat(path: Path) -> tuple[bytes, os.stat_result] | None:
    """
    Read raw bytes from disk together with the stat of the file they came from.

    Returns None for missing files. Any other OSError propagates.
    """
    try:
        with path.open("rb") as f:
            st = os.fstat(f.fileno())
            return f.read(), st
    except FileNotFoundError:
        return None


def atomic_write_bytes(
    path: Path,
    payload: bytes,
    *,
    create_parents: bool = True,
    fsync: bool = True,
    before_replace: Callable[[os.stat_result], None] | None = None,
) -> None:
    """
    Atomically write bytes to disk by writing to a temp file in the same directory then replacing.

    `before_replace` receives the stat of the fully written temp file; the rename keeps
    its inode and mtime, so that stat also describes the document once replaced.
    The temp file is removed if anything fails before the replace.
    """
    if create_parents:
        path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
            f.flush()
            if fsync:
                os.fsync(f.fileno())
        os.chmod(tmp_path, _target_mode(path))
        if before_replace is not None:
            before_replace(tmp_path.stat())
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _target_mode(path: Path) -> int:
    # mkstemp creates 0600; keep whatever mode the existing document had.
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return DEFAULT_FILE_MODE
