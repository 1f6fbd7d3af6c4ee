from __future__ import annotations

from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import publisher_storage...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def sandbox_project(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """
    Redirect default paths to a temp project directory so tests never touch real ./data.
    """
    import publisher_storage.paths as paths

    def _project_root() -> Path:
        return tmp_path

    def _data_dir() -> Path:
        return tmp_path / "data"

    monkeypatch.setattr(paths, "project_root", _project_root)
    monkeypatch.setattr(paths, "data_dir", _data_dir)
    return tmp_path


@pytest.fixture
def nodes_file(tmp_path: Path) -> Path:
    return tmp_path / "config" / "publishednodes.json"


@pytest.fixture
def fast_watch_policy():
    from publisher_storage.watcher import WatchPolicy

    # Polling keeps watch tests deterministic on filesystems without inotify.
    return WatchPolicy(
        use_polling=True,
        poll_interval=0.05,
        check_interval=0.05,
        retry_attempts=100,
        retry_backoff=0.02,
        max_backoff=0.1,
    )
