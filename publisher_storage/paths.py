from __future__ import annotations

from pathlib import Path

PUBLISHED_NODES_FILENAME = "publishednodes.json"


def project_root() -> Path:
    # publisher_storage/paths.py -> publisher_storage -> project root
    return Path(__file__).resolve().parents[1]


def data_dir() -> Path:
    return project_root() / "data"


def default_published_nodes_path() -> Path:
    # Not created here; the file provider creates parents on first write.
    return data_dir() / PUBLISHED_NODES_FILENAME
