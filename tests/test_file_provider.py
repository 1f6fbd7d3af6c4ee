from __future__ import annotations

import os
import threading
from pathlib import Path

import pytest

import file_store
from publisher_storage import (
    AccessError,
    BusyError,
    ClosedError,
    FilePublishedNodesProvider,
    NotFoundError,
    ProviderState,
    StorageIOError,
)


def test_exists_write_read_roundtrip(nodes_file: Path):
    provider = FilePublishedNodesProvider(nodes_file)
    assert provider.state is ProviderState.READY
    assert provider.exists() is False

    provider.write("nodes: []")
    assert provider.exists() is True
    assert provider.read() == b"nodes: []"

    payload = bytes(range(256)) * 4
    provider.write(payload)
    assert provider.read() == payload


def test_read_missing_raises_not_found(nodes_file: Path):
    provider = FilePublishedNodesProvider(nodes_file)
    with pytest.raises(NotFoundError) as exc_info:
        provider.read()
    assert exc_info.value.path == nodes_file


def test_read_missing_returns_default(nodes_file: Path):
    provider = FilePublishedNodesProvider(nodes_file, default="[]")
    assert provider.read() == b"[]"
    assert provider.exists() is False


def test_write_without_create_on_write_requires_existing_file(nodes_file: Path):
    provider = FilePublishedNodesProvider(nodes_file, create_on_write=False)
    with pytest.raises(NotFoundError):
        provider.write("[]")
    assert not nodes_file.exists()

    nodes_file.parent.mkdir(parents=True)
    nodes_file.write_bytes(b"old")
    provider.write("new")
    assert provider.read() == b"new"


def test_write_preserves_existing_mode(nodes_file: Path):
    nodes_file.parent.mkdir(parents=True)
    nodes_file.write_bytes(b"[]")
    os.chmod(nodes_file, 0o640)

    FilePublishedNodesProvider(nodes_file).write(b'[{"EndpointUrl": "opc.tcp://a"}]')
    assert (nodes_file.stat().st_mode & 0o777) == 0o640


def test_failed_replace_cleans_up_temp_file(nodes_file: Path, monkeypatch: pytest.MonkeyPatch):
    provider = FilePublishedNodesProvider(nodes_file)
    provider.write("before")

    def _broken_replace(self, target):
        raise OSError(5, "Input/output error")

    monkeypatch.setattr(Path, "replace", _broken_replace)
    with pytest.raises(StorageIOError):
        provider.write("after")
    monkeypatch.undo()

    assert provider.read() == b"before"
    assert sorted(p.name for p in nodes_file.parent.iterdir()) == [nodes_file.name]


def test_permission_failure_maps_to_access_error(nodes_file: Path, monkeypatch: pytest.MonkeyPatch):
    provider = FilePublishedNodesProvider(nodes_file)

    def _denied(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(file_store.tempfile, "mkstemp", _denied)
    with pytest.raises(AccessError):
        provider.write("[]")

    monkeypatch.setattr(Path, "open", _denied)
    with pytest.raises(AccessError):
        provider.read()
    monkeypatch.undo()


def test_path_must_not_be_a_directory(tmp_path: Path):
    with pytest.raises(ValueError):
        FilePublishedNodesProvider(tmp_path)
    with pytest.raises(ValueError):
        FilePublishedNodesProvider("  ")


def test_closed_provider_rejects_operations(nodes_file: Path):
    provider = FilePublishedNodesProvider(nodes_file)
    provider.write("[]")
    provider.close()
    provider.close()

    assert provider.state is ProviderState.CLOSED
    for op in (provider.read, provider.exists, provider.watch, lambda: provider.write("x")):
        with pytest.raises(ClosedError):
            op()


def test_busy_error_when_write_slot_is_held(nodes_file: Path):
    provider = FilePublishedNodesProvider(nodes_file, write_timeout=0.05)
    with provider._write_slot():
        with pytest.raises(BusyError):
            provider.write("[]")
    provider.write("[]")
    assert provider.read() == b"[]"


def test_concurrent_writes_leave_one_complete_document(nodes_file: Path):
    provider = FilePublishedNodesProvider(nodes_file)
    first = b"A" * 200_000
    second = b"B" * 300_000
    barrier = threading.Barrier(2)

    def _write(content: bytes) -> None:
        barrier.wait()
        provider.write(content)

    threads = [threading.Thread(target=_write, args=(c,)) for c in (first, second)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert provider.read() in (first, second)


def test_reads_never_observe_partial_writes(nodes_file: Path):
    provider = FilePublishedNodesProvider(nodes_file)
    versions = [bytes([65 + i]) * (50_000 + i * 10_000) for i in range(5)]
    provider.write(versions[0])

    stop = threading.Event()
    torn: list[int] = []

    def _reader() -> None:
        while not stop.is_set():
            content = provider.read()
            if content not in versions:
                torn.append(len(content))

    readers = [threading.Thread(target=_reader) for _ in range(3)]
    for r in readers:
        r.start()
    for _ in range(10):
        for v in versions:
            provider.write(v)
    stop.set()
    for r in readers:
        r.join()

    assert torn == []


def test_independent_providers_do_not_interfere(tmp_path: Path):
    a = FilePublishedNodesProvider(tmp_path / "a.json")
    b = FilePublishedNodesProvider(tmp_path / "b.json")
    a.write("a")
    b.write("b")
    a.close()

    assert b.read() == b"b"
    assert b.state is ProviderState.READY
