from __future__ import annotations

from pathlib import Path

import pytest

from publisher_storage import (
    FilePublishedNodesProvider,
    InMemoryPublishedNodesProvider,
    create_provider,
    seed_if_missing,
)
from publisher_storage.factory import watch_policy_from_settings
from settings import get_settings

_ENV_VARS = (
    "PUBLISHED_NODES_FILE",
    "PERSIST_TO_DISK",
    "PUBLISHED_NODES_CREATE_ON_WRITE",
    "PUBLISHED_NODES_SEED_EMPTY",
    "PUBLISHED_NODES_WRITE_TIMEOUT",
    "WATCH_USE_POLLING",
    "WATCH_POLL_INTERVAL",
    "WATCH_CHECK_INTERVAL",
    "WATCH_RETRY_ATTEMPTS",
    "WATCH_RETRY_BACKOFF",
    "WATCH_MAX_BACKOFF",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_settings_defaults(clean_env):
    settings = get_settings(env_file=None)
    assert settings.published_nodes_file is None
    assert settings.persist_to_disk is True
    assert settings.create_on_write is True
    assert settings.seed_empty_document is False
    assert settings.write_timeout is None
    assert settings.watch_use_polling is False
    assert settings.watch_retry_attempts == 10


def test_settings_from_env(clean_env, tmp_path: Path):
    clean_env.setenv("PUBLISHED_NODES_FILE", str(tmp_path / "pn.json"))
    clean_env.setenv("PUBLISHED_NODES_WRITE_TIMEOUT", "2.5")
    clean_env.setenv("WATCH_USE_POLLING", "yes")
    clean_env.setenv("WATCH_RETRY_ATTEMPTS", "3")
    clean_env.setenv("PERSIST_TO_DISK", "off")

    settings = get_settings(env_file=None)
    assert settings.published_nodes_file == tmp_path / "pn.json"
    assert settings.write_timeout == 2.5
    assert settings.persist_to_disk is False

    policy = watch_policy_from_settings(settings)
    assert policy.use_polling is True
    assert policy.retry_attempts == 3


def test_settings_from_dotenv_file(clean_env, tmp_path: Path):
    env_file = tmp_path / "local.env"
    env_file.write_text(f"PUBLISHED_NODES_FILE={tmp_path / 'from-dotenv.json'}\nWATCH_MAX_BACKOFF=4\n")
    # Register both names with monkeypatch so values loaded by dotenv are removed afterwards.
    for name in ("PUBLISHED_NODES_FILE", "WATCH_MAX_BACKOFF"):
        clean_env.setenv(name, "")
        clean_env.delenv(name)

    settings = get_settings(env_file=str(env_file))
    assert settings.published_nodes_file == tmp_path / "from-dotenv.json"
    assert settings.watch_max_backoff == 4.0


def test_create_provider_defaults_to_project_data_dir(clean_env, sandbox_project: Path):
    provider = create_provider(get_settings(env_file=None))
    assert isinstance(provider, FilePublishedNodesProvider)
    assert provider.path == sandbox_project / "data" / "publishednodes.json"
    assert provider.exists() is False

    provider.write("[]")
    assert (sandbox_project / "data" / "publishednodes.json").read_bytes() == b"[]"


def test_create_provider_in_memory_and_seeded(clean_env):
    clean_env.setenv("PERSIST_TO_DISK", "false")
    clean_env.setenv("PUBLISHED_NODES_SEED_EMPTY", "true")

    provider = create_provider(get_settings(env_file=None))
    assert isinstance(provider, InMemoryPublishedNodesProvider)
    assert provider.read() == b"[]"


def test_seed_if_missing(tmp_path: Path):
    provider = FilePublishedNodesProvider(tmp_path / "pn.json")
    assert seed_if_missing(provider) is True
    assert provider.read() == b"[]"

    provider.write('[{"EndpointUrl": "opc.tcp://a"}]')
    assert seed_if_missing(provider) is False
    assert provider.read() == b'[{"EndpointUrl": "opc.tcp://a"}]'

    strict = FilePublishedNodesProvider(tmp_path / "other.json", create_on_write=False)
    assert seed_if_missing(strict) is False
    assert strict.exists() is False
