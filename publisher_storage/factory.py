from __future__ import annotations

import logging

from settings import Settings, get_settings

from .errors import NotFoundError
from .file_provider import FilePublishedNodesProvider
from .interfaces import PublishedNodesProvider
from .memory_provider import InMemoryPublishedNodesProvider
from .paths import default_published_nodes_path
from .watcher import WatchPolicy

logger = logging.getLogger(__name__)

EMPTY_PUBLISHED_NODES = b"[]"


def watch_policy_from_settings(settings: Settings) -> WatchPolicy:
    return WatchPolicy(
        use_polling=settings.watch_use_polling,
        poll_interval=settings.watch_poll_interval,
        check_interval=settings.watch_check_interval,
        retry_attempts=settings.watch_retry_attempts,
        retry_backoff=settings.watch_retry_backoff,
        max_backoff=settings.watch_max_backoff,
    )


def create_provider(settings: Settings | None = None) -> PublishedNodesProvider:
    settings = settings or get_settings()

    if settings.persist_to_disk:
        provider: PublishedNodesProvider = FilePublishedNodesProvider(
            settings.published_nodes_file or default_published_nodes_path(),
            create_on_write=settings.create_on_write,
            write_timeout=settings.write_timeout,
            watch_policy=watch_policy_from_settings(settings),
        )
    else:
        provider = InMemoryPublishedNodesProvider(
            create_on_write=settings.create_on_write,
            write_timeout=settings.write_timeout,
        )
    logger.info("PUBLISHED NODES: using %s", provider.locator)

    if settings.seed_empty_document:
        seed_if_missing(provider)
    return provider


def seed_if_missing(provider: PublishedNodesProvider, content: bytes | str = EMPTY_PUBLISHED_NODES) -> bool:
    """Write `content` when the document does not exist yet. Returns True if it seeded."""
    if provider.exists():
        return False
    try:
        provider.write(content)
    except NotFoundError:
        logger.warning("PUBLISHED NODES SEED: %s missing and create_on_write is disabled", provider.locator)
        return False
    logger.info("PUBLISHED NODES SEED: created empty document at %s", provider.locator)
    return True
