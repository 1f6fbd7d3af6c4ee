from __future__ import annotations

import asyncio
from typing import AsyncIterator, Protocol

from .interfaces import ChangeEvent, ProviderState, PublishedNodesProvider


class AsyncPublishedNodesProvider(Protocol):
    async def read(self) -> bytes: ...
    async def write(self, content: bytes | str) -> None: ...
    async def exists(self) -> bool: ...
    def watch(self) -> AsyncIterator[ChangeEvent]: ...
    async def close(self) -> None: ...


class AsyncPublishedNodesProviderAdapter(AsyncPublishedNodesProvider):
    """
    Async wrapper around any sync published nodes provider.
    Uses asyncio.to_thread to avoid blocking the event loop on file I/O.
    """

    def __init__(self, provider: PublishedNodesProvider, *, poll_interval: float = 0.5) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self._provider = provider
        self._poll_interval = poll_interval

    @property
    def provider(self) -> PublishedNodesProvider:
        return self._provider

    @property
    def state(self) -> ProviderState:
        return self._provider.state

    async def read(self) -> bytes:
        return await asyncio.to_thread(self._provider.read)

    async def write(self, content: bytes | str) -> None:
        await asyncio.to_thread(self._provider.write, content)

    async def exists(self) -> bool:
        return await asyncio.to_thread(self._provider.exists)

    async def watch(self) -> AsyncIterator[ChangeEvent]:
        subscription = await asyncio.to_thread(self._provider.watch)
        try:
            while True:
                # Bounded waits keep a worker thread from outliving a cancelled task.
                event = await asyncio.to_thread(subscription.next_event, self._poll_interval)
                if event is None:
                    if subscription.cancelled:
                        return
                    continue
                yield event
        finally:
            # Not awaited, so a second task cancellation cannot skip the release.
            subscription.cancel()

    async def close(self) -> None:
        await asyncio.to_thread(self._provider.close)
