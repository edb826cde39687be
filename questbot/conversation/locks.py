"""Per-identity mutual exclusion.

Serializes fetch → decide → persist for one identity inside this process.
Locks are reference-counted and dropped once nobody holds or waits on them,
so the table does not grow with every identity ever seen.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator


class IdentityLocks:
    """A lazily populated table of asyncio locks keyed by identity."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, identity_key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(identity_key, asyncio.Lock())
        self._users[identity_key] = self._users.get(identity_key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[identity_key] -= 1
            if self._users[identity_key] == 0:
                del self._users[identity_key]
                del self._locks[identity_key]

    def __len__(self) -> int:
        return len(self._locks)
