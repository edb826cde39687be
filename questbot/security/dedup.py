"""Redis-backed duplicate-delivery guard.

Meta re-delivers a webhook whenever it does not get a timely 200. The
guard remembers processed message ids (wamid) for a while so a re-delivered
message is acknowledged without being handled twice.

Usage:
    from questbot.security.dedup import delivery_guard

    if await delivery_guard.seen(message_id):
        return
    ...
    await delivery_guard.remember(message_id)
"""

from __future__ import annotations

import logging

from questbot.config import settings
from questbot.db.engine import redis_client

logger = logging.getLogger(__name__)


class DeliveryGuard:
    """Remembers message ids with SET NX + EX."""

    def __init__(self, redis: object, ttl: int, prefix: str = "wamid:") -> None:
        self._redis = redis
        self._ttl = ttl
        self._prefix = prefix

    async def seen(self, message_id: str | None) -> bool:
        """True if this message id was already processed.

        Messages without an id are never considered duplicates.
        """
        if not message_id:
            return False
        try:
            return bool(await self._redis.exists(self._prefix + message_id))
        except Exception:
            logger.exception("Delivery guard Redis error reading %s", message_id)
            # Fail open; the ledger row still records applied message ids
            return False

    async def remember(self, message_id: str | None) -> None:
        """Record a processed message id. Errors are logged and ignored."""
        if not message_id:
            return
        try:
            await self._redis.set(self._prefix + message_id, "1", nx=True, ex=self._ttl)
        except Exception:
            logger.exception("Delivery guard Redis error writing %s", message_id)


# Module-level singleton
delivery_guard = DeliveryGuard(redis_client, ttl=settings.dedup_ttl_seconds)
