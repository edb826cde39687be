"""Audit log subscriber — persists every SystemEvent to the audit_log table.

Registered as a global subscriber (receives ALL events).

Never raises — failures are logged but never propagate to the event system.
"""

from __future__ import annotations

import logging

from questbot.db.engine import async_session_factory
from questbot.models.audit import AuditLog
from questbot.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


async def audit_on_event(event: SystemEvent) -> None:
    """Write a SystemEvent to the audit_log table."""
    try:
        async with async_session_factory() as db:
            db.add(AuditLog(
                event_type=event.event_type.value,
                identity_key=event.identity_key,
                actor_role=event.actor_role,
                data={**event.data, "source_module": event.source_module},
            ))
            await db.commit()
    except Exception:
        logger.exception(
            "Failed to persist audit event: %s (identity=%s)",
            event.event_type.value,
            event.identity_key,
        )
