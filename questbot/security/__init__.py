"""Security module — duplicate-delivery guard and audit trail."""

from questbot.security.dedup import delivery_guard

__all__ = ["delivery_guard"]
