"""FastAPI application entry point — wires everything together.

Usage:
    python -m questbot.main

Serves the WhatsApp webhook and a health check. A database that cannot be
reached at startup aborts the process; failures while handling a request
only fail that request.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from questbot.events import emit, start_event_system, stop_event_system, subscribe
from questbot.channels.whatsapp import WhatsAppSender, whatsapp_router
from questbot.config import settings
from questbot.conversation.engine import ConversationEngine
from questbot.db.engine import db_lifespan
from questbot.notifications.completion import CompletionNotifier
from questbot.notifications.mailer import SmtpMailer
from questbot.schemas.events import EventType, SystemEvent
from questbot.security.audit import audit_on_event
from questbot.security.dedup import delivery_guard

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)


def build_engine() -> ConversationEngine:
    """Assemble the conversation engine with its outbound collaborators."""
    sender = WhatsAppSender(
        api_url=settings.whatsapp.whatsapp_api_url,
        access_token=settings.whatsapp.whatsapp_access_token,
    )
    notifier = CompletionNotifier(SmtpMailer(settings.mail), settings.mail.recipients)
    return ConversationEngine(
        sender=sender,
        notifier=notifier,
        guard=delivery_guard,
        page_size=settings.whatsapp.list_page_size,
    )


# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting QuestBot (env=%s)", settings.environment)

    # 1. Database: any failure here is fatal
    async with db_lifespan():
        logger.info("Database initialized")

        # 2. Event system + audit trail
        subscribe(audit_on_event)
        await start_event_system()
        logger.info("Event system started")

        # 3. Conversation engine
        app.state.conversation_engine = build_engine()
        if not settings.mail.recipients:
            logger.warning("NOTIFY_EMAILS not set — completion emails disabled")

        await emit(SystemEvent(event_type=EventType.SYSTEM_STARTUP, source_module="main"))

        try:
            yield
        finally:
            logger.info("Shutting down QuestBot...")
            await emit(SystemEvent(event_type=EventType.SYSTEM_SHUTDOWN, source_module="main"))
            await stop_event_system()
            logger.info("Event system stopped")

    logger.info("QuestBot shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="QuestBot API",
    description="WhatsApp questionnaire with per-answer confirmation",
    version="0.1.0",
    lifespan=lifespan,
)
app.include_router(whatsapp_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "environment": settings.environment}


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "questbot.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
