"""WhatsApp Business API adapter — receives webhooks from Meta Cloud API.

Handles:
- GET  /webhook  → Meta verification handshake
- POST /webhook  → Incoming messages (text and interactive replies)

Sends responses via the WhatsApp Cloud API (graph.facebook.com).
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging

import httpx
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from questbot.events import emit
from questbot.config import settings
from questbot.conversation.classifier import classify, iter_messages
from questbot.conversation.engine import ConversationEngine
from questbot.db.engine import async_session_factory
from questbot.db.repository import LedgerRepository
from questbot.errors import CatalogEmptyError
from questbot.schemas.events import EventType, SystemEvent
from questbot.schemas.inbound import EventKind
from questbot.schemas.outbound import OutboundMessage

logger = logging.getLogger(__name__)

whatsapp_router = APIRouter(tags=["whatsapp"])

# ── Helpers ──────────────────────────────────────────────────────────


def _verify_signature(payload: bytes, signature_header: str) -> bool:
    """Verify X-Hub-Signature-256 from Meta.

    If whatsapp_app_secret is not configured, skip verification.
    """
    app_secret = settings.whatsapp.whatsapp_app_secret
    if not app_secret:
        return True

    if not signature_header.startswith("sha256="):
        return False

    expected = hmac.new(app_secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature_header[7:])


def get_engine(request: Request) -> ConversationEngine:
    """Dependency returning the engine wired up in the app lifespan."""
    return request.app.state.conversation_engine


# ── Outbound ─────────────────────────────────────────────────────────


class WhatsAppSender:
    """Posts messages to the Cloud API `/{phone_number_id}/messages` endpoint."""

    def __init__(self, api_url: str, access_token: str, timeout: float = 15.0) -> None:
        self._api_url = api_url.rstrip("/")
        self._access_token = access_token
        self._timeout = timeout

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

    async def send(self, to: str, message: OutboundMessage, *, phone_number_id: str) -> bool:
        """Send one message. Returns True on success, False on failure."""
        url = f"{self._api_url}/{phone_number_id}/messages"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=message.to_payload(to), headers=self._auth_headers())
                resp.raise_for_status()
        except Exception:
            logger.exception("Failed to send WhatsApp %s message to %s", message.kind.value, to)
            await emit(SystemEvent(
                event_type=EventType.MESSAGE_FAILED,
                identity_key=to,
                actor_role="bot",
                data={"kind": message.kind.value},
                source_module="channels.whatsapp",
            ))
            return False

        await emit(SystemEvent(
            event_type=EventType.MESSAGE_SENT,
            identity_key=to,
            actor_role="bot",
            data={"kind": message.kind.value},
            source_module="channels.whatsapp",
        ))
        return True


# ── Webhook endpoints ────────────────────────────────────────────────


@whatsapp_router.get("/webhook")
async def verify_webhook(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
) -> Response:
    """Meta webhook verification handshake (GET).

    Meta sends hub.mode=subscribe, hub.verify_token, hub.challenge.
    We return the challenge if the token matches.
    """
    if (
        hub_mode == "subscribe"
        and hub_verify_token == settings.whatsapp.whatsapp_verify_token
        and hub_challenge is not None
    ):
        logger.info("WhatsApp webhook verified successfully")
        return Response(content=hub_challenge, media_type="text/plain")

    logger.warning("WhatsApp webhook verification failed: mode=%s", hub_mode)
    return Response(content="Verification failed", status_code=403)


@whatsapp_router.post("/webhook", response_model=None)
async def receive_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    engine: ConversationEngine = Depends(get_engine),
) -> dict[str, str] | JSONResponse:
    """Receive incoming WhatsApp messages (POST).

    Every message is decided and committed before the response; outbound
    messages and emails go out as background tasks after it. Anything that
    is not a supported message is acknowledged with 200 and dropped.
    """
    body = await request.body()
    signature = request.headers.get("X-Hub-Signature-256", "")
    if not _verify_signature(body, signature):
        logger.warning("WhatsApp webhook signature verification failed")
        return {"status": "invalid_signature"}

    try:
        payload = json.loads(body)
    except ValueError:
        logger.warning("WhatsApp webhook body is not JSON")
        return {"status": "ignored"}

    processed = 0
    for message, value in iter_messages(payload):
        envelope, event = classify(message, value)
        if envelope is None or event.kind == EventKind.IGNORE:
            continue

        try:
            async with async_session_factory() as db:
                handled = await engine.handle(LedgerRepository(db), envelope, event)
        except CatalogEmptyError:
            logger.error("No questions in database")
            return JSONResponse({"status": "error"}, status_code=500)
        except Exception:
            logger.exception("Error processing WhatsApp message from %s", envelope.identity_key)
            return JSONResponse({"status": "error"}, status_code=500)

        if handled is not None:
            background_tasks.add_task(engine.deliver, handled)
            processed += 1

    return {"status": "ok" if processed else "ignored"}
