"""FastAPI application factory."""

import hashlib
import hmac
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from feedback_collector.api.admin import router as admin_router
from feedback_collector.api.whatsapp_models import WHATSAPP_OBJECT, WhatsAppWebhook
from feedback_collector.app_logging import configure_logging
from feedback_collector.containers import AppContainer

_SIGNATURE_PREFIX = "sha256="


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    if not container.settings.webhook_app_secret:
        logger.warning("WEBHOOK_APP_SECRET is not set; webhook signatures unchecked")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        try:
            state_container.media_storage.ensure_bucket()
        except Exception:
            logger.exception("Failed to ensure storage bucket")
        await state_container.media_pipeline.start()
        await state_container.session_reaper.start()
        yield
        await state_container.session_reaper.stop()
        await state_container.media_pipeline.stop()
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/whatsapp/webhook", response_class=PlainTextResponse)
    async def verify_webhook(
        request: Request,
        mode: str | None = Query(default=None, alias="hub.mode"),
        token: str | None = Query(default=None, alias="hub.verify_token"),
        challenge: str | None = Query(default=None, alias="hub.challenge"),
    ) -> PlainTextResponse:
        """Answer the subscription handshake."""
        state_container: AppContainer = request.app.state.container
        expected = state_container.settings.webhook_verify_token
        if mode == "subscribe" and token == expected and challenge is not None:
            logger.info("Webhook verified")
            return PlainTextResponse(challenge)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)

    @app.post("/whatsapp/webhook")
    async def whatsapp_webhook(request: Request) -> dict[str, str]:
        """Handle WhatsApp webhook notifications."""
        state_container: AppContainer = request.app.state.container
        body = await request.body()
        secret = state_container.settings.webhook_app_secret
        if secret and not verify_signature(
            body, request.headers.get("x-hub-signature-256"), secret
        ):
            logger.warning("Rejected webhook with invalid signature")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
        try:
            payload = WhatsAppWebhook.model_validate_json(body)
        except ValidationError as exc:
            logger.warning("Rejected malformed webhook payload: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid webhook payload",
            ) from exc
        if payload.object != WHATSAPP_OBJECT:
            logger.info("Ignoring webhook for object %s", payload.object)
            return {"status": "ignored"}
        for delivery_status in payload.statuses():
            logger.debug(
                "Delivery status %s for %s",
                delivery_status.status,
                delivery_status.id,
            )
        for message in payload.messages():
            event = message.to_event()
            result = await state_container.message_router.route(event)
            logger.info(
                "Handled %s message",
                event.kind.value,
                extra={
                    "user_id": event.sender_id,
                    "state": result.state.value if result.state else None,
                },
            )
        return {"status": "ok"}

    return app


def verify_signature(body: bytes, header: str | None, secret: str) -> bool:
    """Check the ``sha256=`` HMAC the platform sends over the raw body."""
    if not header or not header.startswith(_SIGNATURE_PREFIX):
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, header.removeprefix(_SIGNATURE_PREFIX))
