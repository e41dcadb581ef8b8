"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from feedback_collector.adapters.supabase_feedback_repository import (
    SupabaseFeedbackRepository,
)
from feedback_collector.adapters.supabase_media_storage import (
    MediaStorage,
    SupabaseMediaStorage,
)
from feedback_collector.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from feedback_collector.adapters.whatsapp_client import (
    HttpxWhatsAppClient,
    WhatsAppClient,
)
from feedback_collector.adapters.whatsapp_media_client import (
    HttpxWhatsAppMediaClient,
    WhatsAppMediaClient,
)
from feedback_collector.config import Settings
from feedback_collector.services.dispatcher import OutboundDispatcher
from feedback_collector.services.feedback import FeedbackService
from feedback_collector.services.media import MediaPipeline
from feedback_collector.services.reaper import SessionReaper
from feedback_collector.services.router import MessageRouter
from feedback_collector.services.sessions import SessionStore
from feedback_collector.services.steps import StepMachine


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    whatsapp_client: WhatsAppClient
    media_client: WhatsAppMediaClient
    media_storage: MediaStorage
    session_store: SessionStore
    feedback_service: FeedbackService
    media_pipeline: MediaPipeline
    session_reaper: SessionReaper
    message_router: MessageRouter
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    ttl = timedelta(hours=resolved_settings.session_ttl_hours)
    session_store = SessionStore(SupabaseSessionRepository(supabase_client), ttl=ttl)
    feedback_service = FeedbackService(SupabaseFeedbackRepository(supabase_client))
    media_storage = SupabaseMediaStorage(
        supabase_client, bucket=resolved_settings.storage_bucket
    )
    whatsapp_client = HttpxWhatsAppClient.create(
        access_token=resolved_settings.whatsapp_access_token,
        phone_number_id=resolved_settings.whatsapp_phone_number_id,
        api_version=resolved_settings.whatsapp_api_version,
    )
    media_client = HttpxWhatsAppMediaClient.create(
        access_token=resolved_settings.whatsapp_access_token,
        api_version=resolved_settings.whatsapp_api_version,
    )
    media_pipeline = MediaPipeline(
        media_client=media_client,
        storage=media_storage,
        feedback_service=feedback_service,
        session_store=session_store,
        workers=resolved_settings.media_workers,
        queue_size=resolved_settings.media_queue_size,
        drain_timeout_seconds=resolved_settings.media_drain_timeout_seconds,
    )
    session_reaper = SessionReaper(
        session_store=session_store,
        ttl=ttl,
        interval_seconds=resolved_settings.reaper_interval_seconds,
    )
    message_router = MessageRouter(
        session_store=session_store,
        steps=StepMachine(
            media_consent_enabled=resolved_settings.media_consent_enabled
        ),
        feedback_service=feedback_service,
        dispatcher=OutboundDispatcher(whatsapp_client),
        media_queue=media_pipeline,
        start_keyword=resolved_settings.start_keyword,
    )

    async def close_resources() -> None:
        await whatsapp_client.close()
        await media_client.close()

    return AppContainer(
        settings=resolved_settings,
        whatsapp_client=whatsapp_client,
        media_client=media_client,
        media_storage=media_storage,
        session_store=session_store,
        feedback_service=feedback_service,
        media_pipeline=media_pipeline,
        session_reaper=session_reaper,
        message_router=message_router,
        close_resources=close_resources,
    )
