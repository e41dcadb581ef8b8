"""Inbound message routing for the feedback conversation."""

import logging
from dataclasses import dataclass, field, replace

from feedback_collector import templates
from feedback_collector.config import normalize_keyword
from feedback_collector.domain.feedback import FeedbackRecord
from feedback_collector.domain.messages import InboundEvent, InputKind, MediaJob
from feedback_collector.domain.sessions import ConversationState
from feedback_collector.services.dispatcher import DeliveryResult, OutboundDispatcher
from feedback_collector.services.feedback import FeedbackService
from feedback_collector.services.media import MediaJobQueue
from feedback_collector.services.sessions import SessionStore
from feedback_collector.services.steps import StepMachine

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteResult:
    """What handling one inbound event did."""

    state: ConversationState | None
    reply: str
    delivery: DeliveryResult
    record: FeedbackRecord | None = None
    media_job: MediaJob | None = None
    failed: bool = False


@dataclass
class MessageRouter:
    """Routes each inbound event through the step handler for the user's state.

    Everything that reads or writes one user's session runs under that user's
    lock. Media jobs are queued only after the lock is released.
    """

    session_store: SessionStore
    steps: StepMachine
    feedback_service: FeedbackService
    dispatcher: OutboundDispatcher
    media_queue: MediaJobQueue
    start_keyword: str
    _keyword: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._keyword = normalize_keyword(self.start_keyword)

    def is_start_keyword(self, event: InboundEvent) -> bool:
        return (
            event.kind is InputKind.TEXT
            and event.text is not None
            and normalize_keyword(event.text) == self._keyword
        )

    async def route(self, event: InboundEvent) -> RouteResult:
        """Handle one event; unexpected failures become a generic apology."""
        try:
            async with self.session_store.lock(event.sender_id):
                result = await self._route_locked(event)
        except Exception:
            _logger.exception(
                "Failed to handle inbound event",
                extra={"user_id": event.sender_id, "kind": event.kind.value},
            )
            reply = templates.system_error(self.start_keyword)
            delivery = await self.dispatcher.send(event.sender_id, reply)
            return RouteResult(state=None, reply=reply, delivery=delivery, failed=True)

        if result.media_job is not None:
            try:
                await self.media_queue.submit(result.media_job)
            except Exception:
                _logger.exception(
                    "Failed to queue media job",
                    extra={"user_id": event.sender_id},
                )
        return result

    async def _route_locked(self, event: InboundEvent) -> RouteResult:
        user_id = event.sender_id
        if self.is_start_keyword(event):
            session = await self.session_store.reset(user_id)
            _logger.info("Start keyword received", extra={"user_id": user_id})
            return await self._reply(user_id, session.state, templates.GREETING)

        session = await self.session_store.get_or_create(user_id)
        outcome = self.steps.handle(session, event)
        if outcome.reset:
            _logger.warning(
                "Unknown session state, restarting",
                extra={"user_id": user_id, "state": session.state},
            )
            session = await self.session_store.reset(user_id)
            return await self._reply(user_id, session.state, outcome.reply)

        collected = session.collected.patched(outcome.patch)
        updated = replace(session, state=outcome.state, collected=collected)
        record = None
        if outcome.completed:
            await self.session_store.delete(user_id)
            try:
                record = self.feedback_service.record_completion(
                    replace(updated, completed=True)
                )
            except Exception:
                await self.session_store.restore(session)
                raise
        else:
            await self.session_store.save(updated)

        media_job = None
        if outcome.request_media and collected.media_ref:
            media_job = MediaJob(
                user_id=user_id,
                media_ref=collected.media_ref,
                record_id=record.id if record else None,
            )
        if outcome.state is not session.state:
            _logger.info(
                "Session advanced: %s -> %s",
                session.state.value if session.state else None,
                outcome.state.value,
                extra={"user_id": user_id},
            )
        return await self._reply(
            user_id,
            outcome.state,
            outcome.reply,
            buttons=outcome.buttons,
            record=record,
            media_job=media_job,
        )

    async def _reply(  # noqa: PLR0913
        self,
        user_id: str,
        state: ConversationState | None,
        text: str,
        buttons: tuple[tuple[str, str], ...] | None = None,
        record: FeedbackRecord | None = None,
        media_job: MediaJob | None = None,
    ) -> RouteResult:
        delivery = await self.dispatcher.send(user_id, text, buttons)
        return RouteResult(
            state=state,
            reply=text,
            delivery=delivery,
            record=record,
            media_job=media_job,
        )
