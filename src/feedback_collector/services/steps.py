"""Step handlers for the feedback conversation.

Each handler validates the input kind its state requires and returns a
``StepOutcome`` value. Mismatched input never raises; it yields an outcome that
keeps the current state and carries the guidance text for that state.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from feedback_collector import templates
from feedback_collector.domain.messages import InboundEvent, InputKind
from feedback_collector.domain.sessions import INITIAL_STATE, ConversationState, Session

_YES = {"yes", "y"}
_NO = {"no", "n"}


@dataclass(frozen=True)
class StepOutcome:
    """Result of handling one event in one state."""

    state: ConversationState
    reply: str
    patch: dict[str, str | None] = field(default_factory=dict)
    buttons: tuple[tuple[str, str], ...] | None = None
    request_media: bool = False
    reset: bool = False

    @property
    def completed(self) -> bool:
        return self.state is ConversationState.COMPLETED


StepHandler = Callable[[Session, InboundEvent], StepOutcome]


def restart_outcome() -> StepOutcome:
    """Outcome that discards collected data and reopens the conversation."""
    return StepOutcome(state=INITIAL_STATE, reply=templates.GREETING, reset=True)


@dataclass(frozen=True)
class StepMachine:
    """Transition table for the conversation.

    With ``media_consent_enabled`` the user is asked whether they want to share
    a picture right after giving their name and the feedback step comes last.
    Without it the flow is the linear name, feedback, picture sequence.
    """

    media_consent_enabled: bool = False
    handlers: dict[ConversationState, StepHandler] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        handlers: dict[ConversationState, StepHandler] = {
            ConversationState.AWAITING_NAME: self._handle_name,
            ConversationState.AWAITING_MEDIA_CONSENT: self._handle_consent,
            ConversationState.AWAITING_FEEDBACK: self._handle_feedback,
            ConversationState.AWAITING_MEDIA: self._handle_media,
        }
        missing = set(ConversationState) - set(handlers) - {ConversationState.COMPLETED}
        if missing:
            raise RuntimeError(f"No step handler for states: {sorted(missing)}")
        object.__setattr__(self, "handlers", handlers)

    def handle(self, session: Session, event: InboundEvent) -> StepOutcome:
        """Dispatch the event to the handler bound to the session state."""
        handler = self.handlers.get(session.state) if session.state else None
        if handler is None:
            return restart_outcome()
        return handler(session, event)

    def _handle_name(self, session: Session, event: InboundEvent) -> StepOutcome:
        name = _text_of(event)
        if name is None:
            return StepOutcome(
                state=ConversationState.AWAITING_NAME, reply=templates.NEED_TEXT
            )
        if self.media_consent_enabled:
            return StepOutcome(
                state=ConversationState.AWAITING_MEDIA_CONSENT,
                reply=templates.consent_question(name),
                patch={"name": name},
                buttons=templates.CONSENT_BUTTONS,
            )
        return StepOutcome(
            state=ConversationState.AWAITING_FEEDBACK,
            reply=templates.name_received(name),
            patch={"name": name},
        )

    def _handle_consent(self, session: Session, event: InboundEvent) -> StepOutcome:
        choice = _text_of(event)
        if choice is None:
            return StepOutcome(
                state=ConversationState.AWAITING_MEDIA_CONSENT,
                reply=templates.NEED_CHOICE,
            )
        normalized = choice.lower()
        if normalized in _YES:
            return StepOutcome(
                state=ConversationState.AWAITING_MEDIA, reply=templates.CONSENT_YES
            )
        if normalized in _NO:
            return StepOutcome(
                state=ConversationState.AWAITING_FEEDBACK,
                reply=templates.consent_declined(session.collected.name),
            )
        return StepOutcome(
            state=ConversationState.AWAITING_MEDIA_CONSENT,
            reply=templates.CHOOSE_OPTION,
            buttons=templates.CONSENT_BUTTONS,
        )

    def _handle_feedback(self, session: Session, event: InboundEvent) -> StepOutcome:
        feedback = _text_of(event)
        if feedback is None:
            return StepOutcome(
                state=ConversationState.AWAITING_FEEDBACK, reply=templates.NEED_TEXT
            )
        if self.media_consent_enabled:
            return StepOutcome(
                state=ConversationState.COMPLETED,
                reply=templates.completed(session.collected.name),
                patch={"feedback_text": feedback},
            )
        return StepOutcome(
            state=ConversationState.AWAITING_MEDIA,
            reply=templates.FEEDBACK_RECEIVED,
            patch={"feedback_text": feedback},
        )

    def _handle_media(self, session: Session, event: InboundEvent) -> StepOutcome:
        if event.kind is not InputKind.MEDIA or not event.media_ref:
            return StepOutcome(
                state=ConversationState.AWAITING_MEDIA, reply=templates.NEED_MEDIA
            )
        patch: dict[str, str | None] = {"media_ref": event.media_ref, "media_uri": None}
        if self.media_consent_enabled:
            return StepOutcome(
                state=ConversationState.AWAITING_FEEDBACK,
                reply=templates.MEDIA_RECEIVED,
                patch=patch,
                request_media=True,
            )
        return StepOutcome(
            state=ConversationState.COMPLETED,
            reply=templates.completed(session.collected.name),
            patch=patch,
            request_media=True,
        )


def _text_of(event: InboundEvent) -> str | None:
    """Return trimmed text for text events, None for anything else or blank text."""
    if event.kind is not InputKind.TEXT or event.text is None:
        return None
    cleaned = event.text.strip()
    return cleaned or None
