"""Tests for the conversation step handlers."""

from feedback_collector import templates
from feedback_collector.domain.messages import InboundEvent, InputKind
from feedback_collector.domain.sessions import (
    CollectedData,
    ConversationState,
    Session,
    parse_state,
)
from feedback_collector.services.steps import StepMachine
from tests.conftest import START


def _session(
    state: ConversationState | None, name: str | None = "Ana"
) -> Session:
    return Session(
        user_id="15550001",
        state=state,
        created_at=START,
        last_activity_at=START,
        collected=CollectedData(name=name),
    )


def _text(body: str) -> InboundEvent:
    return InboundEvent(sender_id="15550001", kind=InputKind.TEXT, text=body)


def _media(ref: str = "media-1") -> InboundEvent:
    return InboundEvent(sender_id="15550001", kind=InputKind.MEDIA, media_ref=ref)


def test_name_step_trims_and_advances_to_feedback() -> None:
    outcome = StepMachine().handle(
        _session(ConversationState.AWAITING_NAME, name=None), _text("  Ana  ")
    )

    assert outcome.state is ConversationState.AWAITING_FEEDBACK
    assert outcome.patch == {"name": "Ana"}
    assert outcome.reply == templates.name_received("Ana")
    assert not outcome.request_media


def test_name_step_rejects_media_and_blank_text() -> None:
    machine = StepMachine()
    session = _session(ConversationState.AWAITING_NAME, name=None)

    for event in (_media(), _text("   ")):
        outcome = machine.handle(session, event)
        assert outcome.state is ConversationState.AWAITING_NAME
        assert outcome.reply == templates.NEED_TEXT
        assert outcome.patch == {}


def test_feedback_step_requires_text() -> None:
    machine = StepMachine()
    session = _session(ConversationState.AWAITING_FEEDBACK)

    rejected = machine.handle(session, _media())
    accepted = machine.handle(session, _text("Great service"))

    assert rejected.state is ConversationState.AWAITING_FEEDBACK
    assert rejected.reply == templates.NEED_TEXT
    assert accepted.state is ConversationState.AWAITING_MEDIA
    assert accepted.patch == {"feedback_text": "Great service"}
    assert accepted.reply == templates.FEEDBACK_RECEIVED


def test_media_step_completes_and_requests_fetch() -> None:
    outcome = StepMachine().handle(
        _session(ConversationState.AWAITING_MEDIA), _media("media-9")
    )

    assert outcome.completed
    assert outcome.request_media
    assert outcome.patch == {"media_ref": "media-9", "media_uri": None}
    assert outcome.reply == templates.completed("Ana")


def test_media_step_rejects_text() -> None:
    outcome = StepMachine().handle(
        _session(ConversationState.AWAITING_MEDIA), _text("here you go")
    )

    assert outcome.state is ConversationState.AWAITING_MEDIA
    assert outcome.reply == templates.NEED_MEDIA
    assert not outcome.request_media


def test_other_input_kind_is_a_mismatch_everywhere() -> None:
    machine = StepMachine()
    other = InboundEvent(sender_id="15550001", kind=InputKind.OTHER)

    for state in (
        ConversationState.AWAITING_NAME,
        ConversationState.AWAITING_FEEDBACK,
        ConversationState.AWAITING_MEDIA,
    ):
        outcome = machine.handle(_session(state), other)
        assert outcome.state is state
        assert outcome.patch == {}


def test_unknown_or_terminal_state_restarts() -> None:
    machine = StepMachine()

    for state in (None, ConversationState.COMPLETED):
        outcome = machine.handle(_session(state), _text("hello"))
        assert outcome.reset
        assert outcome.state is ConversationState.AWAITING_NAME
        assert outcome.reply == templates.GREETING


def test_parse_state_returns_none_for_unrecognized_value() -> None:
    assert parse_state("AWAITING_MEDIA") is ConversationState.AWAITING_MEDIA
    assert parse_state("AWAITING_SELFIE") is None
    assert parse_state(None) is None


def test_consent_flow_asks_with_buttons_after_name() -> None:
    outcome = StepMachine(media_consent_enabled=True).handle(
        _session(ConversationState.AWAITING_NAME, name=None), _text("Ana")
    )

    assert outcome.state is ConversationState.AWAITING_MEDIA_CONSENT
    assert outcome.buttons == templates.CONSENT_BUTTONS
    assert outcome.reply == templates.consent_question("Ana")


def test_consent_answers() -> None:
    machine = StepMachine(media_consent_enabled=True)
    session = _session(ConversationState.AWAITING_MEDIA_CONSENT)

    yes = machine.handle(session, _text("YES"))
    no = machine.handle(session, _text("n"))
    unclear = machine.handle(session, _text("maybe"))
    wrong_kind = machine.handle(session, _media())

    assert yes.state is ConversationState.AWAITING_MEDIA
    assert yes.reply == templates.CONSENT_YES
    assert no.state is ConversationState.AWAITING_FEEDBACK
    assert no.reply == templates.consent_declined("Ana")
    assert unclear.state is ConversationState.AWAITING_MEDIA_CONSENT
    assert unclear.buttons == templates.CONSENT_BUTTONS
    assert wrong_kind.reply == templates.NEED_CHOICE


def test_consent_flow_collects_media_before_feedback() -> None:
    machine = StepMachine(media_consent_enabled=True)

    media = machine.handle(_session(ConversationState.AWAITING_MEDIA), _media())
    feedback = machine.handle(
        _session(ConversationState.AWAITING_FEEDBACK), _text("Loved it")
    )

    assert media.state is ConversationState.AWAITING_FEEDBACK
    assert media.request_media
    assert media.reply == templates.MEDIA_RECEIVED
    assert feedback.completed
    assert feedback.reply == templates.completed("Ana")


def test_completed_template_falls_back_without_name() -> None:
    assert "friend" in templates.completed(None)
