"""Domain models for conversation sessions."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum


class ConversationState(str, Enum):
    """Closed set of conversation steps."""

    AWAITING_NAME = "AWAITING_NAME"
    AWAITING_MEDIA_CONSENT = "AWAITING_MEDIA_CONSENT"
    AWAITING_FEEDBACK = "AWAITING_FEEDBACK"
    AWAITING_MEDIA = "AWAITING_MEDIA"
    COMPLETED = "COMPLETED"


INITIAL_STATE = ConversationState.AWAITING_NAME


def parse_state(raw: object) -> ConversationState | None:
    """Return the state for a persisted value, or None if it is not recognized."""
    try:
        return ConversationState(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class CollectedData:
    """Partial feedback record gathered during a conversation."""

    name: str | None = None
    feedback_text: str | None = None
    media_ref: str | None = None
    media_uri: str | None = None

    def patched(self, changes: dict[str, str | None]) -> "CollectedData":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass(frozen=True)
class Session:
    """Per-user conversation progress.

    ``state`` is None when the persisted value is not a known state.
    """

    user_id: str
    state: ConversationState | None
    created_at: datetime
    last_activity_at: datetime
    collected: CollectedData = field(default_factory=CollectedData)
    completed: bool = False


@dataclass(frozen=True)
class IdleSession:
    """Snapshot of an idle session used for optimistic deletes."""

    user_id: str
    last_activity_at: datetime
