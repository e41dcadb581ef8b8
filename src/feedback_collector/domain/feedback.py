"""Domain models for collected feedback."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

MEDIA_ERROR_PREFIX = "error: "


def media_error_marker(reason: str) -> str:
    """Build the value stored in place of a media URI after a failure."""
    return f"{MEDIA_ERROR_PREFIX}{reason}"


@dataclass(frozen=True)
class FeedbackRecord:
    """Persisted result of one completed conversation."""

    id: UUID
    user_id: str
    name: str | None
    feedback_text: str | None
    media_ref: str | None
    media_uri: str | None
    media_path: str | None
    duration_seconds: int
    created_at: datetime

    @property
    def media_failed(self) -> bool:
        return bool(self.media_uri and self.media_uri.startswith(MEDIA_ERROR_PREFIX))


@dataclass(frozen=True)
class FeedbackStats:
    """Aggregate counters for collected feedback."""

    total_feedback: int
    today_feedback: int
    active_sessions: int
