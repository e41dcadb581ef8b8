"""Channel-neutral inbound events and media jobs."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class InputKind(str, Enum):
    """Kinds of inbound input a step can require."""

    TEXT = "text"
    MEDIA = "media"
    OTHER = "other"


@dataclass(frozen=True)
class InboundEvent:
    """A single message received from a user."""

    sender_id: str
    kind: InputKind
    text: str | None = None
    media_ref: str | None = None


@dataclass(frozen=True)
class MediaInfo:
    """Time-limited download location for a channel media object."""

    url: str
    mime_type: str | None = None


@dataclass(frozen=True)
class MediaJob:
    """Request to fetch and store one media asset.

    ``record_id`` is set when the feedback record already exists.
    """

    user_id: str
    media_ref: str
    record_id: UUID | None = None
