"""Feedback record persistence and queries."""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from feedback_collector.domain.feedback import FeedbackRecord, FeedbackStats
from feedback_collector.domain.sessions import Session
from feedback_collector.services.sessions import utc_now

_logger = logging.getLogger(__name__)


class FeedbackRepository(Protocol):
    """Persistence interface for completed feedback records."""

    def create_feedback(  # noqa: PLR0913
        self,
        user_id: str,
        name: str | None,
        feedback_text: str | None,
        media_ref: str | None,
        media_uri: str | None,
        duration_seconds: int,
    ) -> FeedbackRecord:
        """Insert a feedback record and return it."""

    def get_feedback(self, feedback_id: UUID) -> FeedbackRecord | None:
        """Return a feedback record by id, if present."""

    def get_latest_for_user(self, user_id: str) -> FeedbackRecord | None:
        """Return the most recently created record for a user."""

    def update_media(
        self, feedback_id: UUID, media_uri: str, media_path: str | None
    ) -> None:
        """Set the durable media location (or error marker) on a record."""

    def list_feedback(self, limit: int, offset: int) -> list[FeedbackRecord]:
        """Return records, newest first."""

    def list_for_user(self, user_id: str) -> list[FeedbackRecord]:
        """Return all records for a user, newest first."""

    def count_feedback(self, since: datetime | None = None) -> int:
        """Count records, optionally only those created at or after ``since``."""


@dataclass
class FeedbackService:
    """Application service for feedback records."""

    repository: FeedbackRepository
    clock: Callable[[], datetime] = utc_now

    def record_completion(self, session: Session) -> FeedbackRecord:
        """Persist the record for a session entering the terminal state."""
        duration = max(0, round((self.clock() - session.created_at).total_seconds()))
        collected = session.collected
        record = self.repository.create_feedback(
            user_id=session.user_id,
            name=collected.name,
            feedback_text=collected.feedback_text,
            media_ref=collected.media_ref,
            media_uri=collected.media_uri,
            duration_seconds=duration,
        )
        _logger.info(
            "Feedback saved: id=%s user=%s duration=%ss",
            record.id,
            record.user_id,
            duration,
        )
        return record

    def attach_media(
        self, feedback_id: UUID, media_uri: str, media_path: str | None = None
    ) -> None:
        self.repository.update_media(feedback_id, media_uri, media_path)

    def find_by_media_ref(self, user_id: str, media_ref: str) -> FeedbackRecord | None:
        """Return the user's latest record if it references the given media."""
        latest = self.repository.get_latest_for_user(user_id)
        if latest is None or latest.media_ref != media_ref:
            return None
        return latest

    def get_feedback(self, feedback_id: UUID) -> FeedbackRecord | None:
        return self.repository.get_feedback(feedback_id)

    def list_feedback(self, limit: int = 50, offset: int = 0) -> list[FeedbackRecord]:
        return self.repository.list_feedback(limit=limit, offset=offset)

    def iter_all(self, page_size: int = 500) -> Iterator[FeedbackRecord]:
        """Yield every record, newest first, one page at a time."""
        offset = 0
        while True:
            page = self.repository.list_feedback(limit=page_size, offset=offset)
            yield from page
            if len(page) < page_size:
                return
            offset += page_size

    def list_for_user(self, user_id: str) -> list[FeedbackRecord]:
        return self.repository.list_for_user(user_id)

    def get_stats(self, active_sessions: int) -> FeedbackStats:
        """Return totals for all time and for the current UTC day."""
        start_of_day = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)
        return FeedbackStats(
            total_feedback=self.repository.count_feedback(),
            today_feedback=self.repository.count_feedback(since=start_of_day),
            active_sessions=active_sessions,
        )
