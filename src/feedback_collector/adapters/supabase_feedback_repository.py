"""Supabase-backed feedback record repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from feedback_collector.domain.feedback import FeedbackRecord
from feedback_collector.services.feedback import FeedbackRepository

_TABLE = "feedback"
_COLUMNS = (
    "id, user_id, name, feedback_text, media_ref, media_uri, media_path, "
    "duration_seconds, created_at"
)


@dataclass
class SupabaseFeedbackRepository(FeedbackRepository):
    """Supabase implementation for completed feedback records."""

    client: Client

    def create_feedback(  # noqa: PLR0913
        self,
        user_id: str,
        name: str | None,
        feedback_text: str | None,
        media_ref: str | None,
        media_uri: str | None,
        duration_seconds: int,
    ) -> FeedbackRecord:
        """Insert a feedback row and return it."""
        response = (
            self.client.table(_TABLE)
            .insert(
                {
                    "user_id": user_id,
                    "name": name,
                    "feedback_text": feedback_text,
                    "media_ref": media_ref,
                    "media_uri": media_uri,
                    "duration_seconds": duration_seconds,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create feedback record")
        return _parse_record(response.data[0])

    def get_feedback(self, feedback_id: UUID) -> FeedbackRecord | None:
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("id", str(feedback_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_record(response.data[0])

    def get_latest_for_user(self, user_id: str) -> FeedbackRecord | None:
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_record(response.data[0])

    def update_media(
        self, feedback_id: UUID, media_uri: str, media_path: str | None
    ) -> None:
        """Set the media URI (or error marker) and storage path on a record."""
        self.client.table(_TABLE).update(
            {"media_uri": media_uri, "media_path": media_path}
        ).eq("id", str(feedback_id)).execute()

    def list_feedback(self, limit: int, offset: int) -> list[FeedbackRecord]:
        """Return a page of records, newest first."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return [_parse_record(row) for row in response.data or []]

    def list_for_user(self, user_id: str) -> list[FeedbackRecord]:
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_record(row) for row in response.data or []]

    def count_feedback(self, since: datetime | None = None) -> int:
        query = self.client.table(_TABLE).select("id", count="exact")
        if since is not None:
            query = query.gte("created_at", since.isoformat())
        response = query.execute()
        if response.count is not None:
            return response.count
        return len(response.data or [])


def _parse_record(row: dict[str, object]) -> FeedbackRecord:
    created_at_raw = row.get("created_at")
    created_at = (
        datetime.fromisoformat(created_at_raw)
        if isinstance(created_at_raw, str) and created_at_raw
        else datetime.min
    )
    return FeedbackRecord(
        id=UUID(str(row["id"])),
        user_id=str(row["user_id"]),
        name=_optional_str(row.get("name")),
        feedback_text=_optional_str(row.get("feedback_text")),
        media_ref=_optional_str(row.get("media_ref")),
        media_uri=_optional_str(row.get("media_uri")),
        media_path=_optional_str(row.get("media_path")),
        duration_seconds=int(row.get("duration_seconds") or 0),
        created_at=created_at,
    )


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None
