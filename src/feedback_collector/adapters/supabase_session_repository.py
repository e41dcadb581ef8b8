"""Supabase-backed conversation session repository."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from feedback_collector.domain.sessions import (
    CollectedData,
    IdleSession,
    Session,
    parse_state,
)
from feedback_collector.services.sessions import SessionRepository

_TABLE = "conversation_sessions"
_COLUMNS = (
    "user_id, state, name, feedback_text, media_ref, media_uri, "
    "is_completed, created_at, last_activity_at"
)


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for conversation sessions, one row per user."""

    client: Client

    def get_session(self, user_id: str) -> Session | None:
        """Return the stored session for a user, if present."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_session(response.data[0])

    def upsert_session(self, session: Session) -> None:
        """Insert or replace the session row keyed by user id."""
        collected = session.collected
        self.client.table(_TABLE).upsert(
            {
                "user_id": session.user_id,
                "state": session.state.value if session.state else None,
                "name": collected.name,
                "feedback_text": collected.feedback_text,
                "media_ref": collected.media_ref,
                "media_uri": collected.media_uri,
                "is_completed": session.completed,
                "created_at": session.created_at.isoformat(),
                "last_activity_at": session.last_activity_at.isoformat(),
            },
            on_conflict="user_id",
        ).execute()

    def delete_session(self, user_id: str) -> None:
        self.client.table(_TABLE).delete().eq("user_id", user_id).execute()

    def delete_session_if_unchanged(
        self, user_id: str, last_activity_at: datetime
    ) -> bool:
        """Delete the row only if its activity timestamp still matches."""
        response = (
            self.client.table(_TABLE)
            .delete()
            .eq("user_id", user_id)
            .eq("last_activity_at", last_activity_at.isoformat())
            .execute()
        )
        return bool(response.data)

    def list_idle_sessions(self, cutoff: datetime) -> list[IdleSession]:
        """Return uncompleted sessions last active before the cutoff."""
        response = (
            self.client.table(_TABLE)
            .select("user_id, last_activity_at")
            .eq("is_completed", False)
            .lt("last_activity_at", cutoff.isoformat())
            .execute()
        )
        return [
            IdleSession(
                user_id=row["user_id"],
                last_activity_at=datetime.fromisoformat(row["last_activity_at"]),
            )
            for row in response.data or []
        ]

    def count_active_sessions(self) -> int:
        response = (
            self.client.table(_TABLE)
            .select("user_id", count="exact")
            .eq("is_completed", False)
            .execute()
        )
        if response.count is not None:
            return response.count
        return len(response.data or [])


def _parse_session(row: dict[str, object]) -> Session:
    return Session(
        user_id=str(row["user_id"]),
        state=parse_state(row.get("state")),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        last_activity_at=datetime.fromisoformat(str(row["last_activity_at"])),
        collected=CollectedData(
            name=_optional_str(row.get("name")),
            feedback_text=_optional_str(row.get("feedback_text")),
            media_ref=_optional_str(row.get("media_ref")),
            media_uri=_optional_str(row.get("media_uri")),
        ),
        completed=bool(row.get("is_completed", False)),
    )


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None
