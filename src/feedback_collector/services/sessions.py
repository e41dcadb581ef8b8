"""Session store with TTL-aware reads and per-user serialization."""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Protocol

from feedback_collector.domain.sessions import (
    INITIAL_STATE,
    CollectedData,
    IdleSession,
    Session,
)

_logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class SessionRepository(Protocol):
    """Persistence interface for conversation sessions."""

    def get_session(self, user_id: str) -> Session | None:
        """Return the stored session for a user, if present."""

    def upsert_session(self, session: Session) -> None:
        """Insert or replace the session keyed by its user id."""

    def delete_session(self, user_id: str) -> None:
        """Delete the session for a user; no-op if absent."""

    def delete_session_if_unchanged(
        self, user_id: str, last_activity_at: datetime
    ) -> bool:
        """Delete the session only if its activity timestamp is unchanged."""

    def list_idle_sessions(self, cutoff: datetime) -> list[IdleSession]:
        """Return uncompleted sessions last active before the cutoff."""

    def count_active_sessions(self) -> int:
        """Return the number of stored, uncompleted sessions."""


@dataclass
class KeyedLock:
    """Per-key asyncio mutex; idle keys are dropped."""

    _locks: dict[str, asyncio.Lock] = field(default_factory=dict)
    _holders: dict[str, int] = field(default_factory=dict)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


@dataclass
class SessionStore:
    """Owns the session lifecycle on top of a repository.

    Read-modify-write sequences for one user must run inside ``lock(user_id)``;
    the store itself never takes the lock so callers can compose several
    operations into one critical section.
    """

    repository: SessionRepository
    ttl: timedelta
    clock: Callable[[], datetime] = utc_now
    locks: KeyedLock = field(default_factory=KeyedLock)

    def lock(self, user_id: str) -> AbstractAsyncContextManager[None]:
        """Return the per-user mutex context manager."""
        return self.locks.hold(user_id)

    def is_expired(self, session: Session, now: datetime | None = None) -> bool:
        current = now or self.clock()
        return current - session.last_activity_at > self.ttl

    async def get(self, user_id: str) -> Session | None:
        """Return the live session for a user, treating expired ones as absent."""
        session = self.repository.get_session(user_id)
        if session is None or self.is_expired(session):
            return None
        return session

    async def get_or_create(self, user_id: str) -> Session:
        """Return the live session or replace a missing/stale one with a fresh one."""
        session = self.repository.get_session(user_id)
        if session is not None and not self.is_expired(session):
            return session
        if session is not None:
            _logger.info(
                "Session expired, starting fresh",
                extra={"user_id": user_id, "state": session.state},
            )
            self.repository.delete_session(user_id)
        return self._create(user_id)

    async def reset(self, user_id: str) -> Session:
        """Discard any session for the user and start a fresh one."""
        self.repository.delete_session(user_id)
        return self._create(user_id)

    async def save(self, session: Session) -> Session:
        """Upsert the session, refreshing its activity timestamp."""
        saved = replace(session, last_activity_at=self.clock())
        self.repository.upsert_session(saved)
        return saved

    async def delete(self, user_id: str) -> None:
        self.repository.delete_session(user_id)

    async def restore(self, session: Session) -> None:
        """Put back a session exactly as it was read, without touching activity."""
        self.repository.upsert_session(session)

    async def list_idle_older_than(self, ttl: timedelta) -> list[IdleSession]:
        return self.repository.list_idle_sessions(self.clock() - ttl)

    async def delete_if_idle(self, user_id: str, last_activity_at: datetime) -> bool:
        """Delete a session only if nothing touched it since the snapshot."""
        return self.repository.delete_session_if_unchanged(user_id, last_activity_at)

    async def count_active(self) -> int:
        return self.repository.count_active_sessions()

    def _create(self, user_id: str) -> Session:
        now = self.clock()
        session = Session(
            user_id=user_id,
            state=INITIAL_STATE,
            created_at=now,
            last_activity_at=now,
            collected=CollectedData(),
        )
        self.repository.upsert_session(session)
        _logger.info("Created session", extra={"user_id": user_id})
        return session
