"""Background eviction of idle, uncompleted sessions."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from feedback_collector.services.sessions import SessionStore

_logger = logging.getLogger(__name__)


@dataclass
class SessionReaper:
    """Periodically deletes sessions idle for longer than the TTL.

    Owned by the application lifespan: nothing runs until ``start`` is awaited,
    and ``stop`` cancels the timer loop.
    """

    session_store: SessionStore
    ttl: timedelta
    interval_seconds: float
    _task: asyncio.Task[None] | None = field(default=None, init=False)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="session-reaper")
        _logger.info(
            "Session reaper started: interval=%ss ttl=%s",
            self.interval_seconds,
            self.ttl,
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        _logger.info("Session reaper stopped")

    async def sweep(self) -> int:
        """Delete every session still idle at delete time; return the count."""
        idle = await self.session_store.list_idle_older_than(self.ttl)
        removed = 0
        for snapshot in idle:
            async with self.session_store.lock(snapshot.user_id):
                deleted = await self.session_store.delete_if_idle(
                    snapshot.user_id, snapshot.last_activity_at
                )
            if deleted:
                removed += 1
        if removed:
            _logger.info("Cleaned up %s expired sessions", removed)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep()
            except Exception:
                _logger.exception("Session sweep failed")
