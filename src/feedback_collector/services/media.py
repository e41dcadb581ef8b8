"""Detached media pipeline: fetch a channel media object and store it durably.

Jobs run on a fixed pool of worker tasks fed by a bounded queue. Submitting a
job never waits for it to finish. Each job runs at most once; any failure is
recorded as an error marker on the session or feedback record it belongs to
and is never reported back to the user.
"""

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Protocol

from feedback_collector.adapters.supabase_media_storage import MediaStorage
from feedback_collector.adapters.whatsapp_media_client import WhatsAppMediaClient
from feedback_collector.domain.feedback import media_error_marker
from feedback_collector.domain.messages import MediaJob
from feedback_collector.errors import MediaPipelineError
from feedback_collector.services.feedback import FeedbackService
from feedback_collector.services.sessions import SessionStore, utc_now

_logger = logging.getLogger(__name__)

_DEFAULT_CONTENT_TYPE = "image/jpeg"
_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class MediaJobQueue(Protocol):
    """Anything that accepts media jobs without running them inline."""

    async def submit(self, job: MediaJob) -> bool:
        """Queue a job; return False if it was rejected."""


@dataclass
class MediaPipeline(MediaJobQueue):
    """Bounded worker pool for media fetch-and-store jobs."""

    media_client: WhatsAppMediaClient
    storage: MediaStorage
    feedback_service: FeedbackService
    session_store: SessionStore
    workers: int = 4
    queue_size: int = 100
    drain_timeout_seconds: float = 10
    clock: Callable[[], datetime] = utc_now
    _queue: asyncio.Queue[MediaJob] | None = field(default=None, init=False)
    _tasks: list[asyncio.Task[None]] = field(default_factory=list, init=False)

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        """Start the worker tasks on the running event loop."""
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._tasks = [
            asyncio.create_task(self._worker(), name=f"media-worker-{index}")
            for index in range(self.workers)
        ]
        _logger.info(
            "Media pipeline started: workers=%s queue_size=%s",
            self.workers,
            self.queue_size,
        )

    async def stop(self) -> None:
        """Wait briefly for queued jobs, then cancel the workers."""
        if not self.running or self._queue is None:
            return
        try:
            await asyncio.wait_for(
                self._queue.join(), timeout=self.drain_timeout_seconds
            )
        except TimeoutError:
            _logger.warning(
                "Media pipeline stopped with %s queued jobs abandoned",
                self._queue.qsize(),
            )
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._queue = None
        _logger.info("Media pipeline stopped")

    async def drain(self) -> None:
        """Wait until every queued job has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def submit(self, job: MediaJob) -> bool:
        """Queue a job without waiting for it; rejected jobs are marked failed."""
        if self._queue is None:
            await self._mark_failed(job, "media pipeline not running")
            return False
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            await self._mark_failed(job, "media queue full")
            return False
        _logger.info(
            "Media job queued",
            extra={"user_id": job.user_id, "media_ref": job.media_ref},
        )
        return True

    async def process(self, job: MediaJob) -> None:
        """Run one job end to end and reconcile the result."""
        try:
            media_uri, path = await self._fetch_and_store(job)
        except MediaPipelineError as exc:
            _logger.warning(
                "Media job failed: %s",
                exc,
                extra={"user_id": job.user_id, "media_ref": job.media_ref},
            )
            await self._mark_failed(job, str(exc))
            return
        await self._reconcile(job, media_uri, path)
        _logger.info(
            "Media stored at %s",
            media_uri,
            extra={"user_id": job.user_id, "media_ref": job.media_ref},
        )

    def build_path(self, job: MediaJob, content_type: str) -> str:
        """Return the storage path, partitioned by year and month."""
        now = self.clock()
        key = str(job.record_id) if job.record_id else "pending"
        digits = re.sub(r"[^0-9]", "", job.user_id) or "unknown"
        extension = _EXTENSIONS.get(content_type, "jpg")
        millis = int(now.timestamp() * 1000)
        return f"{now:%Y}/{now:%m}/feedback-{key}-{digits}-{millis}.{extension}"

    async def _worker(self) -> None:
        queue = self._queue
        if queue is None:
            return
        while True:
            job = await queue.get()
            try:
                await self.process(job)
            except Exception:
                _logger.exception(
                    "Media job crashed",
                    extra={"user_id": job.user_id, "media_ref": job.media_ref},
                )
            finally:
                queue.task_done()

    async def _fetch_and_store(self, job: MediaJob) -> tuple[str, str]:
        try:
            info = await self.media_client.resolve_media(job.media_ref)
        except Exception as exc:
            raise MediaPipelineError("resolve", str(exc)) from exc
        try:
            data = await self.media_client.download_bytes(info.url)
        except Exception as exc:
            raise MediaPipelineError("download", str(exc)) from exc
        content_type = info.mime_type or _DEFAULT_CONTENT_TYPE
        path = self.build_path(job, content_type)
        try:
            media_uri = await asyncio.to_thread(
                self.storage.upload, path, data, content_type
            )
        except Exception as exc:
            raise MediaPipelineError("upload", str(exc)) from exc
        return media_uri, path

    async def _mark_failed(self, job: MediaJob, reason: str) -> None:
        await self._reconcile(job, media_error_marker(reason), None)

    async def _reconcile(
        self, job: MediaJob, media_uri: str, path: str | None
    ) -> None:
        """Write the result to the record, or to the live session that owns it."""
        async with self.session_store.lock(job.user_id):
            if job.record_id is not None:
                self.feedback_service.attach_media(job.record_id, media_uri, path)
                return
            session = await self.session_store.get(job.user_id)
            if session is not None and session.collected.media_ref == job.media_ref:
                collected = session.collected.patched({"media_uri": media_uri})
                await self.session_store.save(replace(session, collected=collected))
                return
            record = self.feedback_service.find_by_media_ref(
                job.user_id, job.media_ref
            )
            if record is not None:
                self.feedback_service.attach_media(record.id, media_uri, path)
                return
        _logger.warning(
            "No session or record left for media result",
            extra={"user_id": job.user_id, "media_ref": job.media_ref},
        )
