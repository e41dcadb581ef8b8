"""Supabase Storage adapter for uploaded feedback media."""

import logging
from dataclasses import dataclass
from typing import Protocol

from supabase import Client

from feedback_collector.errors import StorageUploadError

_logger = logging.getLogger(__name__)

_ALLOWED_MIME_TYPES = ["image/jpeg", "image/png", "image/webp", "image/gif"]
_FILE_SIZE_LIMIT = 5 * 1024 * 1024


class MediaStorage(Protocol):
    """Interface for durable blob storage."""

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Store bytes under a path and return the public URI."""

    def remove(self, path: str) -> None:
        """Delete a stored object."""

    def ensure_bucket(self) -> None:
        """Create the target bucket if it does not exist."""


@dataclass
class SupabaseMediaStorage(MediaStorage):
    """Public Supabase bucket holding feedback pictures."""

    client: Client
    bucket: str

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Upload an object without overwriting and return its public URL."""
        try:
            self.client.storage.from_(self.bucket).upload(
                path,
                data,
                file_options={"content-type": content_type, "upsert": "false"},
            )
        except Exception as exc:
            raise StorageUploadError(f"Upload to {self.bucket}/{path} failed") from exc
        return self.client.storage.from_(self.bucket).get_public_url(path)

    def remove(self, path: str) -> None:
        """Delete an object from the bucket."""
        self.client.storage.from_(self.bucket).remove([path])

    def ensure_bucket(self) -> None:
        """Create the public bucket on first start."""
        buckets = self.client.storage.list_buckets()
        if any(bucket.name == self.bucket for bucket in buckets):
            return
        self.client.storage.create_bucket(
            self.bucket,
            options={
                "public": True,
                "allowed_mime_types": _ALLOWED_MIME_TYPES,
                "file_size_limit": _FILE_SIZE_LIMIT,
            },
        )
        _logger.info("Created storage bucket %s", self.bucket)
