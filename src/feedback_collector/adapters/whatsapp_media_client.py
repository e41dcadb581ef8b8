"""WhatsApp media lookup and download client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from feedback_collector.adapters.whatsapp_client import GRAPH_API_BASE_URL
from feedback_collector.domain.messages import MediaInfo


class WhatsAppMediaClient(Protocol):
    """Interface for resolving and downloading WhatsApp media."""

    async def resolve_media(self, media_id: str) -> MediaInfo:
        """Return the time-limited download URL for a media id."""

    async def download_bytes(self, url: str) -> bytes:
        """Download media bytes from a resolved URL."""


@dataclass
class HttpxWhatsAppMediaClient(WhatsAppMediaClient):
    """WhatsApp media client using httpx."""

    access_token: str
    api_version: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, access_token: str, api_version: str) -> "HttpxWhatsAppMediaClient":
        """Create a media client with a managed httpx session."""
        return cls(
            access_token=access_token,
            api_version=api_version,
            http_client=httpx.AsyncClient(),
        )

    async def resolve_media(self, media_id: str) -> MediaInfo:
        """Look up media metadata via the Graph API."""
        response = await self.http_client.get(
            f"{GRAPH_API_BASE_URL}/{self.api_version}/{media_id}",
            headers=self._auth_headers(),
            timeout=10,
        )
        response.raise_for_status()
        payload = response.json()
        url = payload.get("url")
        if not url:
            raise RuntimeError("WhatsApp media lookup returned no url")
        return MediaInfo(url=url, mime_type=payload.get("mime_type"))

    async def download_bytes(self, url: str) -> bytes:
        """Download media bytes; the URL requires the same bearer token."""
        response = await self.http_client.get(
            url, headers=self._auth_headers(), timeout=30
        )
        response.raise_for_status()
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}
