"""WhatsApp Cloud API client adapter."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import httpx

GRAPH_API_BASE_URL = "https://graph.facebook.com"


class WhatsAppClient(Protocol):
    """Interface for outbound WhatsApp messages."""

    async def send_text_message(self, to: str, text: str) -> str | None:
        """Send a text message and return the WhatsApp message id."""

    async def send_button_message(
        self, to: str, text: str, buttons: Sequence[tuple[str, str]]
    ) -> str | None:
        """Send a message with reply buttons given as (id, title) pairs."""


@dataclass
class HttpxWhatsAppClient(WhatsAppClient):
    """WhatsApp client implemented with httpx."""

    access_token: str
    phone_number_id: str
    api_version: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, access_token: str, phone_number_id: str, api_version: str
    ) -> "HttpxWhatsAppClient":
        """Create a WhatsApp client with a managed httpx session."""
        return cls(
            access_token=access_token,
            phone_number_id=phone_number_id,
            api_version=api_version,
            http_client=httpx.AsyncClient(),
        )

    async def send_text_message(self, to: str, text: str) -> str | None:
        """Send a message using the messages endpoint."""
        return await self._post_message(
            {
                "messaging_product": "whatsapp",
                "to": to,
                "type": "text",
                "text": {"body": text},
            }
        )

    async def send_button_message(
        self, to: str, text: str, buttons: Sequence[tuple[str, str]]
    ) -> str | None:
        """Send an interactive message with up to three reply buttons."""
        return await self._post_message(
            {
                "messaging_product": "whatsapp",
                "to": to,
                "type": "interactive",
                "interactive": {
                    "type": "button",
                    "body": {"text": text},
                    "action": {
                        "buttons": [
                            {
                                "type": "reply",
                                "reply": {"id": button_id, "title": title},
                            }
                            for button_id, title in buttons
                        ]
                    },
                },
            }
        )

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def _post_message(self, payload: dict[str, object]) -> str | None:
        url = f"{GRAPH_API_BASE_URL}/{self.api_version}/{self.phone_number_id}/messages"
        response = await self.http_client.post(
            url,
            json=payload,
            headers={"Authorization": f"Bearer {self.access_token}"},
            timeout=10,
        )
        response.raise_for_status()
        messages = response.json().get("messages") or []
        if messages and isinstance(messages[0], dict):
            return messages[0].get("id")
        return None
