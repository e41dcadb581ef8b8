"""Outbound message dispatch."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from feedback_collector.adapters.whatsapp_client import WhatsAppClient

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one send attempt."""

    delivery_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class OutboundDispatcher:
    """Send wrapper that reports failures as values instead of raising."""

    client: WhatsAppClient

    async def send(
        self,
        user_id: str,
        text: str,
        buttons: Sequence[tuple[str, str]] | None = None,
    ) -> DeliveryResult:
        """Send a message; failures are logged and never retried."""
        try:
            if buttons:
                delivery_id = await self.client.send_button_message(
                    user_id, text, buttons
                )
            else:
                delivery_id = await self.client.send_text_message(user_id, text)
        except Exception as exc:
            _logger.exception("Failed to send message", extra={"user_id": user_id})
            return DeliveryResult(error=f"{type(exc).__name__}: {exc}")
        return DeliveryResult(delivery_id=delivery_id)
