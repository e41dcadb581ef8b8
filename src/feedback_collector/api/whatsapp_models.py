"""Pydantic models for WhatsApp Cloud API webhook payloads."""

from pydantic import BaseModel, Field

from feedback_collector.domain.messages import InboundEvent, InputKind

WHATSAPP_OBJECT = "whatsapp_business_account"


class WhatsAppText(BaseModel):
    """Text message body."""

    body: str


class WhatsAppMedia(BaseModel):
    """Image attachment reference."""

    id: str
    mime_type: str | None = None
    sha256: str | None = None
    caption: str | None = None


class WhatsAppButtonReply(BaseModel):
    """Reply button pressed by the user."""

    id: str
    title: str | None = None


class WhatsAppInteractive(BaseModel):
    """Interactive reply payload."""

    type: str
    button_reply: WhatsAppButtonReply | None = None


class WhatsAppMessage(BaseModel):
    """Inbound message payload."""

    id: str
    from_: str = Field(alias="from")
    timestamp: str | None = None
    type: str
    text: WhatsAppText | None = None
    image: WhatsAppMedia | None = None
    interactive: WhatsAppInteractive | None = None

    def to_event(self) -> InboundEvent:
        """Classify the message as text, media or anything else."""
        if self.type == "text" and self.text is not None:
            return InboundEvent(
                sender_id=self.from_, kind=InputKind.TEXT, text=self.text.body
            )
        if self.type == "image" and self.image is not None:
            return InboundEvent(
                sender_id=self.from_, kind=InputKind.MEDIA, media_ref=self.image.id
            )
        if (
            self.type == "interactive"
            and self.interactive is not None
            and self.interactive.button_reply is not None
        ):
            return InboundEvent(
                sender_id=self.from_,
                kind=InputKind.TEXT,
                text=self.interactive.button_reply.id,
            )
        return InboundEvent(sender_id=self.from_, kind=InputKind.OTHER)


class WhatsAppStatus(BaseModel):
    """Delivery status callback."""

    id: str
    status: str
    recipient_id: str | None = None


class WhatsAppValue(BaseModel):
    """Change value carrying messages or statuses."""

    messaging_product: str | None = None
    messages: list[WhatsAppMessage] = Field(default_factory=list)
    statuses: list[WhatsAppStatus] = Field(default_factory=list)


class WhatsAppChange(BaseModel):
    """Webhook change entry."""

    field: str
    value: WhatsAppValue


class WhatsAppEntry(BaseModel):
    """Webhook entry for one business account."""

    id: str
    changes: list[WhatsAppChange] = Field(default_factory=list)


class WhatsAppWebhook(BaseModel):
    """Top-level webhook payload."""

    object: str
    entry: list[WhatsAppEntry] = Field(default_factory=list)

    def messages(self) -> list[WhatsAppMessage]:
        """Return every inbound message in delivery order."""
        return [
            message
            for entry in self.entry
            for change in entry.changes
            for message in change.value.messages
        ]

    def statuses(self) -> list[WhatsAppStatus]:
        return [
            status
            for entry in self.entry
            for change in entry.changes
            for status in change.value.statuses
        ]
