"""WhatsApp message models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class InboundText:
    """Inbound chat message as delivered by the Meta Cloud API.

    PII: `sender_phone`, `sender_name` and `text` live only in memory for
    the duration of the webhook request. NEVER log them.
    """

    message_id: str
    sender_phone: str
    received_at: datetime
    kind: str  # e.g. "text", "image", "audio"
    text: str | None = None
    sender_name: str | None = None
    timestamp: str | None = None  # Meta's epoch-seconds string

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())
