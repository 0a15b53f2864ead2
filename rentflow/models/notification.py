from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class NotificationType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    PAID = "paid"


class EmailStatus(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class EmailMessage(BaseModel):
    to: str
    subject: str
    html: str
    text: str = ""


class WhatsAppMessage(BaseModel):
    text: str
    # Content-template slots ({"1": ..., "2": ...}) for providers that need them.
    variables: dict[str, str] | None = None


class ProviderResult(BaseModel):
    provider: str
    message_id: str | None = None
    status_code: int | None = None
