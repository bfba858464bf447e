"""Notification capability and event types."""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator

from models.appointment import Appointment
from models.contact import ContactMessage
from utils.datetime_utils import utc_now


class NotificationKind(str, Enum):
    """Lifecycle and contact form events that can trigger a message."""

    CREATED = "created"
    CONFIRMED = "confirmed"
    UPDATED = "updated"
    CANCELLED = "cancelled"
    ADMIN_NOTIFIED = "admin-notified"
    CONTACT_RECEIVED = "contact-received"
    CONTACT_REPLY = "contact-reply"


# Kinds delivered to the salon rather than the customer
ADMIN_KINDS = frozenset({NotificationKind.ADMIN_NOTIFIED, NotificationKind.CONTACT_RECEIVED})
CONTACT_KINDS = frozenset({NotificationKind.CONTACT_RECEIVED, NotificationKind.CONTACT_REPLY})


class NotificationEvent(BaseModel):
    """Appointment snapshot or contact message queued for delivery."""

    kind: NotificationKind
    appointment: Optional[Appointment] = None
    contact: Optional[ContactMessage] = None
    queued_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def check_subject(self) -> "NotificationEvent":
        if self.kind in CONTACT_KINDS:
            if self.contact is None:
                raise ValueError(f"'{self.kind.value}' needs a contact message")
        elif self.appointment is None:
            raise ValueError(f"'{self.kind.value}' needs an appointment")
        return self

    @property
    def reference(self) -> str:
        """Short label for logs."""
        if self.contact is not None:
            return f"contact message from {self.contact.email}"
        return f"appointment {self.appointment.id}"

    @property
    def customer_email(self) -> str:
        if self.contact is not None:
            return self.contact.email
        return self.appointment.email

    def payload(self) -> Dict[str, Any]:
        if self.contact is not None:
            return self.contact.model_dump(mode="json")
        return self.appointment.model_dump(mode="json")


class Notifier(ABC):
    """A delivery channel: ``notify(recipient, kind, payload)``."""

    channel: str = "unknown"

    @abstractmethod
    async def notify(
        self, recipient: str, kind: NotificationKind, payload: Dict[str, Any]
    ) -> None:
        """
        Deliver one message.

        Raises:
            NotificationFailure: If the message could not be delivered
        """
