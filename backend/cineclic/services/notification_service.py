"""
Booking notifications.

The coordinator never awaits these on the mutation path: it schedules
them after the commit and logs failures. Message bodies are plain text.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from cineclic.core.config import get_settings
from cineclic.core.logging import get_logger

logger = get_logger(__name__)

PAYMENT_DEADLINE_MESSAGE = "You have {minutes} minutes to complete the payment."
USER_CANCELLATION_MESSAGE = "Your booking has been cancelled. Contact us if you have any questions."
SWEEP_CANCELLATION_MESSAGE = (
    "Your booking was cancelled because the payment was not completed before the deadline."
)


@dataclass
class Recipient:
    name: str
    email: str


@dataclass
class ShowDetails:
    title: str
    starts_at: datetime
    room: str


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    body: str
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EmailSender(ABC):
    """Delivery backend for notification emails."""

    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> None:
        pass


class LoggingEmailSender(EmailSender):
    """
    Logs each email instead of delivering it and keeps an outbox.

    Used in development and tests; a real SMTP or API backend implements
    the same interface.
    """

    def __init__(self, sender: str) -> None:
        self.sender = sender
        self.outbox: list[OutgoingEmail] = []

    async def send(self, to: str, subject: str, body: str) -> None:
        self.outbox.append(OutgoingEmail(to=to, subject=subject, body=body))
        logger.info("email_sent", sender=self.sender, to=to, subject=subject)


class BookingNotifier:
    def __init__(self, sender: EmailSender) -> None:
        self.sender = sender

    async def send_confirmation(
        self,
        user: Recipient,
        show: ShowDetails,
        seats: Sequence[str],
        total_price: Decimal,
        folio: str,
        message: str,
    ) -> None:
        body = "\n".join([
            f"Hello {user.name}, your booking is confirmed.",
            "",
            f"Movie: {show.title}",
            f"Date: {show.starts_at:%Y-%m-%d}",
            f"Time: {show.starts_at:%H:%M} UTC",
            f"Room: {show.room}",
            f"Seats: {', '.join(seats)}",
            f"Total: ${total_price:.2f}",
            f"Folio: {folio}",
            "",
            message,
        ])
        await self.sender.send(user.email, "Booking confirmation - CineClic", body)
        logger.info("booking_confirmation_sent", email=user.email, folio=folio)

    async def send_cancellation(self, user: Recipient, folio: str, message: str) -> None:
        body = "\n".join([
            f"Hello {user.name},",
            "",
            f"Your booking with folio {folio} has been cancelled.",
            message,
        ])
        await self.sender.send(user.email, "Booking cancellation - CineClic", body)
        logger.info("booking_cancellation_sent", email=user.email, folio=folio)


def payment_deadline_message() -> str:
    return PAYMENT_DEADLINE_MESSAGE.format(minutes=get_settings().PAYMENT_WINDOW_MINUTES)
