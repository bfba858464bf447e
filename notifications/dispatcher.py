"""
Notification dispatch.

Lifecycle operations and the contact form enqueue events into an in-process
outbox and return immediately. A background worker drains the outbox and
attempts delivery once per recipient. Failures are logged and never reach the caller.
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from models.appointment import Appointment
from models.contact import ContactMessage
from notifications.base import ADMIN_KINDS, NotificationEvent, NotificationKind, Notifier
from utils.exceptions import NotificationFailure

logger = logging.getLogger(__name__)

Route = Tuple[Notifier, str]


class NotificationDispatcher:
    """Outbox plus best-effort, at-most-once delivery."""

    def __init__(
        self,
        customer_notifier: Optional[Notifier] = None,
        admin_routes: Sequence[Route] = (),
    ):
        self.customer_notifier = customer_notifier
        self.admin_routes: List[Route] = list(admin_routes)
        self._queue: "asyncio.Queue[NotificationEvent]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        """Number of queued, undelivered events."""
        return self._queue.qsize()

    def enqueue(self, kind: NotificationKind, appointment: Appointment) -> None:
        """Queue a notification for an appointment snapshot. Never blocks."""
        event = NotificationEvent(kind=kind, appointment=appointment)
        self._queue.put_nowait(event)
        logger.debug(f"Queued '{kind.value}' notification for appointment {appointment.id}")

    def enqueue_contact(self, message: ContactMessage) -> None:
        """Queue the salon copy of a contact message and the sender's auto-reply."""
        for kind in (NotificationKind.CONTACT_RECEIVED, NotificationKind.CONTACT_REPLY):
            self._queue.put_nowait(NotificationEvent(kind=kind, contact=message))
        logger.debug(f"Queued contact notifications for {message.email}")

    def _routes_for(self, event: NotificationEvent) -> List[Route]:
        if event.kind in ADMIN_KINDS:
            return self.admin_routes
        if self.customer_notifier is None:
            return []
        return [(self.customer_notifier, event.customer_email)]

    async def deliver(self, event: NotificationEvent) -> bool:
        """
        Attempt delivery of one event to every recipient.

        Returns:
            True if every attempt succeeded (or there was nobody to notify)
        """
        routes = self._routes_for(event)
        if not routes:
            logger.debug(f"No recipients for '{event.kind.value}' notification")
            return True

        payload = event.payload()
        delivered = True
        for notifier, recipient in routes:
            try:
                await notifier.notify(recipient, event.kind, payload)
            except NotificationFailure as e:
                delivered = False
                logger.warning(
                    f"Notification '{event.kind.value}' for {event.reference} "
                    f"via {notifier.channel} failed: {e}"
                )
            except Exception as e:
                delivered = False
                logger.error(
                    f"Unexpected error delivering '{event.kind.value}' for "
                    f"{event.reference} via {notifier.channel}: {e}",
                    exc_info=True,
                )
        return delivered

    async def flush(self) -> int:
        """Deliver everything queued right now. Returns the number of events handled."""
        handled = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return handled
            try:
                await self.deliver(event)
            finally:
                self._queue.task_done()
            handled += 1

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.deliver(event)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        """Start the background delivery worker."""
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run())
            logger.info("Notification worker started")

    async def stop(self, timeout_seconds: float = 10.0) -> None:
        """Drain the outbox (bounded by a timeout) and stop the worker."""
        if self._worker is None:
            await self.flush()
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Notification worker stopped with {self.pending} undelivered events"
            )

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Notification worker stopped")
