"""
Unit tests for notification dispatch and delivery channels.
"""

import asyncio
import smtplib
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiogram.exceptions import TelegramAPIError
from pydantic import ValidationError as PydanticValidationError

from models.appointment import Appointment, AppointmentStatus
from models.contact import ContactMessage
from notifications.base import NotificationEvent, NotificationKind
from notifications.dispatcher import NotificationDispatcher
from notifications.email_notifier import EmailNotifier
from notifications.telegram_notifier import TelegramNotifier
from notifications.templates import render_message, render_telegram
from utils.exceptions import NotificationFailure


@pytest.fixture
def appointment():
    return Appointment(
        id="appt-1",
        name="Jane",
        email="jane@example.com",
        phone="+420123456789",
        date=date(2024, 6, 1),
        time="09:00",
        service_type="Haircut",
        status=AppointmentStatus.PENDING,
    )


@pytest.fixture
def contact():
    return ContactMessage(name="Jane", email="jane@example.com", message="Do you cut curly hair?")


def mock_notifier(channel="mock", side_effect=None):
    notifier = MagicMock()
    notifier.channel = channel
    notifier.notify = AsyncMock(side_effect=side_effect)
    return notifier


# ========== Dispatcher ==========


@pytest.mark.asyncio
async def test_enqueue_does_not_deliver_immediately(appointment):
    customer = mock_notifier()
    dispatcher = NotificationDispatcher(customer_notifier=customer)

    dispatcher.enqueue(NotificationKind.CREATED, appointment)

    assert dispatcher.pending == 1
    customer.notify.assert_not_called()


@pytest.mark.asyncio
async def test_flush_delivers_customer_events_to_appointment_email(appointment):
    customer = mock_notifier()
    dispatcher = NotificationDispatcher(customer_notifier=customer)

    dispatcher.enqueue(NotificationKind.CONFIRMED, appointment)
    handled = await dispatcher.flush()

    assert handled == 1
    assert dispatcher.pending == 0
    recipient, kind, payload = customer.notify.call_args.args
    assert recipient == "jane@example.com"
    assert kind == NotificationKind.CONFIRMED
    assert payload["date"] == "2024-06-01"
    assert payload["service_type"] == "Haircut"


@pytest.mark.asyncio
async def test_admin_events_go_to_every_admin_route(appointment):
    customer = mock_notifier()
    telegram = mock_notifier("telegram")
    email = mock_notifier("email")
    dispatcher = NotificationDispatcher(
        customer_notifier=customer,
        admin_routes=[(telegram, "12345"), (email, "admin@example.com")],
    )

    dispatcher.enqueue(NotificationKind.ADMIN_NOTIFIED, appointment)
    await dispatcher.flush()

    customer.notify.assert_not_called()
    assert telegram.notify.call_args.args[0] == "12345"
    assert email.notify.call_args.args[0] == "admin@example.com"


@pytest.mark.asyncio
async def test_delivery_failure_is_absorbed(appointment):
    failing = mock_notifier(side_effect=NotificationFailure("smtp down"))
    dispatcher = NotificationDispatcher(customer_notifier=failing)
    event = NotificationEvent(kind=NotificationKind.CANCELLED, appointment=appointment)

    assert await dispatcher.deliver(event) is False
    failing.notify.assert_awaited_once()


@pytest.mark.asyncio
async def test_unexpected_error_is_absorbed_and_others_still_delivered(appointment):
    broken = mock_notifier("telegram", side_effect=RuntimeError("boom"))
    working = mock_notifier("email")
    dispatcher = NotificationDispatcher(
        admin_routes=[(broken, "1"), (working, "admin@example.com")]
    )
    event = NotificationEvent(kind=NotificationKind.ADMIN_NOTIFIED, appointment=appointment)

    assert await dispatcher.deliver(event) is False
    working.notify.assert_awaited_once()


@pytest.mark.asyncio
async def test_no_recipients_counts_as_delivered(appointment):
    dispatcher = NotificationDispatcher()
    event = NotificationEvent(kind=NotificationKind.ADMIN_NOTIFIED, appointment=appointment)

    assert await dispatcher.deliver(event) is True


@pytest.mark.asyncio
async def test_events_are_delivered_once_in_order(appointment):
    customer = mock_notifier()
    dispatcher = NotificationDispatcher(customer_notifier=customer)

    dispatcher.enqueue(NotificationKind.CREATED, appointment)
    dispatcher.enqueue(NotificationKind.CONFIRMED, appointment)
    await dispatcher.flush()
    await dispatcher.flush()

    kinds = [c.args[1] for c in customer.notify.call_args_list]
    assert kinds == [NotificationKind.CREATED, NotificationKind.CONFIRMED]


@pytest.mark.asyncio
async def test_worker_drains_queue_on_stop(appointment):
    customer = mock_notifier()
    dispatcher = NotificationDispatcher(customer_notifier=customer)
    dispatcher.start()

    dispatcher.enqueue(NotificationKind.CREATED, appointment)
    dispatcher.enqueue(NotificationKind.CANCELLED, appointment)
    await dispatcher.stop(timeout_seconds=1.0)

    assert customer.notify.await_count == 2
    assert dispatcher.pending == 0


@pytest.mark.asyncio
async def test_worker_survives_failing_delivery(appointment):
    customer = mock_notifier(side_effect=[NotificationFailure("down"), None])
    dispatcher = NotificationDispatcher(customer_notifier=customer)
    dispatcher.start()

    dispatcher.enqueue(NotificationKind.CREATED, appointment)
    dispatcher.enqueue(NotificationKind.CONFIRMED, appointment)
    await asyncio.sleep(0)
    await dispatcher.stop(timeout_seconds=1.0)

    assert customer.notify.await_count == 2


@pytest.mark.asyncio
async def test_stop_without_worker_flushes(appointment):
    customer = mock_notifier()
    dispatcher = NotificationDispatcher(customer_notifier=customer)

    dispatcher.enqueue(NotificationKind.UPDATED, appointment)
    await dispatcher.stop()

    customer.notify.assert_awaited_once()


@pytest.mark.asyncio
async def test_contact_queues_salon_copy_and_auto_reply(contact):
    customer = mock_notifier()
    admin = mock_notifier("email")
    dispatcher = NotificationDispatcher(
        customer_notifier=customer, admin_routes=[(admin, "salon@example.com")]
    )

    dispatcher.enqueue_contact(contact)
    assert dispatcher.pending == 2
    await dispatcher.flush()

    recipient, kind, payload = admin.notify.call_args.args
    assert recipient == "salon@example.com"
    assert kind == NotificationKind.CONTACT_RECEIVED
    assert payload["message"] == "Do you cut curly hair?"
    recipient, kind, _ = customer.notify.call_args.args
    assert recipient == "jane@example.com"
    assert kind == NotificationKind.CONTACT_REPLY


@pytest.mark.asyncio
async def test_contact_delivery_failure_is_absorbed(contact):
    failing = mock_notifier(side_effect=NotificationFailure("smtp down"))
    dispatcher = NotificationDispatcher(customer_notifier=failing)
    event = NotificationEvent(kind=NotificationKind.CONTACT_REPLY, contact=contact)

    assert await dispatcher.deliver(event) is False
    failing.notify.assert_awaited_once()


def test_event_requires_matching_subject(appointment, contact):
    with pytest.raises(PydanticValidationError):
        NotificationEvent(kind=NotificationKind.CONTACT_REPLY, appointment=appointment)
    with pytest.raises(PydanticValidationError):
        NotificationEvent(kind=NotificationKind.CREATED, contact=contact)

    event = NotificationEvent(kind=NotificationKind.CONTACT_RECEIVED, contact=contact)
    assert event.customer_email == "jane@example.com"
    assert event.payload()["name"] == "Jane"


# ========== Email ==========


@pytest.mark.asyncio
async def test_email_unconfigured_raises_failure():
    notifier = EmailNotifier(host=None)

    with pytest.raises(NotificationFailure):
        await notifier.notify("jane@example.com", NotificationKind.CREATED, {"name": "Jane"})


@pytest.mark.asyncio
async def test_email_missing_recipient_raises_failure():
    notifier = EmailNotifier(host="smtp.example.com")

    with pytest.raises(NotificationFailure):
        await notifier.notify("", NotificationKind.CREATED, {"name": "Jane"})


@pytest.mark.asyncio
async def test_email_sent_with_starttls_and_login(appointment):
    notifier = EmailNotifier(
        host="smtp.example.com",
        port=587,
        username="user",
        password="secret",
        sender="salon@example.com",
    )

    with patch("notifications.email_notifier.smtplib.SMTP") as mock_smtp:
        server = mock_smtp.return_value
        server.__enter__.return_value = server
        await notifier.notify(
            "jane@example.com",
            NotificationKind.CONFIRMED,
            appointment.model_dump(mode="json"),
        )

    mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("user", "secret")
    sent = server.send_message.call_args.args[0]
    assert sent["Subject"] == "Your Appointment is Confirmed"
    assert sent["To"] == "jane@example.com"
    assert sent["From"] == "salon@example.com"


@pytest.mark.asyncio
async def test_email_smtp_error_becomes_failure(appointment):
    notifier = EmailNotifier(host="smtp.example.com")

    with patch("notifications.email_notifier.smtplib.SMTP") as mock_smtp:
        server = mock_smtp.return_value
        server.__enter__.return_value = server
        server.send_message.side_effect = smtplib.SMTPException("rejected")

        with pytest.raises(NotificationFailure):
            await notifier.notify(
                "jane@example.com",
                NotificationKind.CANCELLED,
                appointment.model_dump(mode="json"),
            )


# ========== Telegram ==========


@pytest.mark.asyncio
async def test_telegram_sends_to_chat_id(appointment):
    bot = MagicMock()
    bot.send_message = AsyncMock()
    notifier = TelegramNotifier(bot)

    await notifier.notify("12345", NotificationKind.ADMIN_NOTIFIED, appointment.model_dump(mode="json"))

    chat_id, text = bot.send_message.call_args.args
    assert chat_id == 12345
    assert "New Appointment Request" in text
    assert "Jane" in text


@pytest.mark.asyncio
async def test_telegram_api_error_becomes_failure(appointment):
    bot = MagicMock()
    bot.send_message = AsyncMock(
        side_effect=TelegramAPIError(method=MagicMock(), message="chat not found")
    )
    notifier = TelegramNotifier(bot)

    with pytest.raises(NotificationFailure):
        await notifier.notify("12345", NotificationKind.CONFIRMED, appointment.model_dump(mode="json"))


@pytest.mark.asyncio
async def test_telegram_bad_chat_id_becomes_failure(appointment):
    bot = MagicMock()
    bot.send_message = AsyncMock()
    notifier = TelegramNotifier(bot)

    with pytest.raises(NotificationFailure):
        await notifier.notify("not-a-chat", NotificationKind.CONFIRMED, appointment.model_dump(mode="json"))

    bot.send_message.assert_not_called()


# ========== Templates ==========


@pytest.mark.parametrize(
    "kind, subject",
    [
        (NotificationKind.CREATED, "We Received Your Appointment Request"),
        (NotificationKind.CONFIRMED, "Your Appointment is Confirmed"),
        (NotificationKind.UPDATED, "Your Appointment Details Were Updated"),
        (NotificationKind.CANCELLED, "Your Appointment Has Been Cancelled"),
        (NotificationKind.ADMIN_NOTIFIED, "New Appointment Request"),
    ],
)
def test_render_message_subjects(appointment, kind, subject):
    rendered = render_message(kind, appointment.model_dump(mode="json"))

    assert rendered.subject == subject
    assert "2024-06-01" in rendered.text
    assert "09:00" in rendered.text


def test_admin_message_includes_contact_details(appointment):
    rendered = render_message(NotificationKind.ADMIN_NOTIFIED, appointment.model_dump(mode="json"))

    assert "jane@example.com" in rendered.text
    assert "+420123456789" in rendered.text


def test_html_escapes_customer_input(appointment):
    payload = appointment.model_dump(mode="json")
    payload["name"] = "<script>x</script>"

    assert "<script>" not in render_message(NotificationKind.ADMIN_NOTIFIED, payload).html
    assert "<script>" not in render_telegram(NotificationKind.ADMIN_NOTIFIED, payload)


@pytest.mark.parametrize(
    "kind, subject",
    [
        (NotificationKind.CONTACT_RECEIVED, "New Contact Form Message from Jane"),
        (NotificationKind.CONTACT_REPLY, "We received your message"),
    ],
)
def test_render_contact_subjects(contact, kind, subject):
    rendered = render_message(kind, contact.model_dump(mode="json"))

    assert rendered.subject == subject
    assert "Do you cut curly hair?" in rendered.text
    assert "Do you cut curly hair?" in rendered.html


def test_contact_telegram_escapes_input(contact):
    payload = contact.model_dump(mode="json")
    payload["message"] = "<b>hi</b> & bye"

    text = render_telegram(NotificationKind.CONTACT_RECEIVED, payload)

    assert "<b>hi</b>" not in text
    assert "&lt;b&gt;hi&lt;/b&gt; &amp; bye" in text
    assert "jane@example.com" in text
