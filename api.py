"""
HTTP API for salon appointments.

Public routes accept appointment requests and contact messages and report
free slots; admin routes (bearer token) review, edit and remove
appointments. Each failure kind maps to its own status code and error code
so clients can tell
"pick another time" (409 slot_conflict) from "fix this field"
(400 validation_failed).
"""

import functools
import json
import logging
import sys
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from aiohttp import web
from aiohttp.web import Request, Response

from config import settings
from db import get_db_client
from models.appointment import validate_payload
from models.contact import ContactMessage
from models.service import get_all_services
from notifications.dispatcher import NotificationDispatcher
from notifications.email_notifier import EmailNotifier
from notifications.telegram_notifier import TelegramNotifier
from scheduling.lifecycle import AppointmentLifecycle
from scheduling.slots import SlotCalendar
from utils.constants import MAX_REQUEST_BODY_SIZE
from utils.exceptions import (
    AppointmentNotFoundError,
    DatabaseError,
    SlotConflictError,
    TransientStorageError,
    ValidationError,
)
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

AdminCheck = Callable[[Optional[str]], bool]
Handler = Callable[[Request], Awaitable[Response]]

LIFECYCLE_KEY = web.AppKey("lifecycle", AppointmentLifecycle)
ADMIN_CHECK_KEY = web.AppKey("admin_check", object)
STARTED_AT_KEY = web.AppKey("started_at", float)


def _error_response(status: int, error: str, message: str) -> Response:
    return web.json_response(
        {"status": "error", "error": error, "message": message}, status=status
    )


def _bearer_token(request: Request) -> Optional[str]:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def is_admin_request(request: Request) -> bool:
    """Opaque admin capability check for the current caller."""
    admin_check: AdminCheck = request.app[ADMIN_CHECK_KEY]
    return admin_check(_bearer_token(request))


def admin_required(handler: Handler) -> Handler:
    """Reject callers that fail the admin check with 401."""

    @functools.wraps(handler)
    async def wrapper(request: Request) -> Response:
        if not is_admin_request(request):
            logger.warning(f"Admin access denied: {request.method} {request.path}")
            return _error_response(401, "unauthorized", "Admin access required")
        return await handler(request)

    return wrapper


async def _read_json(request: Request) -> Dict[str, Any]:
    raw_body = await request.read()
    try:
        text = raw_body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError("Request body must be valid UTF-8 JSON") from e
    if not text.strip():
        return {}
    try:
        body = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Request body must be valid JSON: {e.msg}") from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _lifecycle(request: Request) -> AppointmentLifecycle:
    return request.app[LIFECYCLE_KEY]


# ========== Middleware ==========


@web.middleware
async def security_headers_middleware(request: Request, handler):
    """Add security headers to all responses."""
    response = await handler(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Strict-Transport-Security"] = (
        "max-age=31536000; includeSubDomains"
    )

    return response


@web.middleware
async def error_middleware(request: Request, handler):
    """Translate appointment errors into typed JSON error responses."""
    try:
        return await handler(request)
    except ValidationError as e:
        logger.info(f"Validation failed for {request.method} {request.path}: {e}")
        return _error_response(400, "validation_failed", str(e))
    except AppointmentNotFoundError as e:
        return _error_response(404, "not_found", str(e))
    except SlotConflictError as e:
        logger.warning(f"Slot conflict for {request.method} {request.path}: {e}")
        return _error_response(409, "slot_conflict", str(e))
    except TransientStorageError as e:
        logger.error(f"Storage unavailable for {request.method} {request.path}: {e}")
        return _error_response(
            503, "storage_unavailable", "Storage is temporarily unavailable, please retry"
        )
    except DatabaseError as e:
        logger.error(f"Storage error for {request.method} {request.path}: {e}", exc_info=True)
        return _error_response(500, "internal_error", "Internal storage error")
    except web.HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"Unexpected error for {request.method} {request.path}: {e}", exc_info=True
        )
        return _error_response(500, "internal_error", "Internal server error")


# ========== Public Handlers ==========


async def create_appointment_handler(request: Request) -> Response:
    """
    Submit an appointment request.

    Anonymous callers always create a pending appointment; an admin caller
    may choose the initial status.
    """
    body = await _read_json(request)
    if is_admin_request(request):
        appointment = await _lifecycle(request).create_appointment(body)
    else:
        appointment = await _lifecycle(request).submit_appointment(body)
    return web.json_response(appointment.model_dump(mode="json"), status=201)


async def available_slots_handler(request: Request) -> Response:
    availability = await _lifecycle(request).get_available_slots(
        request.query.get("date")
    )
    return web.json_response(availability.model_dump(mode="json"))


async def slot_status_handler(request: Request) -> Response:
    status_map = await _lifecycle(request).get_slot_status_map(request.query.get("date"))
    return web.json_response(status_map.model_dump(mode="json"))


async def services_handler(request: Request) -> Response:
    return web.json_response(
        [service.model_dump(mode="json") for service in get_all_services()]
    )


async def contact_handler(request: Request) -> Response:
    """
    Contact form. The salon gets a copy and the sender an auto-reply.

    Delivery happens in the background; a failed email never changes the
    response.
    """
    body = await _read_json(request)
    message = validate_payload(ContactMessage, body)
    _lifecycle(request).dispatcher.enqueue_contact(message)
    logger.info(f"Contact form submitted by {message.email}")
    return web.json_response({"status": "success", "message": "Message received"})


async def health_check(request: Request) -> Response:
    """Health check with uptime and notification backlog."""
    lifecycle = _lifecycle(request)
    uptime_seconds = time.time() - request.app[STARTED_AT_KEY]
    return web.json_response(
        {
            "status": "ok",
            "service": "salon-appointments",
            "environment": settings.environment,
            "timestamp": time.time(),
            "uptime_hours": round(uptime_seconds / 3600, 2),
            "storage": type(lifecycle.store).__name__,
            "pending_notifications": lifecycle.dispatcher.pending,
        }
    )


# ========== Admin Handlers ==========


@admin_required
async def list_appointments_handler(request: Request) -> Response:
    appointments = await _lifecycle(request).list_appointments(
        request.query.get("status")
    )
    return web.json_response([a.model_dump(mode="json") for a in appointments])


@admin_required
async def get_appointment_handler(request: Request) -> Response:
    appointment = await _lifecycle(request).get_appointment(request.match_info["id"])
    return web.json_response(appointment.model_dump(mode="json"))


@admin_required
async def edit_appointment_handler(request: Request) -> Response:
    body = await _read_json(request)
    appointment = await _lifecycle(request).edit_appointment(
        request.match_info["id"], body
    )
    return web.json_response(appointment.model_dump(mode="json"))


@admin_required
async def set_status_handler(request: Request) -> Response:
    body = await _read_json(request)
    appointment = await _lifecycle(request).set_status(
        request.match_info["id"], body.get("status")
    )
    return web.json_response(appointment.model_dump(mode="json"))


@admin_required
async def delete_appointment_handler(request: Request) -> Response:
    await _lifecycle(request).delete_appointment(request.match_info["id"])
    return web.json_response(
        {"status": "success", "message": "Appointment removed successfully"}
    )


# ========== Application ==========


def build_dispatcher() -> NotificationDispatcher:
    """Wire notification channels from settings."""
    email_notifier = EmailNotifier.from_settings()
    if not email_notifier.is_configured:
        logger.warning("SMTP is not configured - customer emails will not be delivered")

    admin_routes = []
    telegram_notifier = TelegramNotifier.from_settings()
    if telegram_notifier:
        admin_routes += [
            (telegram_notifier, str(chat_id))
            for chat_id in settings.get_admin_telegram_ids()
        ]
    if settings.admin_email:
        admin_routes.append((email_notifier, settings.admin_email))
    if not admin_routes:
        logger.warning("No admin notification recipients configured")

    return NotificationDispatcher(
        customer_notifier=email_notifier, admin_routes=admin_routes
    )


def build_lifecycle() -> AppointmentLifecycle:
    """Assemble the lifecycle from settings."""
    return AppointmentLifecycle(
        store=get_db_client(),
        calendar=SlotCalendar(settings.calendar_config()),
        dispatcher=build_dispatcher(),
    )


async def _start_notifications(app: web.Application) -> None:
    app[LIFECYCLE_KEY].dispatcher.start()


async def _stop_notifications(app: web.Application) -> None:
    dispatcher = app[LIFECYCLE_KEY].dispatcher
    await dispatcher.stop(timeout_seconds=settings.notification_timeout_seconds)
    for notifier in {notifier for notifier, _ in dispatcher.admin_routes}:
        if isinstance(notifier, TelegramNotifier):
            await notifier.close()


def create_app(
    lifecycle: Optional[AppointmentLifecycle] = None,
    admin_check: Optional[AdminCheck] = None,
) -> web.Application:
    """
    Create aiohttp application with middleware and routes.

    Args:
        lifecycle: Appointment lifecycle (built from settings when omitted)
        admin_check: Admin capability check for bearer tokens

    Returns:
        Configured web application
    """
    app = web.Application(
        middlewares=[security_headers_middleware, error_middleware],
        client_max_size=MAX_REQUEST_BODY_SIZE,
    )
    app[LIFECYCLE_KEY] = lifecycle or build_lifecycle()
    app[ADMIN_CHECK_KEY] = admin_check or settings.is_admin_token
    app[STARTED_AT_KEY] = time.time()

    app.router.add_post("/api/appointments", create_appointment_handler)
    app.router.add_get("/api/appointments", list_appointments_handler)
    app.router.add_get("/api/appointments/{id}", get_appointment_handler)
    app.router.add_put("/api/appointments/{id}", edit_appointment_handler)
    app.router.add_delete("/api/appointments/{id}", delete_appointment_handler)
    app.router.add_patch("/api/appointments/{id}/status", set_status_handler)
    app.router.add_get("/api/timeslots", available_slots_handler)
    app.router.add_get("/api/timeslots/status", slot_status_handler)
    app.router.add_get("/api/services", services_handler)
    app.router.add_post("/api/contact", contact_handler)
    app.router.add_get("/health", health_check)

    app.on_startup.append(_start_notifications)
    app.on_cleanup.append(_stop_notifications)

    return app


def main() -> None:
    setup_logging(
        name="",
        log_level=settings.log_level,
        log_file="api.log",
        log_dir=settings.log_dir,
    )

    try:
        settings.validate_all_required()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logger.info(
        f"Starting appointment API on {settings.host}:{settings.port} "
        f"({settings.environment})"
    )
    web.run_app(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
