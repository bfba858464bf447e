"""Pydantic models for data validation and serialization."""

from .appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentRequest,
    AppointmentStatus,
    AppointmentUpdate,
    SlotKey,
    validate_payload,
)
from .contact import ContactMessage
from .service import Service, ServiceType, get_all_services
from .slot import SlotAvailability, SlotCalendarConfig, SlotStatus, SlotStatusMap

__all__ = [
    "Appointment",
    "AppointmentCreate",
    "AppointmentRequest",
    "AppointmentStatus",
    "AppointmentUpdate",
    "SlotKey",
    "validate_payload",
    "ContactMessage",
    "Service",
    "ServiceType",
    "get_all_services",
    "SlotAvailability",
    "SlotCalendarConfig",
    "SlotStatus",
    "SlotStatusMap",
]
