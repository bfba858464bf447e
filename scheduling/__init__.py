"""Slot calendar and appointment lifecycle."""

from .lifecycle import AppointmentLifecycle
from .slots import SlotCalendar

__all__ = ["AppointmentLifecycle", "SlotCalendar"]
