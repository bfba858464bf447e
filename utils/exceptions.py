"""
Custom exception classes for better error handling.
Each failure kind of the appointment core gets its own type so callers can
tell "pick another time" apart from "fix this field".
"""


class AppointmentError(Exception):
    """Base exception for appointment operations."""

    pass


class ValidationError(AppointmentError):
    """Raised when input validation fails (missing or malformed field)."""

    pass


class DatabaseError(AppointmentError):
    """Base exception for appointment store operations."""

    pass


class AppointmentNotFoundError(DatabaseError):
    """Raised when an appointment is not found."""

    def __init__(self, appointment_id: str):
        super().__init__(f"Appointment not found: {appointment_id}")
        self.appointment_id = appointment_id


class SlotConflictError(DatabaseError):
    """Raised when an approval would put two approved appointments in one slot."""

    def __init__(self, date: str, time: str):
        super().__init__(f"This time slot is already booked: {date} {time}")
        self.date = date
        self.time = time


class TransientStorageError(DatabaseError):
    """Raised when the backing store times out or is unavailable."""

    pass


class NotificationFailure(Exception):
    """Raised by notifiers when delivery fails. Never reaches API callers."""

    pass
