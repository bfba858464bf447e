"""
Appointment store interface.

A store owns appointment records and enforces one invariant at write time:
at most one approved appointment per (date, time). The check and the write
happen as one atomic step.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
)


class AppointmentStore(ABC):
    """Keyed appointment storage with the one-approved-per-slot constraint."""

    @abstractmethod
    async def create_appointment(self, data: AppointmentCreate) -> Appointment:
        """
        Persist a new appointment with a fresh id and timestamps.

        Raises:
            SlotConflictError: If data is approved and the slot already holds an approved record
            TransientStorageError: If the store times out
        """

    @abstractmethod
    async def get_appointment(self, appointment_id: str) -> Appointment:
        """
        Raises:
            AppointmentNotFoundError: If no appointment has this id
        """

    @abstractmethod
    async def update_appointment(
        self, appointment_id: str, patch: AppointmentUpdate
    ) -> Appointment:
        """
        Apply the supplied fields of a patch; absent fields keep their value.

        The whole update is rejected, with nothing applied, when the resulting
        record is approved and a different record is already approved at the
        resulting slot.

        Raises:
            AppointmentNotFoundError: If no appointment has this id
            SlotConflictError: If the approval invariant would be violated
        """

    @abstractmethod
    async def delete_appointment(self, appointment_id: str) -> None:
        """
        Remove an appointment permanently.

        Raises:
            AppointmentNotFoundError: If no appointment has this id
        """

    @abstractmethod
    async def list_appointments(
        self, status: Optional[AppointmentStatus] = None
    ) -> List[Appointment]:
        """All appointments (optionally of one status) ordered by date, then time."""

    @abstractmethod
    async def get_appointments_for_date(
        self, day: date, status: Optional[AppointmentStatus] = None
    ) -> List[Appointment]:
        """Appointments on one date (optionally of one status) ordered by time."""
