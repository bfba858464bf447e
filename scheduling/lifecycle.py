"""
Appointment lifecycle.

States are ``pending``, ``approved`` and ``cancelled``. Every write goes
through the store, which enforces the one-approved-per-slot rule atomically.
Notifications are enqueued only after the write has committed, so a slow or
failing notification channel can never undo or delay the result.

Which notification fires:

* create as pending: admin "new request" and customer "request received"
* create as approved: customer "confirmed"
* full edit: "confirmed" when the status moves into approved from anything
  else, otherwise "updated"
* status change: approved sends "confirmed", cancelled sends "cancelled",
  pending is silent
* delete: customer "cancelled", built from the snapshot taken before removal
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from db.base import AppointmentStore
from models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentRequest,
    AppointmentStatus,
    AppointmentUpdate,
    validate_payload,
)
from models.slot import SlotAvailability, SlotStatusMap
from notifications.base import NotificationKind
from notifications.dispatcher import NotificationDispatcher
from scheduling.slots import DateInput, SlotCalendar
from utils.datetime_utils import parse_calendar_date
from utils.exceptions import SlotConflictError, ValidationError

logger = logging.getLogger(__name__)

Payload = Union[Mapping[str, Any], None]


def _parse_status(value: Union[str, AppointmentStatus, None]) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid status value: {value!r} "
            f"(expected one of: {', '.join(s.value for s in AppointmentStatus)})"
        ) from e


class AppointmentLifecycle:
    """Transition rules for appointments plus the slot queries built on them."""

    def __init__(
        self,
        store: AppointmentStore,
        calendar: SlotCalendar,
        dispatcher: NotificationDispatcher,
    ):
        self.store = store
        self.calendar = calendar
        self.dispatcher = dispatcher

    # ========== Creation ==========

    async def submit_appointment(
        self, data: Union[AppointmentRequest, Payload]
    ) -> Appointment:
        """
        Public submission. Always stored as pending.

        Raises:
            ValidationError: Missing or malformed field, or a time off the slot grid
            SlotConflictError: The slot already holds an approved appointment
        """
        request = validate_payload(AppointmentRequest, data)

        if not self.calendar.is_slot(request.time):
            raise ValidationError(f"{request.time} is not an available time slot")

        approved = await self.store.get_appointments_for_date(
            request.date, AppointmentStatus.APPROVED
        )
        if any(appointment.time == request.time for appointment in approved):
            logger.warning(
                f"Rejected submission for booked slot {request.date} {request.time}"
            )
            raise SlotConflictError(request.date.isoformat(), request.time)

        candidate = AppointmentCreate.model_validate(
            {**request.model_dump(), "status": AppointmentStatus.PENDING}
        )
        return await self._create(candidate)

    async def create_appointment(
        self, data: Union[AppointmentCreate, Payload]
    ) -> Appointment:
        """
        Administrative creation; the initial status may be set explicitly.

        Raises:
            ValidationError: Missing or malformed field
            SlotConflictError: Approved at creation and the slot is already approved
        """
        candidate = validate_payload(AppointmentCreate, data)
        if not self.calendar.is_slot(candidate.time):
            logger.warning(
                f"Admin created appointment at off-grid time {candidate.date} {candidate.time}"
            )
        return await self._create(candidate)

    async def _create(self, candidate: AppointmentCreate) -> Appointment:
        appointment = await self.store.create_appointment(candidate)
        logger.info(
            f"Appointment {appointment.id} created as {appointment.status.value} "
            f"for {appointment.date} {appointment.time}"
        )

        if appointment.status == AppointmentStatus.PENDING:
            self.dispatcher.enqueue(NotificationKind.ADMIN_NOTIFIED, appointment)
            self.dispatcher.enqueue(NotificationKind.CREATED, appointment)
        elif appointment.status == AppointmentStatus.APPROVED:
            self.dispatcher.enqueue(NotificationKind.CONFIRMED, appointment)

        return appointment

    # ========== Queries ==========

    async def list_appointments(
        self, status: Union[str, AppointmentStatus, None] = None
    ) -> List[Appointment]:
        """All appointments ordered by date and time, optionally of one status."""
        status_filter: Optional[AppointmentStatus] = None
        if status:
            status_filter = _parse_status(status)
        return await self.store.list_appointments(status_filter)

    async def get_appointment(self, appointment_id: str) -> Appointment:
        return await self.store.get_appointment(appointment_id)

    async def get_available_slots(self, day: DateInput) -> SlotAvailability:
        """Free slots of a day; only approved appointments occupy a slot."""
        target = parse_calendar_date(day)
        approved = await self.store.get_appointments_for_date(
            target, AppointmentStatus.APPROVED
        )
        total = len(self.calendar.enumerate_slots(target))
        free = self.calendar.available_slots(
            target, [appointment.time for appointment in approved]
        )
        return SlotAvailability(
            date=target,
            slots=free,
            total_count=total,
            booked_count=total - len(free),
            available_count=len(free),
        )

    async def get_slot_status_map(self, day: DateInput) -> SlotStatusMap:
        """Every slot of a day mapped to ``available`` or an appointment status."""
        target = parse_calendar_date(day)
        appointments = await self.store.get_appointments_for_date(target)
        return SlotStatusMap(
            date=target,
            time_slots=self.calendar.slots_with_status(target, appointments),
        )

    # ========== Transitions ==========

    async def edit_appointment(
        self, appointment_id: str, data: Union[AppointmentUpdate, Payload]
    ) -> Appointment:
        """
        Full admin edit with partial-update semantics.

        A patch that changes nothing writes nothing and sends nothing.

        Raises:
            ValidationError: Malformed field
            AppointmentNotFoundError: Unknown id
            SlotConflictError: The result would be a second approval in one slot
        """
        patch = validate_payload(AppointmentUpdate, data)
        current = await self.store.get_appointment(appointment_id)

        changes = {
            field: value
            for field, value in patch.changes().items()
            if getattr(current, field) != value
        }
        if not changes:
            return current

        if "time" in changes and not self.calendar.is_slot(changes["time"]):
            logger.warning(
                f"Appointment {appointment_id} moved to off-grid time {changes['time']}"
            )

        updated = await self.store.update_appointment(
            appointment_id, AppointmentUpdate.model_validate(changes)
        )
        logger.info(
            f"Appointment {appointment_id} edited ({', '.join(sorted(changes))})"
        )

        if current.status != AppointmentStatus.APPROVED and updated.is_approved:
            self.dispatcher.enqueue(NotificationKind.CONFIRMED, updated)
        else:
            self.dispatcher.enqueue(NotificationKind.UPDATED, updated)

        return updated

    async def set_status(
        self, appointment_id: str, status: Union[str, AppointmentStatus, None]
    ) -> Appointment:
        """
        Status-only transition.

        Setting the status an appointment already has is a no-op.

        Raises:
            ValidationError: Status outside pending/approved/cancelled
            AppointmentNotFoundError: Unknown id
            SlotConflictError: Another appointment is already approved in the slot
        """
        target = _parse_status(status)
        current = await self.store.get_appointment(appointment_id)
        if current.status == target:
            return current

        updated = await self.store.update_appointment(
            appointment_id, AppointmentUpdate(status=target)
        )
        logger.info(
            f"Appointment {appointment_id} status {current.status.value} -> {target.value}"
        )

        if target == AppointmentStatus.APPROVED:
            self.dispatcher.enqueue(NotificationKind.CONFIRMED, updated)
        elif target == AppointmentStatus.CANCELLED:
            self.dispatcher.enqueue(NotificationKind.CANCELLED, updated)

        return updated

    async def delete_appointment(self, appointment_id: str) -> None:
        """
        Hard delete. The customer is told the appointment is cancelled.

        Raises:
            AppointmentNotFoundError: Unknown id
        """
        snapshot = await self.store.get_appointment(appointment_id)
        await self.store.delete_appointment(appointment_id)
        logger.info(f"Appointment {appointment_id} deleted")

        self.dispatcher.enqueue(NotificationKind.CANCELLED, snapshot)
