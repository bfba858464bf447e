"""
Slot calendar: the daily grid of bookable times.

Pure functions of the business-hours configuration and a day's appointments.
Nothing here touches storage.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional, Union

from models.appointment import Appointment, AppointmentStatus
from models.slot import SlotCalendarConfig, SlotStatus
from utils.datetime_utils import format_time_of_day, parse_calendar_date

# Higher wins when several appointments share one slot.
_STATUS_PRECEDENCE = {
    AppointmentStatus.CANCELLED: 0,
    AppointmentStatus.PENDING: 1,
    AppointmentStatus.APPROVED: 2,
}

DateInput = Union[str, date, None]


class SlotCalendar:
    """Enumerates slots for a day and reports which are free."""

    def __init__(self, config: Optional[SlotCalendarConfig] = None):
        self.config = config or SlotCalendarConfig()
        self._slots = self._build_slots(self.config)

    @staticmethod
    def _build_slots(config: SlotCalendarConfig) -> List[str]:
        start = config.open_hour * 60
        end = config.close_hour * 60
        return [
            format_time_of_day(minute)
            for minute in range(start, end, config.interval_minutes)
        ]

    def enumerate_slots(self, day: DateInput) -> List[str]:
        """
        All candidate slots of a day in chronological order.

        The grid depends on configuration only, so every day gets the same list.

        Raises:
            ValidationError: If the date is missing or unparseable
        """
        parse_calendar_date(day)
        return list(self._slots)

    def is_slot(self, time: str) -> bool:
        """Check whether a time lies on the slot grid."""
        return time in self._slots

    def available_slots(self, day: DateInput, approved_times: Iterable[str]) -> List[str]:
        """
        Slots of a day that hold no approved appointment.

        Args:
            day: Calendar date
            approved_times: Times of approved appointments on that date

        Returns:
            Free slots in chronological order
        """
        taken = set(approved_times)
        return [slot for slot in self.enumerate_slots(day) if slot not in taken]

    def slots_with_status(
        self, day: DateInput, appointments: Iterable[Appointment]
    ) -> Dict[str, str]:
        """
        Map every slot of a day to ``available`` or the status of the appointment in it.

        Appointments of any status count. When several share a slot, the
        status with the highest precedence wins (approved, then pending, then
        cancelled). Off-grid appointment times are left out.
        """
        target = parse_calendar_date(day)
        statuses: Dict[str, str] = {
            slot: SlotStatus.AVAILABLE.value for slot in self.enumerate_slots(target)
        }
        winners: Dict[str, AppointmentStatus] = {}

        for appointment in appointments:
            if appointment.date != target or appointment.time not in statuses:
                continue
            status = AppointmentStatus(appointment.status)
            current = winners.get(appointment.time)
            if current is None or _STATUS_PRECEDENCE[status] > _STATUS_PRECEDENCE[current]:
                winners[appointment.time] = status

        for time, status in winners.items():
            statuses[time] = status.value
        return statuses
