"""
In-memory appointment store.

Used for development and tests. The approval invariant is enforced with a
per-slot asyncio lock around the check-then-write sequence plus an index of
approved slots, so concurrent approvals for one slot have exactly one winner.
Safe for use from a single event loop.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Dict, List, Optional

from db.base import AppointmentStore
from models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    SlotKey,
)
from utils.datetime_utils import utc_now
from utils.exceptions import (
    AppointmentNotFoundError,
    SlotConflictError,
    TransientStorageError,
)

logger = logging.getLogger(__name__)


class InMemoryAppointmentStore(AppointmentStore):
    """Dictionary-backed store with per-slot mutual exclusion."""

    def __init__(self, lock_timeout_seconds: float = 5.0):
        self._records: Dict[str, Appointment] = {}
        # slot -> id of the single approved appointment in it
        self._approved: Dict[SlotKey, str] = {}
        # Locks live only while some task holds or waits for them
        self._slot_locks: Dict[SlotKey, asyncio.Lock] = {}
        self._lock_users: Dict[SlotKey, int] = {}
        self._lock_timeout = lock_timeout_seconds

    @asynccontextmanager
    async def _slot_lock(self, key: SlotKey) -> AsyncIterator[None]:
        lock = self._slot_locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self._lock_timeout)
            except asyncio.TimeoutError as e:
                logger.error(f"Timed out waiting for slot lock {key[0]} {key[1]}")
                raise TransientStorageError(
                    f"Timed out waiting for slot {key[0].isoformat()} {key[1]}"
                ) from e
            try:
                yield
            finally:
                lock.release()
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._slot_locks[key]

    def _require(self, appointment_id: str) -> Appointment:
        appointment = self._records.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    def _check_slot(self, key: SlotKey, appointment_id: Optional[str]) -> None:
        holder = self._approved.get(key)
        if holder is not None and holder != appointment_id:
            raise SlotConflictError(key[0].isoformat(), key[1])

    def _unindex(self, appointment: Appointment) -> None:
        if self._approved.get(appointment.slot_key) == appointment.id:
            del self._approved[appointment.slot_key]

    def _index(self, appointment: Appointment) -> None:
        if appointment.is_approved:
            self._approved[appointment.slot_key] = appointment.id

    async def create_appointment(self, data: AppointmentCreate) -> Appointment:
        key: SlotKey = (data.date, data.time)
        async with self._slot_lock(key):
            if data.status == AppointmentStatus.APPROVED:
                self._check_slot(key, None)

            now = utc_now()
            appointment = Appointment(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                **data.model_dump(),
            )
            self._records[appointment.id] = appointment
            self._index(appointment)

        return appointment

    async def get_appointment(self, appointment_id: str) -> Appointment:
        return self._require(appointment_id)

    async def update_appointment(
        self, appointment_id: str, patch: AppointmentUpdate
    ) -> Appointment:
        changes = patch.changes()

        while True:
            current = self._require(appointment_id)
            key: SlotKey = (
                changes.get("date", current.date),
                changes.get("time", current.time),
            )

            async with self._slot_lock(key):
                # Re-read under the lock; the record may have moved or vanished.
                current = self._require(appointment_id)
                updated = current.model_copy(
                    update={**changes, "updated_at": utc_now()}
                )
                if updated.slot_key != key:
                    # Moved by a concurrent edit while we waited; lock the new slot.
                    continue
                if updated.is_approved:
                    self._check_slot(key, appointment_id)

                self._unindex(current)
                self._records[appointment_id] = updated
                self._index(updated)
                return updated

    async def delete_appointment(self, appointment_id: str) -> None:
        appointment = self._records.pop(appointment_id, None)
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id)
        self._unindex(appointment)

    async def list_appointments(
        self, status: Optional[AppointmentStatus] = None
    ) -> List[Appointment]:
        appointments = [
            appointment
            for appointment in self._records.values()
            if status is None or appointment.status == status
        ]
        return sorted(appointments, key=lambda a: a.slot_key)

    async def get_appointments_for_date(
        self, day: date, status: Optional[AppointmentStatus] = None
    ) -> List[Appointment]:
        return [
            appointment
            for appointment in await self.list_appointments(status)
            if appointment.date == day
        ]
