"""
Supabase appointment store.

The one-approved-per-slot invariant is enforced by Postgres itself through a
partial unique index, so each insert or update is a single atomic statement
and a concurrent second approval fails with a unique violation instead of
slipping past an application-level read.

Schema (run in the Supabase SQL editor):
----------------------------------------
CREATE TABLE IF NOT EXISTS appointments (
    id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
    name text NOT NULL,
    email text NOT NULL,
    phone text NOT NULL,
    date date NOT NULL,
    time text NOT NULL,
    service_type text NOT NULL,
    status text NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'approved', 'cancelled')),
    created_at timestamptz NOT NULL DEFAULT now(),
    updated_at timestamptz NOT NULL DEFAULT now()
);

CREATE UNIQUE INDEX IF NOT EXISTS appointments_one_approved_per_slot
ON appointments (date, time) WHERE status = 'approved';

CREATE INDEX IF NOT EXISTS appointments_date_time_status
ON appointments (date, time, status);

This client uses the service key, which bypasses RLS. Public access goes
through the HTTP API only.
"""

import asyncio
import logging
from datetime import date
from typing import Any, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client as SupabaseClientType
from supabase import create_client

from config import settings
from db.base import AppointmentStore
from models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    SlotKey,
)
from utils.constants import PG_UNIQUE_VIOLATION
from utils.datetime_utils import to_iso_string, utc_now
from utils.exceptions import (
    AppointmentNotFoundError,
    DatabaseError,
    SlotConflictError,
    TransientStorageError,
)
from utils.validation import validate_uuid

logger = logging.getLogger(__name__)

TABLE = "appointments"


class SupabaseAppointmentStore(AppointmentStore):
    """
    Supabase database client wrapper for appointments.

    Every query runs in a worker thread bounded by ``timeout_seconds``; a
    timeout surfaces as TransientStorageError. A write that timed out may
    still have committed, so callers re-read before retrying a write.
    """

    def __init__(
        self,
        client: Optional[SupabaseClientType] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.client: SupabaseClientType = client or create_client(
            settings.supabase_url, settings.supabase_key
        )
        self._timeout = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.store_timeout_seconds
        )

    async def _execute(self, query: Any, action: str, slot: Optional[SlotKey] = None):
        """Run a query with a bounded timeout and translate backend errors."""
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(query.execute), timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Timed out trying to {action} after {self._timeout}s")
            raise TransientStorageError(f"Timed out trying to {action}") from e
        except APIError as e:
            if e.code == PG_UNIQUE_VIOLATION and slot is not None:
                raise SlotConflictError(slot[0].isoformat(), slot[1]) from e
            raise DatabaseError(f"Failed to {action}: {e.message}") from e
        except httpx.TransportError as e:
            logger.error(f"Storage unavailable trying to {action}: {e}")
            raise TransientStorageError(f"Storage unavailable: {e}") from e

    # ========== Appointment Operations ==========

    async def create_appointment(self, data: AppointmentCreate) -> Appointment:
        """Insert a new appointment; the partial unique index guards approvals."""
        now = to_iso_string(utc_now())
        row = data.model_dump(mode="json")
        row["created_at"] = now
        row["updated_at"] = now

        response = await self._execute(
            self.client.table(TABLE).insert(row),
            "create appointment",
            slot=(data.date, data.time),
        )

        if not response.data:
            raise DatabaseError("Failed to create appointment: no data returned")

        return Appointment.model_validate(response.data[0])

    async def get_appointment(self, appointment_id: str) -> Appointment:
        """Get appointment by ID."""
        if not validate_uuid(appointment_id):
            raise AppointmentNotFoundError(appointment_id)

        response = await self._execute(
            self.client.table(TABLE).select("*").eq("id", appointment_id),
            "get appointment",
        )

        if not response.data:
            raise AppointmentNotFoundError(appointment_id)

        return Appointment.model_validate(response.data[0])

    async def update_appointment(
        self, appointment_id: str, patch: AppointmentUpdate
    ) -> Appointment:
        """Apply a partial update in one UPDATE statement."""
        current = await self.get_appointment(appointment_id)

        changes = patch.model_dump(mode="json", exclude_none=True)
        if not changes:
            return current

        changes["updated_at"] = to_iso_string(utc_now())
        slot: SlotKey = (patch.date or current.date, patch.time or current.time)

        response = await self._execute(
            self.client.table(TABLE).update(changes).eq("id", appointment_id),
            "update appointment",
            slot=slot,
        )

        if not response.data:
            # Deleted between the read and the update
            raise AppointmentNotFoundError(appointment_id)

        return Appointment.model_validate(response.data[0])

    async def delete_appointment(self, appointment_id: str) -> None:
        """Delete an appointment permanently."""
        if not validate_uuid(appointment_id):
            raise AppointmentNotFoundError(appointment_id)

        response = await self._execute(
            self.client.table(TABLE).delete().eq("id", appointment_id),
            "delete appointment",
        )

        if not response.data:
            raise AppointmentNotFoundError(appointment_id)

    async def list_appointments(
        self, status: Optional[AppointmentStatus] = None
    ) -> List[Appointment]:
        """
        Get all appointments (admin operation).

        Args:
            status: Filter by appointment status

        Returns:
            Appointments ordered by date, then time
        """
        query = self.client.table(TABLE).select("*")
        if status:
            query = query.eq("status", AppointmentStatus(status).value)
        query = query.order("date", desc=False).order("time", desc=False)

        response = await self._execute(query, "list appointments")
        return [Appointment.model_validate(item) for item in response.data]

    async def get_appointments_for_date(
        self, day: date, status: Optional[AppointmentStatus] = None
    ) -> List[Appointment]:
        """Get the appointments of one day ordered by time."""
        query = self.client.table(TABLE).select("*").eq("date", day.isoformat())
        if status:
            query = query.eq("status", AppointmentStatus(status).value)
        query = query.order("time", desc=False)

        response = await self._execute(query, "get appointments for date")
        return [Appointment.model_validate(item) for item in response.data]
