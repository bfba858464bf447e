"""Appointment store backends."""

from typing import Optional

from config import settings

from .base import AppointmentStore
from .memory_store import InMemoryAppointmentStore

__all__ = ["AppointmentStore", "InMemoryAppointmentStore", "get_db_client"]

# Global store instance
_db_client: Optional[AppointmentStore] = None


def get_db_client() -> AppointmentStore:
    """Get or create the appointment store selected by ``settings.storage_backend``."""
    global _db_client
    if _db_client is None:
        if settings.storage_backend == "supabase":
            from .supabase_client import SupabaseAppointmentStore

            _db_client = SupabaseAppointmentStore()
        else:
            _db_client = InMemoryAppointmentStore(
                lock_timeout_seconds=settings.store_timeout_seconds
            )
    return _db_client
