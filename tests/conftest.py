"""
Pytest configuration and shared fixtures.
"""

from unittest.mock import MagicMock

import pytest

from db.memory_store import InMemoryAppointmentStore
from models.slot import SlotCalendarConfig
from notifications.dispatcher import NotificationDispatcher
from scheduling.lifecycle import AppointmentLifecycle
from scheduling.slots import SlotCalendar

ADMIN_TOKEN = "admin-test-token"


@pytest.fixture
def calendar():
    """Slot calendar with the default 09:00-17:00, 30 minute grid."""
    return SlotCalendar(SlotCalendarConfig(open_hour=9, close_hour=17, interval_minutes=30))


@pytest.fixture
def store():
    """Fresh in-memory appointment store."""
    return InMemoryAppointmentStore(lock_timeout_seconds=1.0)


@pytest.fixture
def mock_dispatcher():
    """Dispatcher double that records enqueued notifications."""
    dispatcher = MagicMock(spec=NotificationDispatcher)
    dispatcher.pending = 0
    dispatcher.admin_routes = []
    return dispatcher


@pytest.fixture
def lifecycle(store, calendar, mock_dispatcher):
    """Lifecycle over the in-memory store with a recording dispatcher."""
    return AppointmentLifecycle(store=store, calendar=calendar, dispatcher=mock_dispatcher)


@pytest.fixture
def appointment_request():
    """Valid public submission payload."""
    return {
        "name": "Jane",
        "email": "jane@example.com",
        "phone": "+420123456789",
        "date": "2024-06-01",
        "time": "09:00",
        "service_type": "Haircut",
    }


@pytest.fixture
def mock_supabase_client():
    """Create a mock Supabase client."""
    mock_client = MagicMock()
    mock_table = MagicMock()
    mock_client.table.return_value = mock_table
    return mock_client, mock_table


@pytest.fixture
def enqueued_kinds(mock_dispatcher):
    """Callable returning the notification kinds enqueued so far, in order."""

    def kinds():
        return [call.args[0].value for call in mock_dispatcher.enqueue.call_args_list]

    return kinds
