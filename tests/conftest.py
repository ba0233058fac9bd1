"""Shared fixtures for the break planner tests."""

from datetime import date, datetime

import pytest

from breakplanner.domain.clock import FixedClock
from breakplanner.domain.models import SchedulingScope, ShiftType, StaffMember
from breakplanner.errors import StoreError
from breakplanner.storage.memory import InMemoryBreakStore, InMemoryStagingStore

SATURDAY = date(2024, 6, 1)
FRIDAY = date(2024, 5, 31)
MONDAY = date(2024, 6, 3)

WRITE_METHODS = (
    "delete_assignments",
    "insert_assignments",
    "insert_custom_slots",
    "update_custom_slots",
    "delete_custom_slot",
    "upsert_slot_overrides",
)


class RecordingStore(InMemoryBreakStore):
    """In-memory store that records writes and can be told to fail."""

    def __init__(self):
        super().__init__()
        self.calls: list[str] = []
        self.fail_on: set[str] = set()

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise StoreError(f"{name} failed")

    def delete_assignments(self, scope):
        self._record("delete_assignments")
        return super().delete_assignments(scope)

    def insert_assignments(self, assignments):
        self._record("insert_assignments")
        return super().insert_assignments(assignments)

    def insert_custom_slots(self, scope, slots):
        self._record("insert_custom_slots")
        return super().insert_custom_slots(scope, slots)

    def update_custom_slots(self, scope, slots):
        self._record("update_custom_slots")
        return super().update_custom_slots(scope, slots)

    def delete_custom_slot(self, slot_id):
        self._record("delete_custom_slot")
        return super().delete_custom_slot(slot_id)

    def upsert_slot_overrides(self, scope, overrides):
        self._record("upsert_slot_overrides")
        return super().upsert_slot_overrides(scope, overrides)


def make_staff(user_id: str, name: str, location: str = "Rugby") -> StaffMember:
    return StaffMember(user_id=user_id, name=name, location=location)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 6, 1, 18, 30))


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture
def staging():
    return InMemoryStagingStore()


@pytest.fixture
def night_scope():
    """Saturday night at Rugby."""
    return SchedulingScope(SATURDAY, ShiftType.NIGHT, "Rugby")


@pytest.fixture
def day_scope():
    return SchedulingScope(MONDAY, ShiftType.DAY, "Rugby")
