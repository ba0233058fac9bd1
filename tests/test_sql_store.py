"""Tests for the SQLAlchemy break store."""

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from breakplanner.domain.models import Assignment, SchedulingScope, ShiftType, SlotDefinition
from breakplanner.errors import DuplicateSlotError, StoreError
from breakplanner.scheduling.committer import ReconciliationCommitter
from breakplanner.scheduling.ledger import DraftLedger
from breakplanner.storage.memory import InMemoryStagingStore
from breakplanner.storage.sql import ScheduledBreak, SqlBreakStore

SATURDAY = date(2024, 6, 1)


def memory_engine():
    return create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def assignment(user_id, start="21:00", location="Rugby"):
    return Assignment(
        id="temp-1",
        slot_id="std-night-1",
        user_id=user_id,
        user_name=user_id,
        shift_type=ShiftType.NIGHT,
        date=SATURDAY,
        location=location,
        start_time=start,
        duration_minutes=60,
        break_code="night",
    )


class TestSqlBreakStore:
    """Tests for SqlBreakStore against in-memory SQLite."""

    @pytest.fixture
    def store(self):
        store = SqlBreakStore(memory_engine())
        store.create_all()
        store.add_staff_profile("u1", "Alice", "Brown", "Rugby", "Night")
        store.add_staff_profile("u2", "Bob", "Clark", "Rugby", "night")
        store.add_staff_profile("u3", "Carol", "Davies", "Daventry", "Day")
        store.add_staff_profile("u4", "Dan", "Evans", "Rugby", "Night")
        store.set_availability("u1", SATURDAY, "Available")
        store.set_availability("u2", SATURDAY, "AVAILABLE")
        store.set_availability("u3", SATURDAY, "Available")
        store.set_availability("u4", SATURDAY, "Holiday")
        return store

    @pytest.fixture
    def scope(self):
        return SchedulingScope(SATURDAY, ShiftType.NIGHT, "Rugby")

    def test_roster_filters_status_and_shift(self, store):
        """Only available staff whose preference matches the shift."""
        roster = store.fetch_staff_roster(SATURDAY, ShiftType.NIGHT)
        assert [s.user_id for s in roster] == ["u1", "u2"]
        assert roster[0].name == "Alice Brown"
        assert roster[0].location == "Rugby"

    def test_roster_other_day_empty(self, store):
        """Availability is per date."""
        assert store.fetch_staff_roster(date(2024, 6, 2), ShiftType.NIGHT) == []

    def test_availability_replaced(self, store):
        """Setting availability again replaces the old status."""
        store.set_availability("u4", SATURDAY, "available")
        assert "u4" in {s.user_id for s in store.fetch_staff_roster(SATURDAY, ShiftType.NIGHT)}

    def test_assignment_round_trip(self, store, scope):
        """Inserted assignments come back with names and no slot id."""
        inserted = store.insert_assignments([assignment("u1")])
        assert inserted[0].id.isdigit()

        fetched = store.fetch_persisted_assignments(scope)
        assert len(fetched) == 1
        assert fetched[0].slot_id is None
        assert fetched[0].user_name == "Alice Brown"
        assert fetched[0].start_time == "21:00"
        assert fetched[0].break_code == "night"

    def test_delete_assignments_scoped_to_location(self, store, scope):
        """Deleting Rugby leaves Daventry."""
        store.insert_assignments([assignment("u1"), assignment("u3", location="Daventry")])
        assert store.delete_assignments(scope) == 1
        daventry = SchedulingScope(SATURDAY, ShiftType.NIGHT, "Daventry")
        assert [a.user_id for a in store.fetch_persisted_assignments(daventry)] == ["u3"]

    def test_all_locations_reads_everything(self, store):
        """The "all" scope reads every location."""
        store.insert_assignments([assignment("u1"), assignment("u3", location="Daventry")])
        everywhere = SchedulingScope(SATURDAY, ShiftType.NIGHT, "all")
        assert len(store.fetch_persisted_assignments(everywhere)) == 2

    def test_custom_slot_lifecycle(self, store, scope):
        """Custom slots can be inserted, updated and deleted."""
        inserted = store.insert_custom_slots(
            scope, [SlotDefinition("new-1", "03:00", 30, capacity=3)]
        )
        slot_id = inserted[0].id
        assert slot_id.isdigit()
        assert inserted[0].location == "Rugby"

        store.update_custom_slots(scope, [inserted[0].with_changes(start_time="04:00")])
        fetched = store.fetch_persisted_custom_slots(scope)
        assert [(s.id, s.start_time, s.capacity) for s in fetched] == [(slot_id, "04:00", 3)]

        assert store.delete_custom_slot(slot_id)
        assert not store.delete_custom_slot(slot_id)
        assert store.fetch_persisted_custom_slots(scope) == []

    def test_stored_times_with_seconds_normalised(self, store, scope):
        """Rows written as HH:MM:SS read back as HH:MM and block a duplicate start."""
        with Session(store.engine) as session:
            session.add_all(
                [
                    ScheduledBreak(
                        date=SATURDAY,
                        shift_type="night",
                        location="Rugby",
                        break_start_time="03:00:00",
                        break_duration_minutes=30,
                        break_type="custom",
                        capacity=2,
                    ),
                    ScheduledBreak(
                        user_id="u1",
                        date=SATURDAY,
                        shift_type="night",
                        location="Rugby",
                        break_start_time="21:00:00",
                        break_duration_minutes=60,
                        break_type="night",
                    ),
                ]
            )
            session.commit()

        assert [s.start_time for s in store.fetch_persisted_custom_slots(scope)] == ["03:00"]
        ledger = DraftLedger.load(scope, store, InMemoryStagingStore())
        assert [a.slot_id for a in ledger.assignments] == ["std-night-1"]
        with pytest.raises(DuplicateSlotError):
            ledger.add_custom_slot("03:00", 30)

    def test_delete_template_id_is_noop(self, store):
        """Template ids are never rows."""
        assert not store.delete_custom_slot("std-night-0")

    def test_custom_slots_not_mixed_with_assignments(self, store, scope):
        """Assignments are not returned as custom slots."""
        store.insert_assignments([assignment("u1")])
        assert store.fetch_persisted_custom_slots(scope) == []

    def test_overrides_upserted(self, store, scope):
        """Capacity overrides are created then replaced."""
        store.upsert_slot_overrides(scope, {"std-night-1": 4})
        store.upsert_slot_overrides(scope, {"std-night-1": 5, "std-night-2": 1})
        assert store.fetch_persisted_slot_overrides(scope) == {"std-night-1": 5, "std-night-2": 1}
        assert store.fetch_persisted_custom_slots(scope) == []

    def test_errors_wrapped(self):
        """Database errors surface as StoreError."""
        store = SqlBreakStore(memory_engine())
        with pytest.raises(StoreError):
            store.fetch_staff_roster(SATURDAY, ShiftType.NIGHT)

    def test_commit_through_sql(self, store, scope):
        """A ledger saves to and reloads from SQL."""
        staging = InMemoryStagingStore()
        ledger = DraftLedger.load(scope, store, staging)
        roster = store.fetch_staff_roster(SATURDAY, ShiftType.NIGHT)
        ledger.assign(roster[0], "std-night-0")
        slot = ledger.add_custom_slot("03:00", 30)
        ledger.assign(roster[1], slot.id)

        result = ReconciliationCommitter(store).commit(ledger)
        assert result.success

        reloaded = DraftLedger.load(scope, store, staging)
        assert sorted(a.slot_id for a in reloaded.assignments) == sorted(
            ["std-night-0", result.inserted_slots[0].id]
        )
