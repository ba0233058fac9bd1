"""In-memory store and notifier implementations.

Used by the demo command and the test suite. Records are copied on the way
in and out so callers cannot mutate stored state by accident.
"""

import itertools
import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from breakplanner.domain.models import (
    Assignment,
    SchedulingScope,
    ScopeKey,
    ShiftType,
    SlotDefinition,
    SlotOrigin,
    StaffMember,
)
from breakplanner.storage.interfaces import BreakStore, NotificationKind, Notifier, StagingStore
from breakplanner.storage.json_staging import dump_snapshot, parse_snapshot


def _in_scope(scope: SchedulingScope, record_date: date, shift_type: ShiftType, location: Optional[str]) -> bool:
    return (
        record_date == scope.date
        and shift_type == scope.shift_type
        and scope.matches_location(location)
    )


class InMemoryBreakStore(BreakStore):
    """A BreakStore keeping everything in dictionaries."""

    def __init__(self):
        self._ids = itertools.count(1)
        self._roster: list[tuple[date, ShiftType, StaffMember]] = []
        self._assignments: dict[str, Assignment] = {}
        self._custom_slots: dict[str, tuple[date, ShiftType, SlotDefinition]] = {}
        self._overrides: dict[tuple[date, ShiftType, Optional[str]], dict[str, int]] = {}

    def _next_id(self) -> str:
        return str(next(self._ids))

    # Seeding helpers -----------------------------------------------------

    def add_staff(self, schedule_date: date, shift_type: ShiftType, staff: StaffMember) -> None:
        self._roster.append((schedule_date, shift_type, replace(staff)))

    def seed_custom_slot(self, scope: SchedulingScope, slot: SlotDefinition) -> SlotDefinition:
        return self.insert_custom_slots(scope, [slot])[0]

    # BreakStore ------------------------------------------------------------

    def fetch_staff_roster(self, schedule_date: date, shift_type: ShiftType) -> list[StaffMember]:
        return [
            replace(staff)
            for d, s, staff in self._roster
            if d == schedule_date and s == shift_type
        ]

    def fetch_persisted_slot_overrides(self, scope: SchedulingScope) -> dict[str, int]:
        merged: dict[str, int] = {}
        for (d, s, location), overrides in self._overrides.items():
            if _in_scope(scope, d, s, location):
                merged.update(overrides)
        return merged

    def fetch_persisted_custom_slots(self, scope: SchedulingScope) -> list[SlotDefinition]:
        return [
            replace(slot)
            for d, s, slot in self._custom_slots.values()
            if _in_scope(scope, d, s, slot.location)
        ]

    def fetch_persisted_assignments(self, scope: SchedulingScope) -> list[Assignment]:
        return [
            replace(a, slot_id=None)
            for a in self._assignments.values()
            if _in_scope(scope, a.date, a.shift_type, a.location)
        ]

    def delete_assignments(self, scope: SchedulingScope) -> int:
        doomed = [
            key for key, a in self._assignments.items()
            if _in_scope(scope, a.date, a.shift_type, a.location)
        ]
        for key in doomed:
            del self._assignments[key]
        return len(doomed)

    def insert_assignments(self, assignments: list[Assignment]) -> list[Assignment]:
        stored = []
        for assignment in assignments:
            row = replace(assignment, id=self._next_id())
            self._assignments[row.id] = row
            stored.append(replace(row))
        return stored

    def insert_custom_slots(
        self, scope: SchedulingScope, slots: list[SlotDefinition]
    ) -> list[SlotDefinition]:
        stored = []
        for slot in slots:
            row = slot.with_changes(
                id=self._next_id(),
                origin=SlotOrigin.PERSISTED_CUSTOM,
                location=slot.location or scope.location,
            )
            self._custom_slots[row.id] = (scope.date, scope.shift_type, row)
            stored.append(replace(row))
        return stored

    def update_custom_slots(self, scope: SchedulingScope, slots: list[SlotDefinition]) -> None:
        for slot in slots:
            if slot.id in self._custom_slots:
                d, s, _ = self._custom_slots[slot.id]
                self._custom_slots[slot.id] = (
                    d, s, slot.with_changes(origin=SlotOrigin.PERSISTED_CUSTOM)
                )

    def delete_custom_slot(self, slot_id: str) -> bool:
        return self._custom_slots.pop(slot_id, None) is not None

    def upsert_slot_overrides(self, scope: SchedulingScope, overrides: dict[str, int]) -> None:
        key = (scope.date, scope.shift_type, scope.location)
        self._overrides.setdefault(key, {}).update(overrides)


class InMemoryStagingStore(StagingStore):
    """Snapshots kept as JSON strings, like browser session storage."""

    def __init__(self):
        self.snapshots: dict[str, str] = {}

    def persist_staging_snapshot(self, key: ScopeKey, assignments: list[Assignment]) -> None:
        self.snapshots[key.value] = dump_snapshot(assignments)

    def load_staging_snapshot(self, key: ScopeKey) -> Optional[list[Assignment]]:
        text = self.snapshots.get(key.value)
        if text is None:
            return None
        return parse_snapshot(text)

    def clear_staging_snapshot(self, key: ScopeKey) -> None:
        self.snapshots.pop(key.value, None)


class CollectingNotifier(Notifier):
    """Keeps every notification; used by tests and the demo."""

    def __init__(self):
        self.messages: list[tuple[NotificationKind, str]] = []

    def notify(self, kind: NotificationKind, message: str) -> None:
        self.messages.append((kind, message))

    def of_kind(self, kind: NotificationKind) -> list[str]:
        return [message for k, message in self.messages if k == kind]

    @property
    def last(self) -> Optional[tuple[NotificationKind, str]]:
        return self.messages[-1] if self.messages else None


class LoggingNotifier(Notifier):
    """Sends notifications to a logger."""

    LEVELS = {
        NotificationKind.SUCCESS: logging.INFO,
        NotificationKind.INFO: logging.INFO,
        NotificationKind.WARNING: logging.WARNING,
        NotificationKind.ERROR: logging.ERROR,
    }

    def __init__(self, name: str = "breakplanner.notifications"):
        self.logger = logging.getLogger(name)

    def notify(self, kind: NotificationKind, message: str) -> None:
        self.logger.log(self.LEVELS[kind], "%s: %s", kind.value, message)
