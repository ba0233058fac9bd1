"""Capabilities the engine consumes from its environment.

The engine never talks to a database, browser storage or UI directly; it
calls these interfaces. Implementations live in the sibling modules.
"""

from abc import ABC, abstractmethod
from datetime import date
from enum import Enum
from typing import Optional

from breakplanner.domain.models import (
    Assignment,
    SchedulingScope,
    ScopeKey,
    ShiftType,
    SlotDefinition,
    StaffMember,
)


class BreakStore(ABC):
    """Authoritative store of break plans.

    Every method raises StoreError when the backend fails.
    """

    @abstractmethod
    def fetch_staff_roster(self, schedule_date: date, shift_type: ShiftType) -> list[StaffMember]:
        """Staff working the given date and shift."""
        pass

    @abstractmethod
    def fetch_persisted_slot_overrides(self, scope: SchedulingScope) -> dict[str, int]:
        """Template slot id -> capacity overrides for the scope."""
        pass

    @abstractmethod
    def fetch_persisted_custom_slots(self, scope: SchedulingScope) -> list[SlotDefinition]:
        pass

    @abstractmethod
    def fetch_persisted_assignments(self, scope: SchedulingScope) -> list[Assignment]:
        """Stored assignments of the scope.

        Returned assignments carry the stored slot snapshot; ``slot_id`` may
        be None and is resolved against the catalog by the caller.
        """
        pass

    @abstractmethod
    def delete_assignments(self, scope: SchedulingScope) -> int:
        """Delete every stored assignment of the scope; returns the count."""
        pass

    @abstractmethod
    def insert_assignments(self, assignments: list[Assignment]) -> list[Assignment]:
        """Insert assignments as new rows; returns them with store ids."""
        pass

    @abstractmethod
    def insert_custom_slots(
        self, scope: SchedulingScope, slots: list[SlotDefinition]
    ) -> list[SlotDefinition]:
        """Insert new custom slots; returns them with store ids."""
        pass

    @abstractmethod
    def update_custom_slots(self, scope: SchedulingScope, slots: list[SlotDefinition]) -> None:
        pass

    @abstractmethod
    def delete_custom_slot(self, slot_id: str) -> bool:
        """Delete one custom slot definition; False if it did not exist."""
        pass

    @abstractmethod
    def upsert_slot_overrides(self, scope: SchedulingScope, overrides: dict[str, int]) -> None:
        pass


class StagingStore(ABC):
    """Recoverable draft snapshots keyed by scope."""

    @abstractmethod
    def persist_staging_snapshot(self, key: ScopeKey, assignments: list[Assignment]) -> None:
        pass

    @abstractmethod
    def load_staging_snapshot(self, key: ScopeKey) -> Optional[list[Assignment]]:
        """Load a snapshot, or None when there is none.

        Raises:
            SnapshotCorruptError: If a snapshot exists but cannot be parsed.
        """
        pass

    @abstractmethod
    def clear_staging_snapshot(self, key: ScopeKey) -> None:
        pass


class NotificationKind(Enum):
    """Kinds of user-facing notification."""

    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Notifier(ABC):
    """Surfaces messages to the user."""

    @abstractmethod
    def notify(self, kind: NotificationKind, message: str) -> None:
        pass
