"""Domain models for the break planner.

This module contains the core data structures shared by the catalog builder,
the eligibility evaluator, the draft ledger and the committer: scopes, slot
definitions, assignments and the derived per-staff eligibility.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Optional

ALL_LOCATIONS = "all"


class ShiftType(Enum):
    """Shift types a break plan can be built for."""

    DAY = "day"
    AFTERNOON = "afternoon"
    NIGHT = "night"

    @classmethod
    def parse(cls, value: "str | ShiftType") -> "ShiftType":
        """Parse a shift type case-insensitively ("Day", "night", ...)."""
        if isinstance(value, ShiftType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown shift type {value!r}; expected one of "
                f"{', '.join(s.value for s in cls)}"
            ) from None

    @property
    def label(self) -> str:
        return self.value.capitalize()


class BreakCategory(Enum):
    """Categories of break used by the eligibility rules."""

    FIFTEEN_MIN = "fifteen_min"
    FORTY_FIVE_MIN = "forty_five_min"
    SIXTY_MIN = "sixty_min"
    CUSTOM = "custom"


@dataclass(frozen=True)
class BreakKind:
    """Tagged break kind derived from a slot duration.

    ``minutes`` is always the slot duration; for the three fixed categories
    it is redundant but keeps ``CUSTOM`` and the fixed kinds uniform.
    """

    category: BreakCategory
    minutes: int

    @classmethod
    def from_duration(cls, minutes: int) -> "BreakKind":
        if minutes == 15:
            return cls(BreakCategory.FIFTEEN_MIN, 15)
        if minutes == 45:
            return cls(BreakCategory.FORTY_FIVE_MIN, 45)
        if minutes == 60:
            return cls(BreakCategory.SIXTY_MIN, 60)
        return cls(BreakCategory.CUSTOM, minutes)

    @property
    def is_custom(self) -> bool:
        return self.category == BreakCategory.CUSTOM


class SlotOrigin(Enum):
    """Where a slot definition comes from."""

    TEMPLATE = "template"  # Derived from the per-shift table, never a row
    PERSISTED_CUSTOM = "persisted_custom"  # Admin-defined, stored
    DRAFT_CUSTOM = "draft_custom"  # Admin-defined, not saved yet


@dataclass(frozen=True)
class ScopeKey:
    """Deterministic string key identifying a scope (used for staging)."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SchedulingScope:
    """A (date, shift type, location) working window.

    Attributes:
        date: Calendar day of the shift start.
        shift_type: Day, afternoon or night.
        location: Concrete location name, or None / "all" for every location.
    """

    date: date
    shift_type: ShiftType
    location: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.shift_type, ShiftType):
            object.__setattr__(self, "shift_type", ShiftType.parse(self.shift_type))
        if self.location is not None:
            cleaned = self.location.strip()
            object.__setattr__(self, "location", cleaned or None)

    @property
    def has_concrete_location(self) -> bool:
        """True when a single named location is selected."""
        return self.location is not None and self.location.lower() != ALL_LOCATIONS

    @property
    def location_label(self) -> str:
        return self.location if self.has_concrete_location else ALL_LOCATIONS

    @property
    def key(self) -> ScopeKey:
        return ScopeKey(
            f"breaks_{self.date.isoformat()}_{self.shift_type.value}_{self.location_label}"
        )

    def matches_location(self, location: Optional[str]) -> bool:
        """Check whether a record at ``location`` belongs to this scope."""
        if not self.has_concrete_location:
            return True
        return location == self.location

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {self.shift_type.label} @ {self.location_label}"


@dataclass
class SlotDefinition:
    """A bookable break window.

    Attributes:
        id: Template id ("std-day-0"), temporary draft id ("new-...") or the
            id assigned by the store.
        start_time: Wall-clock start "HH:MM".
        duration_minutes: Length of the break.
        capacity: Declared number of people per slot. Not enforced when
            assigning staff.
        break_label: Human-readable category, e.g. "Break 1 (15 min)".
        origin: Template, persisted custom or draft custom.
        break_code: Storage code ("break1", "night", "custom", ...).
        location: Location the slot belongs to (custom slots only).
    """

    id: str
    start_time: str
    duration_minutes: int
    capacity: int = 2
    break_label: str = "Custom Slot"
    origin: SlotOrigin = SlotOrigin.DRAFT_CUSTOM
    break_code: str = "custom"
    location: Optional[str] = None
    kind: BreakKind = field(init=False)

    def __post_init__(self):
        self.kind = BreakKind.from_duration(self.duration_minutes)

    @property
    def is_custom(self) -> bool:
        return self.origin != SlotOrigin.TEMPLATE

    @property
    def is_draft(self) -> bool:
        return self.origin == SlotOrigin.DRAFT_CUSTOM

    def with_changes(self, **changes) -> "SlotDefinition":
        """Return a copy with fields replaced; ``kind`` is re-derived."""
        return replace(self, **changes)

    def same_definition(self, other: "SlotDefinition") -> bool:
        """Compare the stored fields of two definitions (ids excluded)."""
        return (
            self.start_time == other.start_time
            and self.duration_minutes == other.duration_minutes
            and self.capacity == other.capacity
            and self.break_label == other.break_label
            and self.break_code == other.break_code
        )


@dataclass
class Assignment:
    """Binds one staff member to one slot within a scope.

    The slot snapshot (``start_time``, ``duration_minutes``, ``break_code``)
    is what the store persists; ``slot_id`` is resolved against the catalog.
    """

    id: str
    slot_id: Optional[str]
    user_id: str
    user_name: str
    shift_type: ShiftType
    date: date
    location: Optional[str] = None
    start_time: Optional[str] = None
    duration_minutes: Optional[int] = None
    break_code: Optional[str] = None

    def bind(self, slot: SlotDefinition) -> "Assignment":
        """Return a copy pointing at ``slot`` with its snapshot refreshed."""
        return replace(
            self,
            slot_id=slot.id,
            start_time=slot.start_time,
            duration_minutes=slot.duration_minutes,
            break_code=slot.break_code,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "slot_id": self.slot_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "shift_type": self.shift_type.value,
            "date": self.date.isoformat(),
            "location": self.location,
            "start_time": self.start_time,
            "duration_minutes": self.duration_minutes,
            "break_code": self.break_code,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Assignment":
        """Rebuild an assignment from ``to_dict`` output.

        Raises:
            KeyError, ValueError, TypeError: If the data is malformed.
        """
        duration = data.get("duration_minutes")
        return cls(
            id=str(data["id"]),
            slot_id=data.get("slot_id"),
            user_id=str(data["user_id"]),
            user_name=str(data.get("user_name", "")),
            shift_type=ShiftType.parse(data["shift_type"]),
            date=date.fromisoformat(data["date"]),
            location=data.get("location"),
            start_time=data.get("start_time"),
            duration_minutes=int(duration) if duration is not None else None,
            break_code=data.get("break_code"),
        )


@dataclass
class StaffMember:
    """A staff member rostered for a date and shift."""

    user_id: str
    name: str
    location: Optional[str] = None
    shift_preference: Optional[ShiftType] = None


@dataclass
class StaffEligibility:
    """Derived break totals for one staff member within a scope."""

    user_id: str
    total_assigned_minutes: int = 0
    has_fifteen_min_break: bool = False
    has_forty_five_min_break: bool = False


@dataclass(frozen=True)
class Actor:
    """Who is performing a ledger mutation."""

    user_id: str
    is_admin: bool = False

    def can_modify(self, assignment: Assignment) -> bool:
        return self.is_admin or assignment.user_id == self.user_id
