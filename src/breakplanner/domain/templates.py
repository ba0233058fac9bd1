"""Fixed break slot templates per shift type.

Template slots are derived from these tables every time a catalog is built
and are never stored as rows. Only capacity overrides for a template slot id
are persisted.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from breakplanner.domain.models import ShiftType, SlotDefinition, SlotOrigin

SATURDAY = 5  # date.weekday()

DEFAULT_CAPACITY = 2
CUSTOM_LABEL = "Custom Slot"


@dataclass(frozen=True)
class SlotTemplate:
    """One row of a per-shift template table."""

    start_time: str
    duration_minutes: int
    capacity: int
    break_label: str


def _series(starts: list[str], duration: int, label: str) -> list[SlotTemplate]:
    return [SlotTemplate(s, duration, DEFAULT_CAPACITY, label) for s in starts]


STANDARD_TEMPLATES: dict[ShiftType, list[SlotTemplate]] = {
    ShiftType.DAY: (
        _series(
            ["09:00", "09:15", "09:30", "09:45", "10:00", "10:15"],
            15,
            "Break 1 (15 min)",
        )
        + _series(
            ["12:00", "12:45", "13:30", "14:15", "15:00", "15:45"],
            45,
            "Break 2 (45 min)",
        )
    ),
    ShiftType.AFTERNOON: _series(
        ["18:00", "19:00", "20:00"], 60, "Afternoon Break (60 min)"
    ),
    ShiftType.NIGHT: _series(
        ["21:00", "22:00", "23:00", "00:00", "01:00", "02:00"],
        60,
        "Night Break (60 min)",
    ),
}

# Injected in front of the night table on Saturdays only
SATURDAY_NIGHT_TEMPLATE = SlotTemplate(
    "20:00", 60, DEFAULT_CAPACITY, "Saturday Night Break (60 min)"
)

# Display windows (start, end) of each shift
SHIFT_WINDOWS: dict[ShiftType, tuple[str, str]] = {
    ShiftType.DAY: ("05:45", "18:15"),
    ShiftType.AFTERNOON: ("14:00", "02:30"),
    ShiftType.NIGHT: ("17:45", "06:15"),
}

_BREAK_CODES = [
    ("break 1 (15 min)", "break1"),
    ("break 2 (45 min)", "break2"),
    ("night break (60 min)", "night"),
    ("afternoon break (60 min)", "afternoon"),
]


def break_code_for_label(label: Optional[str]) -> str:
    """Map a break label to its storage code.

    Labels are matched case-insensitively by containment, so the Saturday
    night slot is stored as "night". Anything unknown is "custom".
    """
    lowered = (label or "").lower()
    for fragment, code in _BREAK_CODES:
        if fragment in lowered:
            return code
    return "custom"


def template_slot_id(shift_type: ShiftType, index: int) -> str:
    return f"std-{shift_type.value}-{index}"


def is_saturday_night(schedule_date: date, shift_type: ShiftType) -> bool:
    return shift_type == ShiftType.NIGHT and schedule_date.weekday() == SATURDAY


def templates_for(schedule_date: date, shift_type: ShiftType) -> list[SlotTemplate]:
    """Template rows for a date and shift, Saturday night slot included."""
    rows = list(STANDARD_TEMPLATES.get(shift_type, []))
    if is_saturday_night(schedule_date, shift_type):
        rows.insert(0, SATURDAY_NIGHT_TEMPLATE)
    return rows


def template_slots(schedule_date: date, shift_type: ShiftType) -> list[SlotDefinition]:
    """Build template SlotDefinitions with their derived ids."""
    return [
        SlotDefinition(
            id=template_slot_id(shift_type, index),
            start_time=row.start_time,
            duration_minutes=row.duration_minutes,
            capacity=row.capacity,
            break_label=row.break_label,
            origin=SlotOrigin.TEMPLATE,
            break_code=break_code_for_label(row.break_label),
        )
        for index, row in enumerate(templates_for(schedule_date, shift_type))
    ]
