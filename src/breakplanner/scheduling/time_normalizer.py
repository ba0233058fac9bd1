"""Shift-aware ordering of wall-clock start times.

A night shift runs past midnight, so plain string or minute ordering would
put 00:00 before 21:00. The ordering key moves every time before noon on a
night shift to the following day.
"""

from typing import Iterable, Optional, TypeVar

from breakplanner.domain.models import ShiftType, SlotDefinition

MINUTES_PER_DAY = 24 * 60
NOON_MINUTES = 12 * 60

# Larger than any valid key (23:59 + one day), so bad times sort last
UNPARSEABLE_KEY = 2 * MINUTES_PER_DAY

S = TypeVar("S", bound=SlotDefinition)


def parse_start_time(value: Optional[str]) -> Optional[int]:
    """Parse "HH:MM" or "HH:MM:SS" into minutes from midnight.

    Returns None when the value is not a valid 24-hour time.
    """
    if not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        return None
    hours, minutes = numbers[0], numbers[1]
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    if len(numbers) == 3 and not 0 <= numbers[2] < 60:
        return None
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Format minutes from midnight as "HH:MM", wrapping past 24:00."""
    hours, mins = divmod(minutes % MINUTES_PER_DAY, 60)
    return f"{hours:02d}:{mins:02d}"


def normalize_start_time(value: str) -> str:
    """Normalize a start time to "HH:MM".

    Raises:
        ValueError: If the value is not a valid time.
    """
    minutes = parse_start_time(value)
    if minutes is None:
        raise ValueError(f"Invalid start time {value!r}; expected HH:MM")
    return format_minutes(minutes)


def ordering_key(start_time: Optional[str], shift_type: ShiftType) -> int:
    """Shift-aware sort key in minutes.

    Non-night shifts use minutes from midnight. On night shifts any time
    before 12:00 belongs to the morning after the shift started and gets a
    day added: 21:00 -> 1260, 00:00 -> 1440, 02:00 -> 1560.
    """
    minutes = parse_start_time(start_time)
    if minutes is None:
        return UNPARSEABLE_KEY
    if shift_type == ShiftType.NIGHT and minutes < NOON_MINUTES:
        return minutes + MINUTES_PER_DAY
    return minutes


def sort_slots(slots: Iterable[S], shift_type: ShiftType) -> list[S]:
    """Sort slots by ordering key; ties keep their input order."""
    return sorted(slots, key=lambda s: ordering_key(s.start_time, shift_type))


def end_time(start_time: str, duration_minutes: int) -> str:
    """Wall-clock end of a break, wrapping past midnight.

    Returns "??:??" for an unparseable start.
    """
    minutes = parse_start_time(start_time)
    if minutes is None:
        return "??:??"
    return format_minutes(minutes + duration_minutes)


def slot_interval(slot: SlotDefinition, shift_type: ShiftType) -> tuple[int, int]:
    """(start, end) of a slot on the shift's ordering axis."""
    start = ordering_key(slot.start_time, shift_type)
    return start, start + slot.duration_minutes


def intervals_overlap(a: SlotDefinition, b: SlotDefinition, shift_type: ShiftType) -> bool:
    """Check whether two slots overlap in time within one shift."""
    a_start, a_end = slot_interval(a, shift_type)
    b_start, b_end = slot_interval(b, shift_type)
    if UNPARSEABLE_KEY in (a_start, b_start):
        return False
    return a_start < b_end and b_start < a_end
