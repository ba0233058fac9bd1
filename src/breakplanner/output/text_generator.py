"""Plain-text break sheet.

This module creates a text rendition of a scope's break plan:
- Slots grouped by break category, in shift order
- Who is on each slot and how full it is
- Per-person break totals
"""

from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from breakplanner.domain.models import Assignment, SchedulingScope, SlotDefinition, StaffMember
from breakplanner.domain.templates import SHIFT_WINDOWS
from breakplanner.scheduling.catalog import group_slots
from breakplanner.scheduling.time_normalizer import end_time


@dataclass
class SheetRow:
    """One slot line of a break sheet."""

    slot: SlotDefinition
    names: list[str]

    @property
    def time_range(self) -> str:
        return f"{self.slot.start_time}-{end_time(self.slot.start_time, self.slot.duration_minutes)}"

    @property
    def usage(self) -> str:
        return f"{len(self.names)}/{self.slot.capacity}"

    @property
    def over_capacity(self) -> bool:
        return len(self.names) > self.slot.capacity


def build_sheet(
    catalog: Iterable[SlotDefinition],
    assignments: Iterable[Assignment],
) -> "dict[str, list[SheetRow]]":
    """Group catalog slots with the names assigned to them.

    Assignments whose slot is not in the catalog are left out.
    """
    names_by_slot: dict[str, list[str]] = defaultdict(list)
    for assignment in assignments:
        if assignment.slot_id:
            names_by_slot[assignment.slot_id].append(assignment.user_name or assignment.user_id)
    return {
        group: [SheetRow(slot, sorted(names_by_slot.get(slot.id, []))) for slot in slots]
        for group, slots in group_slots(catalog).items()
    }


def staff_totals(
    catalog: Iterable[SlotDefinition],
    assignments: Iterable[Assignment],
) -> dict[str, int]:
    """Assigned break minutes per person name."""
    durations = {slot.id: slot.duration_minutes for slot in catalog}
    totals: dict[str, int] = defaultdict(int)
    for assignment in assignments:
        minutes = durations.get(assignment.slot_id, assignment.duration_minutes or 0)
        totals[assignment.user_name or assignment.user_id] += minutes
    return dict(totals)


class BreakSheetTextGenerator:
    """Generates a printable text break sheet.

    Example:
        >>> generator = BreakSheetTextGenerator()
        >>> print(generator.generate_to_string(scope, ledger.catalog, ledger.assignments))
    """

    def generate(
        self,
        scope: SchedulingScope,
        catalog: Iterable[SlotDefinition],
        assignments: Iterable[Assignment],
        output_path: Union[str, Path],
        roster: Optional[Iterable[StaffMember]] = None,
    ) -> str:
        """Generate the sheet and save it to a file.

        Returns:
            The generated text content.
        """
        content = self.generate_to_string(scope, catalog, assignments, roster)
        Path(output_path).write_text(content)
        return content

    def generate_to_string(
        self,
        scope: SchedulingScope,
        catalog: Iterable[SlotDefinition],
        assignments: Iterable[Assignment],
        roster: Optional[Iterable[StaffMember]] = None,
    ) -> str:
        catalog = list(catalog)
        assignments = list(assignments)
        lines = []

        lines.append("=" * 72)
        lines.append(f"BREAK SHEET - {scope.date.strftime('%A %d %B %Y')}")
        window_start, window_end = SHIFT_WINDOWS[scope.shift_type]
        lines.append(
            f"Shift: {scope.shift_type.label} ({window_start}-{window_end})"
            f"    Location: {scope.location_label}"
        )
        lines.append("=" * 72)
        lines.append("")

        for group, rows in build_sheet(catalog, assignments).items():
            lines.append(group)
            lines.append("-" * 72)
            for row in rows:
                marker = " !" if row.over_capacity else ""
                names = ", ".join(row.names) if row.names else "-"
                lines.append(f"  {row.time_range:<13} [{row.usage:>5}]{marker:<2} {names}")
            lines.append("")

        totals = staff_totals(catalog, assignments)
        if roster is not None:
            for staff in roster:
                totals.setdefault(staff.name, 0)

        lines.append("STAFF TOTALS")
        lines.append("-" * 72)
        if not totals:
            lines.append("  No staff")
        for name in sorted(totals, key=str.lower):
            lines.append(f"  {name:<30} {totals[name]:>3} min")
        lines.append("")
        return "\n".join(lines)
