"""Slot catalog construction.

The catalog for a scope is the merge of three sources: the fixed template
table for the shift, custom slots already in the store, and draft custom
slots that only exist in the current ledger. Building it is pure; loading
the inputs is the caller's job.
"""

import logging
from collections import OrderedDict
from typing import Iterable, Optional

from breakplanner.domain.models import (
    Assignment,
    SchedulingScope,
    SlotDefinition,
    SlotOrigin,
)
from breakplanner.domain.templates import template_slots
from breakplanner.scheduling.time_normalizer import normalize_start_time, sort_slots

logger = logging.getLogger(__name__)

CUSTOM_GROUP = "Custom Slots"


class CatalogBuilder:
    """Builds the sorted slot catalog for a scope.

    Example:
        >>> builder = CatalogBuilder()
        >>> slots = builder.build(scope, persisted_custom, draft_custom, {"std-day-0": 3})
    """

    def build(
        self,
        scope: SchedulingScope,
        persisted_custom_slots: Iterable[SlotDefinition] = (),
        draft_custom_slots: Iterable[SlotDefinition] = (),
        capacity_overrides: Optional[dict[str, int]] = None,
    ) -> list[SlotDefinition]:
        """Assemble the catalog.

        Args:
            scope: The scope to build for.
            persisted_custom_slots: Custom slots loaded from the store.
            draft_custom_slots: Unsaved custom slots of the current ledger.
            capacity_overrides: Template slot id -> capacity.

        Returns:
            All slots sorted by shift-aware start time.
        """
        overrides = capacity_overrides or {}

        slots = []
        for slot in template_slots(scope.date, scope.shift_type):
            capacity = overrides.get(slot.id)
            if capacity is not None:
                slot = slot.with_changes(capacity=capacity)
            slots.append(slot)

        slots.extend(self._custom_for_scope(scope, persisted_custom_slots, SlotOrigin.PERSISTED_CUSTOM))
        slots.extend(self._custom_for_scope(scope, draft_custom_slots, SlotOrigin.DRAFT_CUSTOM))

        return sort_slots(slots, scope.shift_type)

    def _custom_for_scope(
        self,
        scope: SchedulingScope,
        slots: Iterable[SlotDefinition],
        origin: SlotOrigin,
    ) -> list[SlotDefinition]:
        """Keep custom slots of this scope, tagging them with ``origin``."""
        kept = []
        for slot in slots:
            if not scope.matches_location(slot.location):
                continue
            if not isinstance(slot.duration_minutes, int) or slot.duration_minutes <= 0:
                logger.warning("Ignoring slot %s with invalid duration %r", slot.id, slot.duration_minutes)
                continue
            if slot.origin != origin:
                slot = slot.with_changes(origin=origin)
            kept.append(slot)
        return kept


def build_catalog(
    scope: SchedulingScope,
    persisted_custom_slots: Iterable[SlotDefinition] = (),
    draft_custom_slots: Iterable[SlotDefinition] = (),
    capacity_overrides: Optional[dict[str, int]] = None,
) -> list[SlotDefinition]:
    """Convenience wrapper around CatalogBuilder.build."""
    return CatalogBuilder().build(
        scope, persisted_custom_slots, draft_custom_slots, capacity_overrides
    )


def find_slot(catalog: Iterable[SlotDefinition], slot_id: Optional[str]) -> Optional[SlotDefinition]:
    if slot_id is None:
        return None
    for slot in catalog:
        if slot.id == slot_id:
            return slot
    return None


def _snapshot_key(start_time: Optional[str], duration: Optional[int], code: Optional[str]):
    try:
        start = normalize_start_time(start_time or "")
    except ValueError:
        start = start_time
    return (start, duration, code)


def match_assignment_slots(
    assignments: Iterable[Assignment],
    catalog: list[SlotDefinition],
) -> list[Assignment]:
    """Resolve ``slot_id`` of stored assignments against a catalog.

    Stored rows carry only a slot snapshot (start, duration, break code).
    A row matches the first catalog slot with the same HH:MM start,
    duration and code. Rows that match nothing keep ``slot_id=None`` and
    are logged; the committer drops them on the next save.
    """
    by_snapshot: dict[tuple, SlotDefinition] = {}
    for slot in catalog:
        by_snapshot.setdefault(
            _snapshot_key(slot.start_time, slot.duration_minutes, slot.break_code), slot
        )

    resolved = []
    for assignment in assignments:
        slot = find_slot(catalog, assignment.slot_id)
        if slot is None:
            slot = by_snapshot.get(
                _snapshot_key(
                    assignment.start_time,
                    assignment.duration_minutes,
                    assignment.break_code,
                )
            )
        if slot is None:
            logger.warning(
                "No slot in catalog for assignment %s (%s %s min %s)",
                assignment.id,
                assignment.start_time,
                assignment.duration_minutes,
                assignment.break_code,
            )
            resolved.append(assignment)
        else:
            resolved.append(assignment.bind(slot))
    return resolved


def group_slots(slots: Iterable[SlotDefinition]) -> "OrderedDict[str, list[SlotDefinition]]":
    """Group slots for display: custom slots together, templates by label."""
    groups: OrderedDict[str, list[SlotDefinition]] = OrderedDict()
    for slot in slots:
        name = CUSTOM_GROUP if slot.is_custom else (slot.break_label or "Standard Slots")
        groups.setdefault(name, []).append(slot)
    return groups
