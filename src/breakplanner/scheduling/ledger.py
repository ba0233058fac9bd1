"""Draft assignment ledger.

The ledger is the unsaved working set for one scope: assignments plus draft
custom slots and pending slot edits. Every assignment mutation is mirrored
to a staging snapshot so the draft survives leaving and re-entering the
scope. Nothing here writes to the authoritative store; that is the
committer's job.
"""

import itertools
import logging
from typing import Iterable, Optional

from breakplanner.domain.clock import Clock, SystemClock
from breakplanner.domain.models import (
    Actor,
    Assignment,
    SchedulingScope,
    SlotDefinition,
    SlotOrigin,
    StaffEligibility,
    StaffMember,
)
from breakplanner.domain.templates import CUSTOM_LABEL, DEFAULT_CAPACITY, break_code_for_label
from breakplanner.errors import (
    AssignmentNotFoundError,
    AuthorizationError,
    DuplicateSlotError,
    ScopeValidationError,
    SlotNotFoundError,
    SnapshotCorruptError,
    StoreError,
)
from breakplanner.scheduling.catalog import CatalogBuilder, find_slot, match_assignment_slots
from breakplanner.scheduling.eligibility import EligibilityDecision, EligibilityEvaluator
from breakplanner.scheduling.time_normalizer import normalize_start_time, parse_start_time
from breakplanner.storage.interfaces import BreakStore, StagingStore

logger = logging.getLogger(__name__)

TEMP_ASSIGNMENT_PREFIX = "temp-"
TEMP_SLOT_PREFIX = "new-"

NO_LOCATION_MESSAGE = "Select a specific location before changing breaks."


def is_temporary_id(value: Optional[str]) -> bool:
    """True for ids generated client-side and not yet committed."""
    return bool(value) and (
        value.startswith(TEMP_ASSIGNMENT_PREFIX) or value.startswith(TEMP_SLOT_PREFIX)
    )


class DraftLedger:
    """Unsaved break plan for a single scope.

    Example:
        >>> ledger = DraftLedger.load(scope, store, staging)
        >>> decision = ledger.assign(staff, "std-day-0")
        >>> if not decision:
        ...     print(decision.reason)
    """

    def __init__(
        self,
        scope: SchedulingScope,
        persisted_custom_slots: Iterable[SlotDefinition] = (),
        capacity_overrides: Optional[dict[str, int]] = None,
        assignments: Iterable[Assignment] = (),
        staging: Optional[StagingStore] = None,
        catalog_builder: Optional[CatalogBuilder] = None,
        evaluator: Optional[EligibilityEvaluator] = None,
        clock: Optional[Clock] = None,
    ):
        self.scope = scope
        self.staging = staging
        self.catalog_builder = catalog_builder or CatalogBuilder()
        self.evaluator = evaluator or EligibilityEvaluator()
        self.clock = clock or SystemClock()

        self._persisted_custom: dict[str, SlotDefinition] = {
            slot.id: slot for slot in persisted_custom_slots
        }
        self._edited_custom: dict[str, SlotDefinition] = {}
        self._stored_overrides: dict[str, int] = dict(capacity_overrides or {})
        self._pending_overrides: dict[str, int] = {}
        self._draft_slots: list[SlotDefinition] = []
        self._assignments: list[Assignment] = list(assignments)
        self._sequence = itertools.count(1)
        self.restored_from_snapshot = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        scope: SchedulingScope,
        store: BreakStore,
        staging: Optional[StagingStore] = None,
        catalog_builder: Optional[CatalogBuilder] = None,
        evaluator: Optional[EligibilityEvaluator] = None,
        clock: Optional[Clock] = None,
    ) -> "DraftLedger":
        """Create the ledger for ``scope``.

        Slot definitions always come from the store. Assignments come from
        the scope's staging snapshot when one exists, otherwise from the
        store. A corrupt snapshot is discarded and the store is used.
        """
        ledger = cls(
            scope,
            persisted_custom_slots=store.fetch_persisted_custom_slots(scope),
            capacity_overrides=store.fetch_persisted_slot_overrides(scope),
            staging=staging,
            catalog_builder=catalog_builder,
            evaluator=evaluator,
            clock=clock,
        )

        restored = ledger._load_snapshot()
        if restored is not None:
            ledger._assignments = match_assignment_slots(restored, ledger.catalog)
            ledger.restored_from_snapshot = True
            logger.info("Restored %d draft assignments for %s", len(restored), scope)
        else:
            stored = store.fetch_persisted_assignments(scope)
            ledger._assignments = match_assignment_slots(stored, ledger.catalog)
        return ledger

    def _load_snapshot(self) -> Optional[list[Assignment]]:
        if self.staging is None:
            return None
        key = self.scope.key
        try:
            return self.staging.load_staging_snapshot(key)
        except SnapshotCorruptError as exc:
            logger.warning("Discarding corrupt staging snapshot %s: %s", key, exc)
            self.staging.clear_staging_snapshot(key)
            return None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def catalog(self) -> list[SlotDefinition]:
        """Current catalog including unsaved slots and edits."""
        persisted = [
            self._edited_custom.get(slot_id, slot)
            for slot_id, slot in self._persisted_custom.items()
        ]
        overrides = {**self._stored_overrides, **self._pending_overrides}
        return self.catalog_builder.build(self.scope, persisted, self._draft_slots, overrides)

    @property
    def assignments(self) -> list[Assignment]:
        return list(self._assignments)

    @property
    def draft_custom_slots(self) -> list[SlotDefinition]:
        return list(self._draft_slots)

    @property
    def edited_custom_slots(self) -> list[SlotDefinition]:
        """Persisted custom slots whose fields changed in this draft."""
        return list(self._edited_custom.values())

    @property
    def pending_overrides(self) -> dict[str, int]:
        """Template capacity edits not yet stored."""
        return dict(self._pending_overrides)

    @property
    def has_unsaved_slot_changes(self) -> bool:
        return bool(self._draft_slots or self._edited_custom or self._pending_overrides)

    def slot(self, slot_id: str) -> SlotDefinition:
        slot = find_slot(self.catalog, slot_id)
        if slot is None:
            raise SlotNotFoundError(slot_id)
        return slot

    def assignments_for_slot(self, slot_id: str) -> list[Assignment]:
        return [a for a in self._assignments if a.slot_id == slot_id]

    def assignment(self, assignment_id: str) -> Assignment:
        for assignment in self._assignments:
            if assignment.id == assignment_id:
                return assignment
        raise AssignmentNotFoundError(assignment_id)

    def eligibility_for(self, user_id: str) -> StaffEligibility:
        """Break totals of ``user_id`` from the current draft."""
        return self.evaluator.compute_eligibility(
            user_id, self._assignments, self.catalog, self.scope.shift_type
        )

    def can_assign(self, user_id: str, slot: SlotDefinition) -> EligibilityDecision:
        if any(a.user_id == user_id and a.slot_id == slot.id for a in self._assignments):
            return EligibilityDecision.deny("already assigned to this slot")
        return self.evaluator.can_assign(
            self.eligibility_for(user_id), slot, self.scope.shift_type
        )

    # ------------------------------------------------------------------
    # Assignment mutations
    # ------------------------------------------------------------------

    def assign(self, staff: StaffMember, slot_id: str) -> tuple[EligibilityDecision, Optional[Assignment]]:
        """Create a draft assignment of ``staff`` to ``slot_id``.

        Returns the eligibility decision and the new assignment (None when
        refused).
        """
        self._require_location()
        slot = self.slot(slot_id)
        assignment = Assignment(
            id=self._temporary_id(TEMP_ASSIGNMENT_PREFIX, staff.user_id),
            slot_id=slot.id,
            user_id=staff.user_id,
            user_name=staff.name,
            shift_type=self.scope.shift_type,
            date=self.scope.date,
            location=self.scope.location,
        )
        decision = self.add(assignment)
        return decision, (self._assignments[-1] if decision else None)

    def add(self, assignment: Assignment) -> EligibilityDecision:
        """Append an assignment if the staff member is eligible.

        Raises:
            ScopeValidationError: No concrete location, missing fields or an
                assignment from another scope.
            SlotNotFoundError: The assignment's slot is not in the catalog.
        """
        self._require_location()
        if not assignment.user_id:
            raise ScopeValidationError("Assignment is missing a staff member.")
        if assignment.date != self.scope.date or assignment.shift_type != self.scope.shift_type:
            raise ScopeValidationError(
                f"Assignment {assignment.id} belongs to another date or shift than {self.scope}."
            )
        slot = self.slot(assignment.slot_id) if assignment.slot_id else None
        if slot is None:
            raise ScopeValidationError("Assignment is missing a slot.")

        decision = self.can_assign(assignment.user_id, slot)
        if not decision:
            return decision

        self._assignments.append(assignment.bind(slot))
        self._snapshot()
        return decision

    def remove(self, assignment_id: str, actor: Actor) -> Assignment:
        """Remove an assignment.

        Raises:
            AssignmentNotFoundError: Unknown id.
            AuthorizationError: The actor is neither the owner nor an admin.
        """
        self._require_location()
        assignment = self.assignment(assignment_id)
        if not actor.can_modify(assignment):
            raise AuthorizationError(
                f"You can only remove your own break assignments "
                f"({assignment.user_name}'s break at {assignment.start_time})."
            )
        self._assignments = [a for a in self._assignments if a.id != assignment_id]
        self._snapshot()
        return assignment

    # ------------------------------------------------------------------
    # Slot mutations
    # ------------------------------------------------------------------

    def add_custom_slot(
        self,
        start_time: str,
        duration_minutes: int,
        capacity: int = DEFAULT_CAPACITY,
        break_label: Optional[str] = None,
    ) -> SlotDefinition:
        """Add an unsaved custom slot.

        Raises:
            ScopeValidationError: No concrete location or invalid values.
            DuplicateSlotError: A slot already starts at ``start_time``.
        """
        self._require_location()
        start = self._valid_start(start_time)
        self._validate_numbers(duration_minutes, capacity)
        self._reject_duplicate_start(start)

        label = break_label or CUSTOM_LABEL
        slot = SlotDefinition(
            id=self._temporary_id(TEMP_SLOT_PREFIX),
            start_time=start,
            duration_minutes=duration_minutes,
            capacity=capacity,
            break_label=label,
            origin=SlotOrigin.DRAFT_CUSTOM,
            break_code=break_code_for_label(label),
            location=self.scope.location,
        )
        self._draft_slots.append(slot)
        return slot

    def update_slot(
        self,
        slot_id: str,
        start_time: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        capacity: Optional[int] = None,
        break_label: Optional[str] = None,
    ) -> SlotDefinition:
        """Edit a slot.

        Template slots accept a capacity change only. Custom slots accept
        every field, with the same duplicate start check as adding. When the
        capacity drops below the number of people on the slot, the most
        recently added assignments are removed.
        """
        self._require_location()
        slot = self.slot(slot_id)

        if not slot.is_custom:
            changes_shape = (
                (start_time is not None and start_time != slot.start_time)
                or (duration_minutes is not None and duration_minutes != slot.duration_minutes)
                or (break_label is not None and break_label != slot.break_label)
            )
            if changes_shape:
                raise ScopeValidationError("For standard slots, only capacity can be edited.")
            if capacity is None:
                return slot
            self._validate_numbers(slot.duration_minutes, capacity)
            self._pending_overrides[slot_id] = capacity
            updated = slot.with_changes(capacity=capacity)
        else:
            changes = {}
            if start_time is not None:
                start = self._valid_start(start_time)
                if start != slot.start_time:
                    self._reject_duplicate_start(start, ignore_id=slot_id)
                changes["start_time"] = start
            if duration_minutes is not None:
                changes["duration_minutes"] = duration_minutes
            if capacity is not None:
                changes["capacity"] = capacity
            if break_label is not None:
                changes["break_label"] = break_label
                changes["break_code"] = break_code_for_label(break_label)
            updated = slot.with_changes(**changes)
            self._validate_numbers(updated.duration_minutes, updated.capacity)
            self._store_custom_edit(updated)

        self._rebind_and_trim(updated)
        return updated

    def remove_custom_slot(self, slot_id: str) -> SlotDefinition:
        """Remove a custom slot from the draft.

        Draft slots are removed at once together with their assignments.
        Persisted slots are left untouched and returned: deleting them must
        be confirmed and sent to the store, after which
        ``forget_persisted_slot`` drops them from the ledger.

        Raises:
            ScopeValidationError: The slot is a template slot.
        """
        self._require_location()
        slot = self.slot(slot_id)
        if not slot.is_custom:
            raise ScopeValidationError("Only custom slots can be deleted.")
        if slot.is_draft:
            self._draft_slots = [s for s in self._draft_slots if s.id != slot_id]
            self._drop_slot_assignments(slot_id)
        return slot

    def forget_persisted_slot(self, slot_id: str) -> None:
        """Drop a persisted custom slot that was deleted from the store."""
        self._persisted_custom.pop(slot_id, None)
        self._edited_custom.pop(slot_id, None)
        self._drop_slot_assignments(slot_id)

    # ------------------------------------------------------------------
    # Commit support
    # ------------------------------------------------------------------

    def snapshot(self) -> None:
        """Write the assignment set to the staging store."""
        self._snapshot()

    def discard_snapshot(self) -> None:
        if self.staging is not None:
            self.staging.clear_staging_snapshot(self.scope.key)

    def mark_committed(self) -> None:
        """Forget unsaved slot changes and the snapshot after a commit."""
        self._draft_slots = []
        self._edited_custom = {}
        self._stored_overrides.update(self._pending_overrides)
        self._pending_overrides = {}
        self.restored_from_snapshot = False
        self.discard_snapshot()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_location(self) -> None:
        if not self.scope.has_concrete_location:
            raise ScopeValidationError(NO_LOCATION_MESSAGE)

    def _temporary_id(self, prefix: str, suffix: Optional[str] = None) -> str:
        stamp = int(self.clock.now().timestamp() * 1000)
        value = f"{prefix}{stamp}-{next(self._sequence)}"
        return f"{value}-{suffix}" if suffix else value

    @staticmethod
    def _valid_start(start_time: str) -> str:
        try:
            return normalize_start_time(start_time)
        except ValueError as exc:
            raise ScopeValidationError(str(exc)) from None

    @staticmethod
    def _validate_numbers(duration_minutes: int, capacity: int) -> None:
        if not isinstance(duration_minutes, int) or duration_minutes <= 0:
            raise ScopeValidationError(
                f"Break duration must be a positive number of minutes, got {duration_minutes!r}."
            )
        if not isinstance(capacity, int) or capacity < 1:
            raise ScopeValidationError(f"Slot capacity must be at least 1, got {capacity!r}.")

    def _reject_duplicate_start(self, start: str, ignore_id: Optional[str] = None) -> None:
        minutes = parse_start_time(start)
        for existing in self.catalog:
            if existing.id == ignore_id:
                continue
            if existing.start_time == start or (
                minutes is not None and parse_start_time(existing.start_time) == minutes
            ):
                raise DuplicateSlotError(start)

    def _store_custom_edit(self, updated: SlotDefinition) -> None:
        if updated.is_draft:
            self._draft_slots = [
                updated if s.id == updated.id else s for s in self._draft_slots
            ]
            return
        original = self._persisted_custom.get(updated.id)
        if original is not None and original.same_definition(updated):
            self._edited_custom.pop(updated.id, None)
        else:
            self._edited_custom[updated.id] = updated

    def _rebind_and_trim(self, updated: SlotDefinition) -> None:
        kept = []
        on_slot = 0
        trimmed = []
        for assignment in self._assignments:
            if assignment.slot_id != updated.id:
                kept.append(assignment)
                continue
            on_slot += 1
            if on_slot > updated.capacity:
                trimmed.append(assignment)
                continue
            kept.append(assignment.bind(updated))
        if trimmed:
            logger.info(
                "Capacity of %s lowered to %d; removed %s",
                updated.id,
                updated.capacity,
                ", ".join(a.user_name for a in trimmed),
            )
        self._assignments = kept
        self._snapshot()

    def _drop_slot_assignments(self, slot_id: str) -> None:
        before = len(self._assignments)
        self._assignments = [a for a in self._assignments if a.slot_id != slot_id]
        if len(self._assignments) != before:
            self._snapshot()

    def _snapshot(self) -> None:
        if self.staging is None:
            return
        try:
            self.staging.persist_staging_snapshot(self.scope.key, list(self._assignments))
        except StoreError as exc:
            logger.warning("Could not write staging snapshot %s: %s", self.scope.key, exc)
