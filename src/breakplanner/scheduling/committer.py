"""Save-time reconciliation of a draft ledger with the store.

Assignments of a scope are owned entirely by the save: the committer deletes
every stored assignment of the scope and inserts the draft's assignments as
fresh rows. Only custom slot definitions are diffed (new versus edited).
The steps are not atomic; a failure part way leaves the store as the failed
step left it and keeps the draft so the save can be retried.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from breakplanner.domain.models import Assignment, SchedulingScope, SlotDefinition, SlotOrigin
from breakplanner.errors import ScopeValidationError, StoreError
from breakplanner.scheduling.ledger import NO_LOCATION_MESSAGE, DraftLedger
from breakplanner.storage.interfaces import BreakStore
from breakplanner.validation.validator import LedgerValidator

logger = logging.getLogger(__name__)


@dataclass
class CommitResult:
    """Outcome of a save.

    Attributes:
        success: True when every step completed.
        error: Message naming the failed step and its cause.
        dropped: Assignments left out because they could not be stored.
        completed_steps: Names of the steps that finished.
        inserted_assignments: Rows written in the final step.
        inserted_slots: Custom slots created, with store ids.
        warnings: Problems after every step succeeded, such as a staging
            snapshot that could not be cleared.
    """

    success: bool
    error: Optional[str] = None
    dropped: list[Assignment] = field(default_factory=list)
    completed_steps: list[str] = field(default_factory=list)
    inserted_assignments: list[Assignment] = field(default_factory=list)
    inserted_slots: list[SlotDefinition] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class _CommitPlan:
    assignments: list[Assignment]
    dropped: list[Assignment]
    new_slots: list[SlotDefinition]
    changed_slots: list[SlotDefinition]
    overrides: dict[str, int]


class ReconciliationCommitter:
    """Writes a draft ledger to the authoritative store.

    Example:
        >>> committer = ReconciliationCommitter(store)
        >>> result = committer.commit(ledger)
        >>> if not result.success:
        ...     print(result.error)
    """

    def __init__(self, store: BreakStore, validator: Optional[LedgerValidator] = None):
        self.store = store
        self.validator = validator or LedgerValidator()

    def commit(self, ledger: DraftLedger) -> CommitResult:
        """Replace the scope's stored assignments with the draft.

        Steps, in order: delete stored assignments of the scope, insert new
        custom slots, update edited custom slots, store template capacity
        overrides, insert the draft assignments.
        """
        scope = ledger.scope
        if not scope.has_concrete_location:
            return CommitResult(success=False, error=NO_LOCATION_MESSAGE)

        plan = self._plan(ledger)
        result = CommitResult(success=False, dropped=plan.dropped)

        steps: list[tuple[str, Callable[[], None]]] = [
            ("delete existing assignments", lambda: self._delete_assignments(scope)),
            ("insert new custom slots", lambda: self._insert_slots(scope, plan, result)),
            ("update custom slots", lambda: self._update_slots(scope, plan)),
            ("save slot capacity changes", lambda: self._upsert_overrides(scope, plan)),
            ("insert assignments", lambda: self._insert_assignments(plan, result)),
        ]

        for name, step in steps:
            try:
                step()
            except StoreError as exc:
                logger.error(
                    "Saving breaks for %s failed at '%s' after %s: %s",
                    scope,
                    name,
                    result.completed_steps or "no steps",
                    exc,
                )
                result.error = f"Failed to save breaks ({name}): {exc}"
                return result
            result.completed_steps.append(name)

        result.success = True
        try:
            ledger.mark_committed()
        except StoreError as exc:
            logger.warning("Saved %s but could not clear its staging snapshot: %s", scope, exc)
            result.warnings.append(
                f"Breaks were saved but the unsaved draft could not be cleared: {exc}"
            )
        logger.info(
            "Saved %d assignments and %d new custom slots for %s",
            len(result.inserted_assignments),
            len(result.inserted_slots),
            scope,
        )
        return result

    def delete_custom_slot(self, scope: SchedulingScope, slot_id: str) -> bool:
        """Delete a stored custom slot at once.

        Reads the scope's custom slots first so a slot that is already gone
        is reported instead of deleted blindly.

        Raises:
            ScopeValidationError: No concrete location.
            StoreError: The store failed.
        """
        if not scope.has_concrete_location:
            raise ScopeValidationError(NO_LOCATION_MESSAGE)
        stored_ids = {slot.id for slot in self.store.fetch_persisted_custom_slots(scope)}
        if slot_id not in stored_ids:
            logger.warning("Custom slot %s is not stored for %s", slot_id, scope)
            return False
        deleted = self.store.delete_custom_slot(slot_id)
        if deleted:
            logger.info("Deleted custom slot %s for %s", slot_id, scope)
        return deleted

    # ------------------------------------------------------------------

    def _plan(self, ledger: DraftLedger) -> _CommitPlan:
        scope = ledger.scope
        catalog = ledger.catalog
        by_id = {slot.id: slot for slot in catalog}

        validation = self.validator.validate(scope, catalog, ledger.assignments)
        blocked = validation.blocking_assignment_ids()
        for error in validation.errors:
            if error.is_blocking:
                logger.warning("Dropping assignment from save: %s", error)
            else:
                logger.warning("Saving assignment with problem: %s", error)
        for warning in validation.warnings:
            logger.warning(warning)

        assignments = []
        dropped = []
        for assignment in ledger.assignments:
            if assignment.id in blocked:
                dropped.append(assignment)
                continue
            slot = by_id[assignment.slot_id]
            bound = assignment.bind(slot)
            if bound.location is None:
                bound.location = scope.location
            assignments.append(bound)

        new_slots = [s for s in catalog if s.origin == SlotOrigin.DRAFT_CUSTOM]
        edited_ids = {s.id for s in ledger.edited_custom_slots}
        changed_slots = [
            s for s in catalog
            if s.origin == SlotOrigin.PERSISTED_CUSTOM and s.id in edited_ids
        ]
        return _CommitPlan(
            assignments=assignments,
            dropped=dropped,
            new_slots=new_slots,
            changed_slots=changed_slots,
            overrides=ledger.pending_overrides,
        )

    def _delete_assignments(self, scope: SchedulingScope) -> None:
        removed = self.store.delete_assignments(scope)
        logger.debug("Deleted %d stored assignments for %s", removed, scope)

    def _insert_slots(self, scope: SchedulingScope, plan: _CommitPlan, result: CommitResult) -> None:
        if plan.new_slots:
            result.inserted_slots = self.store.insert_custom_slots(scope, plan.new_slots)

    def _update_slots(self, scope: SchedulingScope, plan: _CommitPlan) -> None:
        if plan.changed_slots:
            self.store.update_custom_slots(scope, plan.changed_slots)

    def _upsert_overrides(self, scope: SchedulingScope, plan: _CommitPlan) -> None:
        if plan.overrides:
            self.store.upsert_slot_overrides(scope, plan.overrides)

    def _insert_assignments(self, plan: _CommitPlan, result: CommitResult) -> None:
        if plan.assignments:
            result.inserted_assignments = self.store.insert_assignments(plan.assignments)
