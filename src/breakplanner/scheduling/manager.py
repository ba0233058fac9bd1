"""Break planning session.

BreakManager ties the ledger, the committer and the auto-fill solver to the
external capabilities (store, staging, notifier). Every user action goes
through it; errors are turned into notifications naming their cause.
"""

import logging
from datetime import date
from typing import Callable, Optional, TypeVar, Union

from breakplanner.domain.clock import Clock, SystemClock
from breakplanner.domain.models import (
    Actor,
    Assignment,
    SchedulingScope,
    ShiftType,
    SlotDefinition,
    StaffMember,
)
from breakplanner.domain.policies import BreakAllowancePolicy, DefaultBreakAllowancePolicy
from breakplanner.errors import BreakPlannerError, ScopeValidationError, StoreError
from breakplanner.scheduling.auto_assigner import AutoAssigner
from breakplanner.scheduling.catalog import CatalogBuilder
from breakplanner.scheduling.committer import CommitResult, ReconciliationCommitter
from breakplanner.scheduling.eligibility import EligibilityEvaluator, StaffStatus
from breakplanner.scheduling.ledger import NO_LOCATION_MESSAGE, DraftLedger
from breakplanner.storage.interfaces import BreakStore, NotificationKind, Notifier, StagingStore
from breakplanner.storage.memory import LoggingNotifier
from breakplanner.validation.validator import LedgerValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")

SAVE_SUCCESS_MESSAGE = "Breaks saved successfully!"
ADMIN_ACTOR = Actor(user_id="admin", is_admin=True)


class BreakManager:
    """Session over one scope at a time.

    Example:
        >>> manager = BreakManager(store, staging, notifier)
        >>> manager.select_scope(date(2024, 6, 1), "night", "Rugby")
        >>> manager.assign("u1", manager.catalog[0].id)
        >>> manager.save()
    """

    def __init__(
        self,
        store: BreakStore,
        staging: Optional[StagingStore] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
        policy: Optional[BreakAllowancePolicy] = None,
        auto_assigner: Optional[AutoAssigner] = None,
        actor: Actor = ADMIN_ACTOR,
    ):
        self.store = store
        self.staging = staging
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock or SystemClock()
        self.policy = policy or DefaultBreakAllowancePolicy()
        self.actor = actor

        self.catalog_builder = CatalogBuilder()
        self.evaluator = EligibilityEvaluator(self.policy)
        self.committer = ReconciliationCommitter(store, LedgerValidator(self.policy))
        self.auto_assigner = auto_assigner or AutoAssigner(self.policy)

        self._ledger: Optional[DraftLedger] = None
        self._roster: list[StaffMember] = []

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------

    def select_scope(
        self,
        schedule_date: Optional[date] = None,
        shift_type: Union[str, ShiftType] = ShiftType.DAY,
        location: Optional[str] = None,
    ) -> DraftLedger:
        """Enter a scope, restoring its unsaved draft if there is one.

        Draft custom slots of the previous scope are dropped.

        Raises:
            StoreError: The store could not be read (also notified).
        """
        scope = SchedulingScope(schedule_date or self.clock.today(), shift_type, location)
        try:
            ledger = self._load(scope)
            roster = self.store.fetch_staff_roster(scope.date, scope.shift_type)
        except StoreError as exc:
            self.notifier.notify(NotificationKind.ERROR, f"Failed to load breaks: {exc}")
            raise

        if self._ledger is not None and self._ledger.draft_custom_slots:
            logger.info(
                "Dropping %d unsaved custom slots of %s",
                len(self._ledger.draft_custom_slots),
                self._ledger.scope,
            )
        self._ledger = ledger
        self._roster = roster

        if ledger.restored_from_snapshot:
            self.notifier.notify(
                NotificationKind.INFO,
                f"Restored {len(ledger.assignments)} unsaved break assignments for {scope}.",
            )
        return ledger

    @property
    def ledger(self) -> DraftLedger:
        if self._ledger is None:
            raise ScopeValidationError("Select a date and shift first.")
        return self._ledger

    @property
    def scope(self) -> SchedulingScope:
        return self.ledger.scope

    @property
    def catalog(self) -> list[SlotDefinition]:
        return self.ledger.catalog

    def available_staff(self) -> list[StaffStatus]:
        """Rostered staff of the scope with their current break totals."""
        ledger = self.ledger
        return [
            StaffStatus(staff=staff, eligibility=ledger.eligibility_for(staff.user_id))
            for staff in sorted(self._scope_roster(), key=lambda s: s.name.lower())
        ]

    def eligible_staff(self, slot_id: str, show_all: bool = False) -> list[StaffStatus]:
        """Staff who can be offered ``slot_id``.

        Raises:
            SlotNotFoundError: Unknown slot.
        """
        ledger = self.ledger
        return self.evaluator.eligible_staff(
            self.available_staff(),
            ledger.slot(slot_id),
            ledger.assignments,
            ledger.scope.shift_type,
            show_all=show_all,
        )

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def assign(self, user_id: str, slot_id: str) -> Optional[Assignment]:
        """Assign a rostered staff member; returns None when refused."""
        return self._attempt(lambda: self._assign(user_id, slot_id))

    def _assign(self, user_id: str, slot_id: str) -> Optional[Assignment]:
        staff = self._staff(user_id)
        decision, assignment = self.ledger.assign(staff, slot_id)
        if not decision:
            self.notifier.notify(NotificationKind.WARNING, f"{staff.name} {decision.reason}.")
            return None
        return assignment

    def unassign(self, assignment_id: str, actor: Optional[Actor] = None) -> Optional[Assignment]:
        return self._attempt(lambda: self.ledger.remove(assignment_id, actor or self.actor))

    def auto_fill(self) -> list[Assignment]:
        """Fill open slots with the solver; returns the assignments added."""
        return self._attempt(self._auto_fill) or []

    def _auto_fill(self) -> list[Assignment]:
        ledger = self.ledger
        if not ledger.scope.has_concrete_location:
            raise ScopeValidationError(NO_LOCATION_MESSAGE)
        result = self.auto_assigner.propose(
            self._scope_roster(), ledger.catalog, ledger.assignments, ledger.scope.shift_type
        )
        if not result.is_feasible:
            self.notifier.notify(
                NotificationKind.WARNING, f"Auto-fill found no solution ({result.status})."
            )
            return []

        added = []
        for proposal in result.proposals:
            decision, assignment = ledger.assign(proposal.staff, proposal.slot.id)
            if decision:
                added.append(assignment)
            else:
                logger.warning(
                    "Auto-fill proposal %s -> %s refused: %s",
                    proposal.staff.name,
                    proposal.slot.start_time,
                    decision.reason,
                )
        self.notifier.notify(NotificationKind.INFO, f"Auto-fill added {len(added)} breaks.")
        return added

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def add_custom_slot(
        self,
        start_time: str,
        duration_minutes: int,
        capacity: int = 2,
        break_label: Optional[str] = None,
    ) -> Optional[SlotDefinition]:
        return self._attempt(
            lambda: self.ledger.add_custom_slot(start_time, duration_minutes, capacity, break_label)
        )

    def update_slot(
        self,
        slot_id: str,
        start_time: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        capacity: Optional[int] = None,
        break_label: Optional[str] = None,
    ) -> Optional[SlotDefinition]:
        return self._attempt(
            lambda: self.ledger.update_slot(
                slot_id, start_time, duration_minutes, capacity, break_label
            )
        )

    def delete_custom_slot(
        self,
        slot_id: str,
        confirm: Optional[Callable[[SlotDefinition], bool]] = None,
    ) -> bool:
        """Delete a custom slot.

        Draft slots go at once. A stored slot is deleted from the store
        immediately, after ``confirm`` (when given) returns True.
        """
        return bool(self._attempt(lambda: self._delete_custom_slot(slot_id, confirm)))

    def _delete_custom_slot(
        self,
        slot_id: str,
        confirm: Optional[Callable[[SlotDefinition], bool]],
    ) -> bool:
        ledger = self.ledger
        slot = ledger.remove_custom_slot(slot_id)
        if slot.is_draft:
            self.notifier.notify(NotificationKind.INFO, f"Removed unsaved slot {slot.start_time}.")
            return True
        if confirm is not None and not confirm(slot):
            return False

        deleted = self.committer.delete_custom_slot(ledger.scope, slot_id)
        ledger.forget_persisted_slot(slot_id)
        if deleted:
            self.notifier.notify(NotificationKind.SUCCESS, f"Deleted slot {slot.start_time}.")
        else:
            self.notifier.notify(
                NotificationKind.WARNING, f"Slot {slot.start_time} was already deleted."
            )
        return deleted

    # ------------------------------------------------------------------
    # Save / discard
    # ------------------------------------------------------------------

    def save(self) -> CommitResult:
        """Commit the draft, then reload the scope from the store."""
        ledger = self.ledger
        result = self.committer.commit(ledger)
        if not result.success:
            self.notifier.notify(NotificationKind.ERROR, result.error)
            return result

        if result.dropped:
            self.notifier.notify(
                NotificationKind.WARNING,
                f"{len(result.dropped)} break assignments were not saved because "
                "their slot no longer exists.",
            )
        for warning in result.warnings:
            self.notifier.notify(NotificationKind.WARNING, warning)
        self.notifier.notify(NotificationKind.SUCCESS, SAVE_SUCCESS_MESSAGE)
        self._reload(ledger.scope)
        return result

    def discard(self) -> None:
        """Drop unsaved changes and reload the scope from the store."""
        ledger = self.ledger
        try:
            ledger.discard_snapshot()
        except StoreError as exc:
            self.notifier.notify(NotificationKind.ERROR, f"Failed to discard changes: {exc}")
            return
        self._reload(ledger.scope)
        self.notifier.notify(NotificationKind.INFO, "Unsaved changes discarded.")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, scope: SchedulingScope) -> DraftLedger:
        return DraftLedger.load(
            scope,
            self.store,
            self.staging,
            catalog_builder=self.catalog_builder,
            evaluator=self.evaluator,
            clock=self.clock,
        )

    def _reload(self, scope: SchedulingScope) -> None:
        try:
            self._ledger = self._load(scope)
        except StoreError as exc:
            logger.error("Reloading %s failed: %s", scope, exc)
            self.notifier.notify(NotificationKind.ERROR, f"Failed to reload breaks: {exc}")

    def _scope_roster(self) -> list[StaffMember]:
        scope = self.ledger.scope
        return [staff for staff in self._roster if scope.matches_location(staff.location)]

    def _staff(self, user_id: str) -> StaffMember:
        for staff in self._scope_roster():
            if staff.user_id == user_id:
                return staff
        raise ScopeValidationError(f"Staff member {user_id} is not on the roster for {self.scope}.")

    def _attempt(self, action: Callable[[], T]) -> Optional[T]:
        try:
            return action()
        except BreakPlannerError as exc:
            self.notifier.notify(NotificationKind.ERROR, str(exc))
            return None
