"""Break eligibility evaluation.

Decides whether a staff member may take a given slot, based on the breaks
they already hold in the scope. A refusal is a normal outcome carrying a
reason the caller can show, never an exception.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from breakplanner.domain.models import (
    Assignment,
    BreakCategory,
    ShiftType,
    SlotDefinition,
    StaffEligibility,
    StaffMember,
)
from breakplanner.domain.policies import BreakAllowancePolicy, DefaultBreakAllowancePolicy

_CATEGORY_REASONS = {
    BreakCategory.FIFTEEN_MIN: "already has a 15 min break",
    BreakCategory.FORTY_FIVE_MIN: "already has a 45 min break",
}


@dataclass(frozen=True)
class EligibilityDecision:
    """Outcome of an eligibility check."""

    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls) -> "EligibilityDecision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "EligibilityDecision":
        return cls(False, reason)


@dataclass
class StaffStatus:
    """A rostered staff member together with their current eligibility."""

    staff: StaffMember
    eligibility: StaffEligibility

    @property
    def user_id(self) -> str:
        return self.staff.user_id

    @property
    def name(self) -> str:
        return self.staff.name


class EligibilityEvaluator:
    """Evaluates break eligibility against a BreakAllowancePolicy.

    Example:
        >>> evaluator = EligibilityEvaluator()
        >>> eligibility = evaluator.compute_eligibility("u1", assignments, catalog, ShiftType.DAY)
        >>> decision = evaluator.can_assign(eligibility, slot, ShiftType.DAY)
        >>> if not decision:
        ...     print(decision.reason)
    """

    def __init__(self, policy: Optional[BreakAllowancePolicy] = None):
        self.policy = policy or DefaultBreakAllowancePolicy()

    def can_assign(
        self,
        eligibility: StaffEligibility,
        slot: SlotDefinition,
        shift_type: ShiftType,
    ) -> EligibilityDecision:
        """Decide whether a staff member may take ``slot``.

        Single-use categories (15 and 45 min on the day shift) are gated
        only on whether that category is already held. Every other slot must
        fit within the policy's total minutes.
        """
        category = slot.kind.category
        if category in self.policy.single_use_categories(shift_type):
            if self._holds(eligibility, category):
                return EligibilityDecision.deny(_CATEGORY_REASONS[category])
            return EligibilityDecision.allow()

        limit = self.policy.max_total_minutes(shift_type)
        if eligibility.total_assigned_minutes + slot.duration_minutes > limit:
            return EligibilityDecision.deny(
                f"already has maximum break time "
                f"({eligibility.total_assigned_minutes}/{limit} min)"
            )
        return EligibilityDecision.allow()

    def compute_eligibility(
        self,
        user_id: str,
        assignments: Iterable[Assignment],
        catalog: Iterable[SlotDefinition],
        shift_type: ShiftType,
    ) -> StaffEligibility:
        """Derive a staff member's break totals from the scope's assignments.

        The duration comes from the catalog slot, or from the assignment's
        own snapshot when its slot is gone.
        """
        by_id = {slot.id: slot for slot in catalog}
        eligibility = StaffEligibility(user_id=user_id)
        for assignment in assignments:
            if assignment.user_id != user_id:
                continue
            slot = by_id.get(assignment.slot_id) if assignment.slot_id else None
            duration = slot.duration_minutes if slot else assignment.duration_minutes
            if not isinstance(duration, int):
                continue
            eligibility.total_assigned_minutes += duration
            if shift_type == ShiftType.DAY:
                if duration == 15:
                    eligibility.has_fifteen_min_break = True
                elif duration == 45:
                    eligibility.has_forty_five_min_break = True
        eligibility.total_assigned_minutes = max(0, eligibility.total_assigned_minutes)
        return eligibility

    def eligible_staff(
        self,
        statuses: Iterable[StaffStatus],
        slot: SlotDefinition,
        assignments: Iterable[Assignment],
        shift_type: ShiftType,
        show_all: bool = False,
    ) -> list[StaffStatus]:
        """Staff who can be offered ``slot``.

        Staff already assigned to this slot are never offered it again.
        With ``show_all`` the break limits are not applied, mirroring the
        "show all staff" toggle of the planner.
        """
        on_slot = {a.user_id for a in assignments if a.slot_id == slot.id}
        offered = []
        for status in statuses:
            if status.user_id in on_slot:
                continue
            if show_all or self.can_assign(status.eligibility, slot, shift_type):
                offered.append(status)
        return offered

    @staticmethod
    def _holds(eligibility: StaffEligibility, category: BreakCategory) -> bool:
        if category == BreakCategory.FIFTEEN_MIN:
            return eligibility.has_fifteen_min_break
        if category == BreakCategory.FORTY_FIVE_MIN:
            return eligibility.has_forty_five_min_break
        return False
