"""OR-Tools CP-SAT auto-fill for break slots.

Proposes assignments for rostered staff who have not used their break
allowance yet. Existing assignments are fixed; the model only chooses new
(person, slot) pairs. Unlike manual assignment, auto-fill respects slot
capacity.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ortools.sat.python import cp_model

from breakplanner.domain.models import (
    Assignment,
    ShiftType,
    SlotDefinition,
    StaffMember,
)
from breakplanner.domain.policies import BreakAllowancePolicy, DefaultBreakAllowancePolicy
from breakplanner.scheduling.time_normalizer import intervals_overlap

logger = logging.getLogger(__name__)


@dataclass
class AutoAssignConfig:
    """Configuration for the auto-fill solver.

    Attributes:
        time_limit_seconds: Maximum solver runtime.
        num_workers: Number of parallel workers (0 = auto).
    """

    time_limit_seconds: float = 10.0
    num_workers: int = 0


@dataclass
class AutoAssignProposal:
    """One proposed (staff member, slot) pair."""

    staff: StaffMember
    slot: SlotDefinition


@dataclass
class AutoAssignResult:
    """Result from the auto-fill solver.

    Attributes:
        status: Solver status (OPTIMAL, FEASIBLE, etc.).
        proposals: Proposed new assignments, in slot order.
        assigned_minutes: Break minutes covered by the proposals.
        solve_time_seconds: Time taken to solve.
    """

    status: str
    proposals: list[AutoAssignProposal] = field(default_factory=list)
    assigned_minutes: int = 0
    solve_time_seconds: float = 0.0

    @property
    def is_feasible(self) -> bool:
        return self.status in ("OPTIMAL", "FEASIBLE")


class AutoAssigner:
    """Fills open break slots with CP-SAT.

    Example:
        >>> assigner = AutoAssigner()
        >>> result = assigner.propose(roster, ledger.catalog, ledger.assignments, ShiftType.DAY)
        >>> for proposal in result.proposals:
        ...     ledger.assign(proposal.staff, proposal.slot.id)
    """

    def __init__(
        self,
        policy: Optional[BreakAllowancePolicy] = None,
        config: Optional[AutoAssignConfig] = None,
    ):
        self.policy = policy or DefaultBreakAllowancePolicy()
        self.config = config or AutoAssignConfig()

    def propose(
        self,
        roster: Iterable[StaffMember],
        catalog: Iterable[SlotDefinition],
        assignments: Iterable[Assignment],
        shift_type: ShiftType,
    ) -> AutoAssignResult:
        """Solve for new assignments.

        Args:
            roster: Staff who may receive breaks.
            catalog: Slots of the scope, in display order.
            assignments: Current assignments; these stay as they are.
            shift_type: Shift of the scope.

        Returns:
            AutoAssignResult with proposals and solver statistics.
        """
        roster = list(roster)
        slots = list(catalog)
        slots_by_id = {slot.id: slot for slot in slots}
        assignments = list(assignments)

        limit = self.policy.max_total_minutes(shift_type)
        single_use = self.policy.single_use_categories(shift_type)

        held: dict[str, list[SlotDefinition]] = {staff.user_id: [] for staff in roster}
        fixed_minutes: dict[str, int] = {staff.user_id: 0 for staff in roster}
        occupancy: dict[str, int] = {slot.id: 0 for slot in slots}
        for assignment in assignments:
            slot = slots_by_id.get(assignment.slot_id) if assignment.slot_id else None
            if slot is not None:
                occupancy[slot.id] += 1
            if assignment.user_id not in held:
                continue
            if slot is not None:
                held[assignment.user_id].append(slot)
                fixed_minutes[assignment.user_id] += slot.duration_minutes
            elif assignment.duration_minutes:
                fixed_minutes[assignment.user_id] += assignment.duration_minutes

        model = cp_model.CpModel()

        # Decision variables: x[u][s] = 1 if staff u gets slot s
        x: dict[str, dict[str, cp_model.IntVar]] = {}
        for staff in roster:
            user_id = staff.user_id
            x[user_id] = {}
            held_ids = {slot.id for slot in held[user_id]}
            held_categories = {slot.kind.category for slot in held[user_id]}
            for slot in slots:
                if slot.id in held_ids:
                    continue
                if slot.kind.category in single_use and slot.kind.category in held_categories:
                    continue
                if any(intervals_overlap(slot, other, shift_type) for other in held[user_id]):
                    continue
                x[user_id][slot.id] = model.NewBoolVar(f"x_{user_id}_{slot.id}")

        # Constraint 1: Total break minutes stay within the allowance
        for staff in roster:
            user_id = staff.user_id
            remaining = max(0, limit - fixed_minutes[user_id])
            chosen = x[user_id]
            if chosen:
                model.Add(
                    sum(var * slots_by_id[slot_id].duration_minutes for slot_id, var in chosen.items())
                    <= remaining
                )

        # Constraint 2: Single-use categories at most once per person
        for staff in roster:
            chosen = x[staff.user_id]
            for category in single_use:
                same = [var for slot_id, var in chosen.items()
                        if slots_by_id[slot_id].kind.category == category]
                if len(same) > 1:
                    model.AddAtMostOne(same)

        # Constraint 3: No overlapping breaks for one person
        for staff in roster:
            chosen = list(x[staff.user_id].items())
            for i, (slot_a, var_a) in enumerate(chosen):
                for slot_b, var_b in chosen[i + 1:]:
                    if intervals_overlap(slots_by_id[slot_a], slots_by_id[slot_b], shift_type):
                        model.Add(var_a + var_b <= 1)

        # Constraint 4: Slot capacity, counting people already there
        for slot in slots:
            takers = [x[staff.user_id][slot.id] for staff in roster if slot.id in x[staff.user_id]]
            if takers:
                model.Add(sum(takers) <= max(0, slot.capacity - occupancy[slot.id]))

        # Maximize assigned break minutes
        objective_terms = []
        for user_id, chosen in x.items():
            for slot_id, var in chosen.items():
                objective_terms.append(var * slots_by_id[slot_id].duration_minutes)
        if objective_terms:
            model.Maximize(sum(objective_terms))

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.config.time_limit_seconds
        if self.config.num_workers > 0:
            solver.parameters.num_workers = self.config.num_workers

        status = solver.Solve(model)

        status_map = {
            cp_model.OPTIMAL: "OPTIMAL",
            cp_model.FEASIBLE: "FEASIBLE",
            cp_model.INFEASIBLE: "INFEASIBLE",
            cp_model.MODEL_INVALID: "MODEL_INVALID",
            cp_model.UNKNOWN: "UNKNOWN",
        }
        status_str = status_map.get(status, "UNKNOWN")

        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            logger.warning("Auto-fill found no solution (%s)", status_str)
            return AutoAssignResult(status=status_str, solve_time_seconds=solver.WallTime())

        proposals = []
        for slot in slots:
            for staff in roster:
                var = x[staff.user_id].get(slot.id)
                if var is not None and solver.Value(var) == 1:
                    proposals.append(AutoAssignProposal(staff=staff, slot=slot))

        result = AutoAssignResult(
            status=status_str,
            proposals=proposals,
            assigned_minutes=sum(p.slot.duration_minutes for p in proposals),
            solve_time_seconds=solver.WallTime(),
        )
        logger.info(
            "Auto-fill proposed %d breaks (%d min) in %.2fs, status %s",
            len(proposals),
            result.assigned_minutes,
            result.solve_time_seconds,
            status_str,
        )
        return result
