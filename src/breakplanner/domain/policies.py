"""Policy definitions for break allowance rules.

Policies hold the business limits (total break minutes per shift, which
break categories are single-use on which shifts) separately from the
evaluator so they can be tested and swapped independently.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from breakplanner.domain.models import BreakCategory, ShiftType


class BreakAllowancePolicy(ABC):
    """Abstract base class for per-shift break allowances."""

    @abstractmethod
    def max_total_minutes(self, shift_type: ShiftType) -> int:
        """Maximum break minutes one person may hold in a shift."""
        pass

    @abstractmethod
    def single_use_categories(self, shift_type: ShiftType) -> set[BreakCategory]:
        """Break categories a person may hold at most once in a shift.

        A slot in one of these categories is gated only by whether the
        person already holds that category, not by the total minutes.
        """
        pass


@dataclass
class DefaultBreakAllowancePolicy(BreakAllowancePolicy):
    """Default break allowance.

    - Every shift: at most 60 break minutes per person.
    - Day shift: one 15 min break and one 45 min break; any other duration
      must fit in the remaining total.
    """

    max_minutes: int = 60
    day_single_use: set[BreakCategory] = field(
        default_factory=lambda: {
            BreakCategory.FIFTEEN_MIN,
            BreakCategory.FORTY_FIVE_MIN,
        }
    )

    def max_total_minutes(self, shift_type: ShiftType) -> int:
        return self.max_minutes

    def single_use_categories(self, shift_type: ShiftType) -> set[BreakCategory]:
        if shift_type == ShiftType.DAY:
            return set(self.day_single_use)
        return set()
