"""Validation of a scope's break assignments.

This module is the single place that checks a set of assignments against
the catalog and the break allowance policy. The committer uses it to decide
which assignments cannot be saved; the CLI uses it to report problems.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from breakplanner.domain.models import (
    Assignment,
    BreakCategory,
    SchedulingScope,
    SlotDefinition,
)
from breakplanner.domain.policies import BreakAllowancePolicy, DefaultBreakAllowancePolicy


class ValidationErrorType(Enum):
    """Types of validation errors."""

    UNRESOLVABLE_SLOT = "unresolvable_slot"
    MISSING_FIELD = "missing_field"
    SCOPE_MISMATCH = "scope_mismatch"
    DUPLICATE_ASSIGNMENT = "duplicate_assignment"
    DUPLICATE_CATEGORY = "duplicate_category"
    BREAK_LIMIT_EXCEEDED = "break_limit_exceeded"


# Errors that make an assignment impossible to store
BLOCKING_ERRORS = {
    ValidationErrorType.UNRESOLVABLE_SLOT,
    ValidationErrorType.MISSING_FIELD,
    ValidationErrorType.SCOPE_MISMATCH,
}


@dataclass
class ValidationError:
    """A single validation error."""

    error_type: ValidationErrorType
    message: str
    assignment_id: Optional[str] = None
    user_id: Optional[str] = None
    details: dict = field(default_factory=dict)

    @property
    def is_blocking(self) -> bool:
        return self.error_type in BLOCKING_ERRORS

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.user_id:
            parts.append(f"Staff {self.user_id}:")
        parts.append(self.message)
        if self.assignment_id:
            parts.append(f"(assignment {self.assignment_id})")
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating a scope's assignments."""

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)

    def blocking_assignment_ids(self) -> set[str]:
        """Ids of assignments that cannot be stored."""
        return {e.assignment_id for e in self.errors if e.is_blocking and e.assignment_id}


class LedgerValidator:
    """Validates assignments against a catalog and allowance policy.

    Example:
        >>> validator = LedgerValidator()
        >>> result = validator.validate(scope, ledger.catalog, ledger.assignments)
        >>> for error in result.errors:
        ...     print(error)
    """

    def __init__(self, policy: Optional[BreakAllowancePolicy] = None):
        self.policy = policy or DefaultBreakAllowancePolicy()

    def validate(
        self,
        scope: SchedulingScope,
        catalog: Iterable[SlotDefinition],
        assignments: Iterable[Assignment],
    ) -> ValidationResult:
        result = ValidationResult(is_valid=True)
        slots = {slot.id: slot for slot in catalog}
        assignments = list(assignments)

        resolved: list[tuple[Assignment, SlotDefinition]] = []
        for assignment in assignments:
            slot = self._validate_assignment(assignment, scope, slots, result)
            if slot is not None:
                resolved.append((assignment, slot))

        self._validate_staff_limits(scope, resolved, result)
        self._validate_capacity(resolved, slots, result)
        return result

    def _validate_assignment(
        self,
        assignment: Assignment,
        scope: SchedulingScope,
        slots: dict[str, SlotDefinition],
        result: ValidationResult,
    ) -> Optional[SlotDefinition]:
        """Check one assignment; returns its slot when it resolves."""
        missing = [
            name
            for name, value in (
                ("user_id", assignment.user_id),
                ("date", assignment.date),
                ("shift_type", assignment.shift_type),
            )
            if not value
        ]
        if missing:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.MISSING_FIELD,
                    message=f"Missing {', '.join(missing)}",
                    assignment_id=assignment.id,
                    user_id=assignment.user_id or None,
                )
            )
            return None

        if assignment.date != scope.date or assignment.shift_type != scope.shift_type:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.SCOPE_MISMATCH,
                    message=(
                        f"Assignment is for {assignment.date} {assignment.shift_type.value}, "
                        f"not {scope.date} {scope.shift_type.value}"
                    ),
                    assignment_id=assignment.id,
                    user_id=assignment.user_id,
                )
            )
            return None

        if (
            scope.has_concrete_location
            and assignment.location is not None
            and assignment.location != scope.location
        ):
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.SCOPE_MISMATCH,
                    message=f"Assignment is at {assignment.location}, not {scope.location}",
                    assignment_id=assignment.id,
                    user_id=assignment.user_id,
                )
            )
            return None

        slot = slots.get(assignment.slot_id) if assignment.slot_id else None
        if slot is None:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.UNRESOLVABLE_SLOT,
                    message=(
                        f"Slot {assignment.slot_id or '(none)'} for "
                        f"{assignment.user_name or assignment.user_id} no longer exists"
                    ),
                    assignment_id=assignment.id,
                    user_id=assignment.user_id,
                    details={
                        "start_time": assignment.start_time,
                        "duration_minutes": assignment.duration_minutes,
                    },
                )
            )
        return slot

    def _validate_staff_limits(
        self,
        scope: SchedulingScope,
        resolved: list[tuple[Assignment, SlotDefinition]],
        result: ValidationResult,
    ) -> None:
        """Check per-person totals, categories and duplicates."""
        shift_type = scope.shift_type
        limit = self.policy.max_total_minutes(shift_type)
        single_use = self.policy.single_use_categories(shift_type)

        by_user: dict[str, list[tuple[Assignment, SlotDefinition]]] = defaultdict(list)
        for assignment, slot in resolved:
            by_user[assignment.user_id].append((assignment, slot))

        for user_id, held in by_user.items():
            slot_counts = Counter(slot.id for _, slot in held)
            for slot_id, count in slot_counts.items():
                if count > 1:
                    result.add_error(
                        ValidationError(
                            error_type=ValidationErrorType.DUPLICATE_ASSIGNMENT,
                            message=f"Assigned {count} times to slot {slot_id}",
                            user_id=user_id,
                        )
                    )

            category_counts = Counter(slot.kind.category for _, slot in held)
            for category in single_use:
                if category_counts.get(category, 0) > 1:
                    result.add_error(
                        ValidationError(
                            error_type=ValidationErrorType.DUPLICATE_CATEGORY,
                            message=f"Holds {category_counts[category]} {_category_label(category)} breaks",
                            user_id=user_id,
                        )
                    )

            counted = sum(slot.duration_minutes for _, slot in held)
            if counted > limit:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.BREAK_LIMIT_EXCEEDED,
                        message=f"Break time {counted} min exceeds maximum {limit} min",
                        user_id=user_id,
                        details={"total_minutes": counted, "limit": limit},
                    )
                )

    def _validate_capacity(
        self,
        resolved: list[tuple[Assignment, SlotDefinition]],
        slots: dict[str, SlotDefinition],
        result: ValidationResult,
    ) -> None:
        """Capacity is reported, not enforced."""
        counts = Counter(slot.id for _, slot in resolved)
        for slot_id, count in counts.items():
            slot = slots[slot_id]
            if count > slot.capacity:
                result.add_warning(
                    f"Slot {slot.start_time} ({slot.break_label}) has {count} people "
                    f"for capacity {slot.capacity}"
                )


def _category_label(category: BreakCategory) -> str:
    return {
        BreakCategory.FIFTEEN_MIN: "15 min",
        BreakCategory.FORTY_FIVE_MIN: "45 min",
        BreakCategory.SIXTY_MIN: "60 min",
    }.get(category, "custom")
