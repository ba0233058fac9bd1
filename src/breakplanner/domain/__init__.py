"""Domain models and business rules for break planning."""

from breakplanner.domain.clock import Clock, FixedClock, SystemClock
from breakplanner.domain.models import (
    ALL_LOCATIONS,
    Actor,
    Assignment,
    BreakCategory,
    BreakKind,
    SchedulingScope,
    ScopeKey,
    ShiftType,
    SlotDefinition,
    SlotOrigin,
    StaffEligibility,
    StaffMember,
)
from breakplanner.domain.policies import BreakAllowancePolicy, DefaultBreakAllowancePolicy
from breakplanner.domain.templates import (
    SHIFT_WINDOWS,
    STANDARD_TEMPLATES,
    SlotTemplate,
    break_code_for_label,
    template_slots,
)

__all__ = [
    # Models
    "ALL_LOCATIONS",
    "Actor",
    "Assignment",
    "BreakCategory",
    "BreakKind",
    "SchedulingScope",
    "ScopeKey",
    "ShiftType",
    "SlotDefinition",
    "SlotOrigin",
    "StaffEligibility",
    "StaffMember",
    # Policies
    "BreakAllowancePolicy",
    "DefaultBreakAllowancePolicy",
    # Templates
    "SHIFT_WINDOWS",
    "STANDARD_TEMPLATES",
    "SlotTemplate",
    "break_code_for_label",
    "template_slots",
    # Time
    "Clock",
    "FixedClock",
    "SystemClock",
]
