"""Exceptions raised by the break planner.

Eligibility refusals are not exceptions; they are returned as
EligibilityDecision values.
"""


class BreakPlannerError(Exception):
    """Base class for all break planner errors."""


class ScopeValidationError(BreakPlannerError):
    """Input rejected before any write (no location, missing fields, bad edit)."""


class DuplicateSlotError(ScopeValidationError):
    """Another slot already starts at the same time."""

    def __init__(self, start_time: str):
        self.start_time = start_time
        super().__init__(
            f"A slot starting at {start_time} already exists. "
            "Edit the existing slot instead."
        )


class SlotNotFoundError(BreakPlannerError):
    """A slot id does not resolve in the current catalog."""

    def __init__(self, slot_id: str):
        self.slot_id = slot_id
        super().__init__(f"Could not find slot with ID {slot_id}.")


class AssignmentNotFoundError(BreakPlannerError):
    """An assignment id is not in the ledger."""

    def __init__(self, assignment_id: str):
        self.assignment_id = assignment_id
        super().__init__(f"Could not find assignment with ID {assignment_id}.")


class AuthorizationError(BreakPlannerError):
    """The actor may not perform this mutation."""


class StoreError(BreakPlannerError):
    """The authoritative store failed to read or write."""


class SnapshotCorruptError(BreakPlannerError):
    """A staging snapshot could not be parsed."""
