"""Tests for break eligibility rules."""

from datetime import date

import pytest

from breakplanner.domain.models import (
    Assignment,
    ShiftType,
    SlotDefinition,
    SlotOrigin,
    StaffEligibility,
    StaffMember,
)
from breakplanner.domain.policies import DefaultBreakAllowancePolicy
from breakplanner.scheduling.eligibility import EligibilityEvaluator, StaffStatus

MONDAY = date(2024, 6, 3)


def template(slot_id, start, minutes):
    return SlotDefinition(slot_id, start, minutes, origin=SlotOrigin.TEMPLATE)


def held(user_id, slot, shift=ShiftType.DAY, assignment_id="a1"):
    return Assignment(
        id=assignment_id,
        slot_id=slot.id,
        user_id=user_id,
        user_name=user_id,
        shift_type=shift,
        date=MONDAY,
        location="Rugby",
        start_time=slot.start_time,
        duration_minutes=slot.duration_minutes,
    )


class TestCanAssign:
    """Tests for EligibilityEvaluator.can_assign."""

    @pytest.fixture
    def evaluator(self):
        return EligibilityEvaluator()

    def test_day_fifteen_allowed_once(self, evaluator):
        """A second 15 min break on the day shift is refused."""
        slot = template("std-day-1", "09:15", 15)
        fresh = StaffEligibility("u1")
        assert evaluator.can_assign(fresh, slot, ShiftType.DAY)

        has_one = StaffEligibility("u1", total_assigned_minutes=15, has_fifteen_min_break=True)
        decision = evaluator.can_assign(has_one, slot, ShiftType.DAY)
        assert not decision
        assert decision.reason == "already has a 15 min break"

    def test_day_forty_five_allowed_once(self, evaluator):
        """A second 45 min break on the day shift is refused."""
        slot = template("std-day-6", "12:00", 45)
        has_one = StaffEligibility("u1", total_assigned_minutes=45, has_forty_five_min_break=True)
        decision = evaluator.can_assign(has_one, slot, ShiftType.DAY)
        assert decision.reason == "already has a 45 min break"

    def test_day_fifteen_and_forty_five_together(self, evaluator):
        """Holding a 45 does not block a 15 on the day shift."""
        slot = template("std-day-0", "09:00", 15)
        has_45 = StaffEligibility("u1", total_assigned_minutes=45, has_forty_five_min_break=True)
        assert evaluator.can_assign(has_45, slot, ShiftType.DAY).allowed

    def test_single_use_categories_ignore_total(self, evaluator):
        """Single-use categories are not checked against the total."""
        slot = template("std-day-6", "12:00", 45)
        busy = StaffEligibility("u1", total_assigned_minutes=60)
        assert evaluator.can_assign(busy, slot, ShiftType.DAY)

    def test_night_limit_refuses_second_hour(self, evaluator):
        """A second 60 min night break exceeds the limit."""
        slot = template("std-night-2", "22:00", 60)
        decision = evaluator.can_assign(
            StaffEligibility("u1", total_assigned_minutes=60), slot, ShiftType.NIGHT
        )
        assert not decision
        assert decision.reason == "already has maximum break time (60/60 min)"

    def test_custom_slot_fits_remaining_minutes(self, evaluator):
        """A 30 min custom slot fits beside another 30 minutes."""
        slot = SlotDefinition("7", "03:00", 30)
        assert evaluator.can_assign(
            StaffEligibility("u1", total_assigned_minutes=30), slot, ShiftType.NIGHT
        )
        assert not evaluator.can_assign(
            StaffEligibility("u1", total_assigned_minutes=45), slot, ShiftType.NIGHT
        )

    def test_custom_day_slot_checked_against_total(self, evaluator):
        """Custom day slots fall back to the minute limit."""
        slot = SlotDefinition("7", "11:00", 20)
        assert not evaluator.can_assign(
            StaffEligibility("u1", total_assigned_minutes=45), slot, ShiftType.DAY
        )

    def test_custom_policy_limit(self):
        """The limit comes from the policy."""
        evaluator = EligibilityEvaluator(DefaultBreakAllowancePolicy(max_minutes=120))
        slot = template("std-night-2", "22:00", 60)
        assert evaluator.can_assign(
            StaffEligibility("u1", total_assigned_minutes=60), slot, ShiftType.NIGHT
        )


class TestComputeEligibility:
    """Tests for deriving eligibility from assignments."""

    @pytest.fixture
    def evaluator(self):
        return EligibilityEvaluator()

    def test_sums_minutes_and_flags(self, evaluator):
        """Day shift totals set the category flags."""
        s15 = template("std-day-0", "09:00", 15)
        s45 = template("std-day-6", "12:00", 45)
        assignments = [held("u1", s15, assignment_id="a1"), held("u1", s45, assignment_id="a2")]
        eligibility = evaluator.compute_eligibility("u1", assignments, [s15, s45], ShiftType.DAY)
        assert eligibility.total_assigned_minutes == 60
        assert eligibility.has_fifteen_min_break
        assert eligibility.has_forty_five_min_break

    def test_ignores_other_staff(self, evaluator):
        """Only the given user's assignments count."""
        s15 = template("std-day-0", "09:00", 15)
        eligibility = evaluator.compute_eligibility(
            "u2", [held("u1", s15)], [s15], ShiftType.DAY
        )
        assert eligibility.total_assigned_minutes == 0
        assert not eligibility.has_fifteen_min_break

    def test_night_sets_no_flags(self, evaluator):
        """Category flags are day-shift only."""
        s15 = SlotDefinition("9", "03:00", 15)
        assignment = held("u1", s15, shift=ShiftType.NIGHT)
        eligibility = evaluator.compute_eligibility("u1", [assignment], [s15], ShiftType.NIGHT)
        assert eligibility.total_assigned_minutes == 15
        assert not eligibility.has_fifteen_min_break

    def test_uses_snapshot_when_slot_missing(self, evaluator):
        """An assignment whose slot is gone still counts its minutes."""
        gone = SlotDefinition("9", "03:00", 30)
        eligibility = evaluator.compute_eligibility(
            "u1", [held("u1", gone, shift=ShiftType.NIGHT)], [], ShiftType.NIGHT
        )
        assert eligibility.total_assigned_minutes == 30


class TestEligibleStaff:
    """Tests for the staff offered for a slot."""

    @pytest.fixture
    def evaluator(self):
        return EligibilityEvaluator()

    @pytest.fixture
    def slot(self):
        return template("std-night-1", "21:00", 60)

    @pytest.fixture
    def statuses(self):
        return [
            StaffStatus(StaffMember("u1", "Alice"), StaffEligibility("u1", 60)),
            StaffStatus(StaffMember("u2", "Bob"), StaffEligibility("u2", 0)),
            StaffStatus(StaffMember("u3", "Carol"), StaffEligibility("u3", 0)),
        ]

    def test_filters_by_eligibility(self, evaluator, slot, statuses):
        """Staff at their limit are not offered the slot."""
        offered = evaluator.eligible_staff(statuses, slot, [], ShiftType.NIGHT)
        assert [s.user_id for s in offered] == ["u2", "u3"]

    def test_show_all_skips_limits(self, evaluator, slot, statuses):
        """show_all offers everyone not already on the slot."""
        on_slot = [held("u3", slot, shift=ShiftType.NIGHT)]
        offered = evaluator.eligible_staff(statuses, slot, on_slot, ShiftType.NIGHT, show_all=True)
        assert [s.user_id for s in offered] == ["u1", "u2"]
