"""Tests for break allowance policies."""

from breakplanner.domain.models import BreakCategory, ShiftType
from breakplanner.domain.policies import DefaultBreakAllowancePolicy


class TestDefaultBreakAllowancePolicy:
    """Tests for DefaultBreakAllowancePolicy."""

    def test_default_limit_is_sixty(self):
        """Every shift allows 60 minutes by default."""
        policy = DefaultBreakAllowancePolicy()
        for shift in ShiftType:
            assert policy.max_total_minutes(shift) == 60

    def test_custom_limit(self):
        """The limit can be configured."""
        policy = DefaultBreakAllowancePolicy(max_minutes=90)
        assert policy.max_total_minutes(ShiftType.NIGHT) == 90

    def test_day_single_use_categories(self):
        """15 and 45 min breaks are single-use on the day shift."""
        policy = DefaultBreakAllowancePolicy()
        assert policy.single_use_categories(ShiftType.DAY) == {
            BreakCategory.FIFTEEN_MIN,
            BreakCategory.FORTY_FIVE_MIN,
        }

    def test_no_single_use_outside_day(self):
        """Afternoon and night shifts only use the minute limit."""
        policy = DefaultBreakAllowancePolicy()
        assert policy.single_use_categories(ShiftType.NIGHT) == set()
        assert policy.single_use_categories(ShiftType.AFTERNOON) == set()

    def test_returned_set_is_a_copy(self):
        """Changing the returned set does not change the policy."""
        policy = DefaultBreakAllowancePolicy()
        policy.single_use_categories(ShiftType.DAY).clear()
        assert len(policy.single_use_categories(ShiftType.DAY)) == 2
