"""
Tests for QuotaTracker: daily ceiling, solve cooldown and lazy day rollover.
"""

import pytest

from quota import EligibilityStatus, QuotaTracker, day_key
from tests.helpers import DAY_MS, T0


def solve_n(quota, clock, n):
    for _ in range(n):
        quota.record_solve("u1")
        clock.advance(30_000)


class TestEligibility:
    def test_new_user_is_allowed(self, quota):
        elig = quota.check_eligible("nobody")
        assert elig.status is EligibilityStatus.ALLOWED
        assert elig.solved_today == 0
        assert elig.cooldown_ms == 0

    def test_cooldown_reports_exact_remaining(self, quota, clock):
        quota.record_solve("u1")
        clock.advance(12_345)
        elig = quota.check_eligible("u1")
        assert elig.status is EligibilityStatus.COOLDOWN_ACTIVE
        assert elig.cooldown_ms == 30_000 - 12_345

    def test_cooldown_ends_at_exact_boundary(self, quota, clock):
        quota.record_solve("u1")
        clock.advance(29_999)
        assert quota.check_eligible("u1").cooldown_ms == 1
        clock.advance(1)
        assert quota.check_eligible("u1").allowed

    def test_daily_limit_wins_over_cooldown(self, quota, clock):
        solve_n(quota, clock, 9)
        quota.record_solve("u1")
        elig = quota.check_eligible("u1")
        assert elig.status is EligibilityStatus.DAILY_LIMIT_EXCEEDED
        assert elig.cooldown_ms == 0

    def test_users_are_independent(self, quota):
        quota.record_solve("u1")
        assert quota.check_eligible("u2").allowed


class TestRecordSolve:
    def test_increments_by_one(self, quota, clock):
        state = quota.record_solve("u1")
        assert state.solved_today == 1
        assert state.last_solve_time == T0
        assert state.last_solve_date == day_key(T0)

    def test_returned_state_is_a_copy(self, quota):
        state = quota.record_solve("u1")
        state.solved_today = 99
        assert quota.snapshot("u1")[0] == 1


class TestRollover:
    def test_new_day_reads_as_zero_without_writes(self, quota, clock):
        solve_n(quota, clock, 10)
        assert quota.check_eligible("u1").status is EligibilityStatus.DAILY_LIMIT_EXCEEDED

        clock.advance(DAY_MS)
        assert quota.snapshot("u1") == (0, 0)
        assert quota.check_eligible("u1").allowed

    def test_solve_after_rollover_starts_from_one(self, quota, clock):
        solve_n(quota, clock, 3)
        clock.advance(DAY_MS)
        assert quota.record_solve("u1").solved_today == 1

    def test_day_key_is_utc_date(self):
        assert day_key(T0) == "2026-03-10"


class TestConfig:
    @pytest.mark.parametrize("kwargs", [{"daily_limit": 0}, {"cooldown_ms": -1}])
    def test_rejects_invalid_limits(self, kwargs):
        with pytest.raises(ValueError):
            QuotaTracker(**kwargs)
