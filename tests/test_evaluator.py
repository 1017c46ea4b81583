"""Tests for the multi-tier admission step."""

import pytest

from bucketgate.limiter import Rate
from bucketgate.limiter.evaluator import Evaluation, TierState, drain_time, evaluate, tier_field


class TestEvaluate:
    """Test the admission step on a single evaluation."""

    def test_empty_state_admits(self):
        result = evaluate(1.0, [Rate(0.5, 9)], [None], now=10.0)
        assert result.allow is True
        assert result.value == 8.0
        assert result.index == 0
        assert result.committed == [TierState(level=1.0, last_update=10.0)]

    def test_level_drains_with_elapsed_time(self):
        state = TierState(level=5.0, last_update=10.0)
        result = evaluate(1.0, [Rate(0.5, 9)], [state], now=14.0)
        # 5 - 0.5 * 4 + 1
        assert result.committed[0].level == 4.0
        assert result.value == 5.0

    def test_level_never_negative(self):
        state = TierState(level=1.0, last_update=0.0)
        result = evaluate(1.0, [Rate(0.5, 9)], [state], now=100.0)
        assert result.committed[0].level == 1.0

    def test_backward_clock_does_not_raise_level(self):
        """A clock stepping back counts as no elapsed time."""
        state = TierState(level=5.0, last_update=20.0)
        result = evaluate(1.0, [Rate(0.5, 9)], [state], now=10.0)
        assert result.committed[0].level == 6.0
        assert result.committed[0].last_update == 10.0

    def test_exactly_at_burst_admits(self):
        state = TierState(level=8.0, last_update=0.0)
        result = evaluate(1.0, [Rate(0.5, 9)], [state], now=0.0)
        assert result.allow is True
        assert result.value == 0.0

    def test_over_burst_denies_without_commit(self):
        state = TierState(level=9.0, last_update=0.0)
        result = evaluate(1.0, [Rate(0.5, 9)], [state], now=1.0)
        assert result.allow is False
        assert result.value == 0.5
        assert result.index == 1
        assert result.committed is None

    def test_free_is_tightest_tier(self):
        rates = [Rate(0.25, 18), Rate(0.5, 9)]
        states = [TierState(2.0, 0.0), TierState(6.0, 0.0)]
        result = evaluate(1.0, rates, states, now=0.0)
        assert result.allow is True
        # min(18 - 3, 9 - 7)
        assert result.value == 2.0

    def test_admission_commits_every_tier(self):
        rates = [Rate(0.25, 18), Rate(0.5, 9)]
        result = evaluate(2.0, rates, [None, None], now=3.0)
        assert result.committed == [TierState(2.0, 3.0), TierState(2.0, 3.0)]

    def test_controlling_tier_has_longest_wait(self):
        """The tier needing the most drain time controls, not the largest excess."""
        rates = [Rate(0.25, 18), Rate(0.5, 9)]
        # slow: 18.75 - 18 = 0.75 over, 3s; fast: 9.5 - 9 = 0.5 over, 1s
        states = [TierState(18.0, 0.0), TierState(9.0, 0.0)]
        result = evaluate(1.0, rates, states, now=1.0)
        assert result.allow is False
        assert result.index == 1
        assert result.value == 0.75

    def test_faster_tier_controls_when_its_wait_is_longer(self):
        rates = [Rate(0.25, 18), Rate(0.5, 9)]
        # slow: 0.25 over, 1s; fast: 1.5 over, 3s
        states = [TierState(17.5, 0.0), TierState(10.0, 0.0)]
        result = evaluate(1.0, rates, states, now=1.0)
        assert result.index == 2
        assert result.value == 1.5

    def test_equal_waits_go_to_lowest_index(self):
        rates = [Rate(0.5, 10), Rate(1.0, 5)]
        # slow: 0.5 over, 1s; fast: 1 over, 1s
        states = [TierState(10.0, 0.0), TierState(6.0, 0.0)]
        result = evaluate(1.0, rates, states, now=1.0)
        assert result.index == 1
        assert result.value == 0.5

    def test_cost_larger_than_burst_always_denied(self):
        result = evaluate(10.0, [Rate(1.0, 5)], [None], now=0.0)
        assert result.allow is False
        assert result.value == 5.0


class TestEvaluationReply:
    """Test encoding into the script reply shape."""

    def test_admitted_reply(self):
        assert Evaluation(allow=True, value=7.5).to_reply() == [1, "7.5", 0]

    def test_denied_reply(self):
        assert Evaluation(allow=False, value=0.25, index=2).to_reply() == [0, "0.25", 2]

    def test_reply_round_trips_float(self):
        value = 1 / 3
        assert float(Evaluation(allow=True, value=value).to_reply()[1]) == value


class TestHelpers:
    """Test state naming and drain time."""

    def test_tier_field(self):
        assert tier_field(Rate(0.5, 9.0)) == "0.5:9.0"

    def test_drain_time_is_slowest_tier(self):
        rates = [Rate(0.25, 18), Rate(0.5, 9)]
        states = [TierState(4.0, 0.0), TierState(4.0, 0.0)]
        assert drain_time(rates, states) == pytest.approx(16.0)
