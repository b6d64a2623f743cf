"""Tests for idea_hunter.services.retry."""
import pytest

from idea_hunter.services.retry import RetryPolicy, attempt


class Transient(Exception):
    pass


class Quota(Exception):
    pass


def scripted(*outcomes):
    """Callable returning/raising the outcomes in order, counting calls."""
    state = {"calls": 0}
    outcomes = list(outcomes)

    def fn():
        state["calls"] += 1
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    return fn, state


def run(fn, policy=None):
    sleeps = []
    result = attempt(
        fn,
        policy or RetryPolicy(),
        is_retryable=lambda e: isinstance(e, Transient),
        is_quota_error=lambda e: isinstance(e, Quota),
        sleep=sleeps.append,
    )
    return result, sleeps


class TestRetryPolicy:
    def test_delay_doubles_until_cap(self):
        policy = RetryPolicy(initial_delay=1.0, max_delay=5.0)
        assert [policy.delay_for(n) for n in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_needs_at_least_one_attempt(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestAttempt:
    def test_success_first_time(self):
        fn, state = scripted("ok")
        result, sleeps = run(fn)
        assert result.ok and result.value == "ok"
        assert result.attempts == 1
        assert sleeps == []

    def test_retries_with_doubling_delay(self):
        fn, state = scripted(Transient(), Transient(), "ok")
        result, sleeps = run(fn)
        assert result.value == "ok"
        assert sleeps == [1.0, 2.0]
        assert state["calls"] == 3

    def test_exhausted_retries_do_not_sleep_after_last_attempt(self):
        fn, state = scripted(Transient(), Transient(), Transient())
        result, sleeps = run(fn)
        assert not result.ok
        assert result.retries_exhausted
        assert isinstance(result.error, Transient)
        assert sleeps == [1.0, 2.0]

    def test_quota_error_stops_immediately(self):
        fn, state = scripted(Quota(), "never")
        result, sleeps = run(fn)
        assert result.quota_exhausted
        assert not result.retries_exhausted
        assert state["calls"] == 1
        assert sleeps == []

    def test_non_retryable_error_stops_immediately(self):
        fn, state = scripted(KeyError("x"), "never")
        result, sleeps = run(fn)
        assert isinstance(result.error, KeyError)
        assert not result.quota_exhausted and not result.retries_exhausted
        assert state["calls"] == 1

    def test_delay_is_capped(self):
        fn, state = scripted(Transient(), Transient(), Transient(), "ok")
        result, sleeps = run(fn, RetryPolicy(max_attempts=4, initial_delay=10.0, max_delay=15.0))
        assert result.ok
        assert sleeps == [10.0, 15.0, 15.0]
