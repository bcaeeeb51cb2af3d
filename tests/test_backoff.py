import threading

from bork_activity.backoff import BackoffPolicy, FetchState, RateLimitTracker, sleep_or_cancel


def test_delay_doubles_per_consecutive_429():
    policy = BackoffPolicy(base_delay=3.0, max_attempts=5)

    assert [policy.delay_for(n) for n in range(1, 5)] == [3.0, 6.0, 12.0, 24.0]
    assert policy.delay_for(0) == 0.0


def test_policy_fails_on_the_fifth_consecutive_429():
    policy = BackoffPolicy(base_delay=1.0, max_attempts=5)

    assert [policy.next_state(n) for n in range(1, 6)] == [FetchState.BACKOFF] * 4 + [FetchState.FAILED]


def test_tracker_walks_fetching_backoff_done():
    tracker = RateLimitTracker(BackoffPolicy(base_delay=2.0, max_attempts=3))

    assert tracker.state == FetchState.FETCHING
    assert tracker.on_rate_limited() == FetchState.BACKOFF
    assert tracker.current_delay == 2.0
    assert tracker.resume() == FetchState.FETCHING
    assert tracker.on_rate_limited() == FetchState.BACKOFF
    assert tracker.current_delay == 4.0
    assert tracker.resume() == FetchState.FETCHING
    assert tracker.on_success() == FetchState.DONE
    assert tracker.consecutive_429s == 0


def test_tracker_fails_when_limit_is_reached():
    tracker = RateLimitTracker(BackoffPolicy(base_delay=0.0, max_attempts=2))

    tracker.on_rate_limited()
    tracker.resume()

    assert tracker.on_rate_limited() == FetchState.FAILED
    assert tracker.consecutive_429s == 2


def test_sleep_or_cancel_returns_early_when_cancelled():
    event = threading.Event()
    event.set()

    assert sleep_or_cancel(60, event) is True


def test_sleep_or_cancel_without_event():
    assert sleep_or_cancel(0) is False
    assert sleep_or_cancel(0, threading.Event()) is False
