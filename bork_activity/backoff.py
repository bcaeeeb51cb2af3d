"""Rate-limit backoff policy, request state machine and cancellable waits"""
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FetchState(str, Enum):
    """States of a single page request

    FETCHING -> BACKOFF(n) -> FETCHING while n stays under the limit,
    FETCHING -> DONE on a 2xx, FAILED on any other terminal outcome.
    """
    FETCHING = "fetching"
    BACKOFF = "backoff"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff over consecutive 429 responses"""
    base_delay: float = 3.0
    max_attempts: int = 5

    def delay_for(self, consecutive_429s: int) -> float:
        """Delay before retrying after the n-th consecutive 429 (n >= 1)"""
        if consecutive_429s < 1:
            return 0.0
        return self.base_delay * 2 ** (consecutive_429s - 1)

    def exhausted(self, consecutive_429s: int) -> bool:
        return consecutive_429s >= self.max_attempts

    def next_state(self, consecutive_429s: int) -> FetchState:
        """State after a 429 has brought the streak to consecutive_429s"""
        if self.exhausted(consecutive_429s):
            return FetchState.FAILED
        return FetchState.BACKOFF


@dataclass
class RateLimitTracker:
    """Consecutive 429 bookkeeping for one request, driven by BackoffPolicy"""
    policy: BackoffPolicy
    consecutive_429s: int = 0
    state: FetchState = FetchState.FETCHING

    def on_rate_limited(self) -> FetchState:
        self.consecutive_429s += 1
        self.state = self.policy.next_state(self.consecutive_429s)
        return self.state

    def on_success(self) -> FetchState:
        self.consecutive_429s = 0
        self.state = FetchState.DONE
        return self.state

    def on_failure(self) -> FetchState:
        self.state = FetchState.FAILED
        return self.state

    def resume(self) -> FetchState:
        """Leave BACKOFF once the delay has elapsed"""
        self.state = FetchState.FETCHING
        return self.state

    @property
    def current_delay(self) -> float:
        return self.policy.delay_for(self.consecutive_429s)


def sleep_or_cancel(seconds: float, cancel_event: Optional[threading.Event] = None) -> bool:
    """Sleep for the given delay; return True if cancelled before it elapsed"""
    if cancel_event is None:
        if seconds > 0:
            time.sleep(seconds)
        return False
    if seconds <= 0:
        return cancel_event.is_set()
    return cancel_event.wait(seconds)
