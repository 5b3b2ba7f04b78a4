"""Login lockout counter.

Failed attempts are tracked per login screen lifetime, never persisted.
The state is an immutable value owned by the caller: pass the current
state in, keep the one that comes back.

    Active(n) --failure--> Active(n+1)   if n + 1 < max_attempts
    Active(n) --failure--> LockedOut     if n + 1 >= max_attempts
    any       --success--> Active(0)
    any       --email changed--> Active(0)

LockedOut only accepts an email change; the login flow rejects submits
in that state without checking credentials.
"""
from dataclasses import dataclass
from enum import Enum

from config import MAX_FAILED_ATTEMPTS


class LockoutEvent(Enum):
    """Inputs to the lockout state machine."""
    FAILURE = "failure"
    SUCCESS = "success"
    EMAIL_CHANGED = "email_changed"


@dataclass(frozen=True)
class LockoutState:
    """Snapshot of the lockout counter."""
    failed_attempts: int = 0
    is_locked_out: bool = False
    max_attempts: int = MAX_FAILED_ATTEMPTS

    @classmethod
    def initial(cls, max_attempts: int = MAX_FAILED_ATTEMPTS) -> "LockoutState":
        return cls(failed_attempts=0, is_locked_out=False, max_attempts=max_attempts)

    @property
    def remaining_attempts(self) -> int:
        if self.is_locked_out:
            return 0
        return max(0, self.max_attempts - self.failed_attempts)

    def record_failure(self) -> "LockoutState":
        if self.is_locked_out:
            return self
        attempts = self.failed_attempts + 1
        return LockoutState(
            failed_attempts=attempts,
            is_locked_out=attempts >= self.max_attempts,
            max_attempts=self.max_attempts,
        )

    def record_success(self) -> "LockoutState":
        return LockoutState.initial(self.max_attempts)

    def email_changed(self) -> "LockoutState":
        # TODO: key the counter by normalized email so editing the field
        # can't be used to clear a lockout
        return LockoutState.initial(self.max_attempts)


def transition(state: LockoutState, event: LockoutEvent) -> LockoutState:
    """Apply one event to a lockout state."""
    if event is LockoutEvent.FAILURE:
        return state.record_failure()
    if event is LockoutEvent.SUCCESS:
        return state.record_success()
    if event is LockoutEvent.EMAIL_CHANGED:
        return state.email_changed()
    raise ValueError(f"Unknown lockout event: {event}")
