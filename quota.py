import enum
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

import settings
from store import now_ms


def day_key(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).date().isoformat()


class EligibilityStatus(str, enum.Enum):
    ALLOWED = "allowed"
    DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
    COOLDOWN_ACTIVE = "cooldown_active"


@dataclass
class Eligibility:
    status: EligibilityStatus
    solved_today: int
    cooldown_ms: int = 0

    @property
    def allowed(self) -> bool:
        return self.status is EligibilityStatus.ALLOWED


@dataclass
class UserQuotaState:
    user_id: str
    solved_today: int = 0
    last_solve_date: str = ""
    last_solve_time: Optional[int] = None


class QuotaTracker:
    """Per-user daily solve ceiling plus a minimum gap between solves.

    The daily counter rolls over lazily: a state whose last_solve_date is not
    today reads as zero solves, and is only rewritten by record_solve().
    """

    def __init__(
        self,
        daily_limit: int = settings.DAILY_LIMIT,
        cooldown_ms: int = settings.COOLDOWN_MS,
        clock: Callable[[], int] = now_ms,
    ):
        if daily_limit < 1:
            raise ValueError("daily_limit must be at least 1")
        if cooldown_ms < 0:
            raise ValueError("cooldown_ms must not be negative")
        self.daily_limit = int(daily_limit)
        self.cooldown_ms = int(cooldown_ms)
        self._clock = clock
        self._lock = threading.Lock()
        self._states: Dict[str, UserQuotaState] = {}

    def _solved_today(self, state: Optional[UserQuotaState], today: str) -> int:
        if state is None or state.last_solve_date != today:
            return 0
        return state.solved_today

    def _cooldown_left(self, state: Optional[UserQuotaState], now: int) -> int:
        if state is None or state.last_solve_time is None:
            return 0
        elapsed = now - state.last_solve_time
        if elapsed < self.cooldown_ms:
            return self.cooldown_ms - elapsed
        return 0

    def snapshot(self, user_id: str) -> Tuple[int, int]:
        """Return (solved_today, cooldown_ms) as of now."""
        now = self._clock()
        with self._lock:
            state = self._states.get(user_id)
            return self._solved_today(state, day_key(now)), self._cooldown_left(state, now)

    def check_eligible(self, user_id: str) -> Eligibility:
        solved, cooldown = self.snapshot(user_id)
        if solved >= self.daily_limit:
            return Eligibility(EligibilityStatus.DAILY_LIMIT_EXCEEDED, solved)
        if cooldown > 0:
            return Eligibility(EligibilityStatus.COOLDOWN_ACTIVE, solved, cooldown_ms=cooldown)
        return Eligibility(EligibilityStatus.ALLOWED, solved)

    def record_solve(self, user_id: str) -> UserQuotaState:
        now = self._clock()
        today = day_key(now)
        with self._lock:
            state = self._states.get(user_id)
            if state is None:
                state = self._states[user_id] = UserQuotaState(user_id=user_id)
            state.solved_today = self._solved_today(state, today) + 1
            state.last_solve_date = today
            state.last_solve_time = now
            return UserQuotaState(**vars(state))
