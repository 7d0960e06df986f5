import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

import settings
from mathcap import MathCap
from quota import Eligibility, EligibilityStatus, QuotaTracker
from store import ChallengeStore, ConsumeStatus

logger = logging.getLogger(__name__)

MSG_COOLDOWN = "Please wait before solving another captcha"
MSG_EXPIRED = "Captcha expired. Please get a new one."
MSG_ALREADY_USED = "Captcha already used. Get a new one."
MSG_WRONG = "Wrong answer! Try a new captcha."


class Outcome(str, enum.Enum):
    OK = "ok"
    DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
    COOLDOWN_ACTIVE = "cooldown_active"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ALREADY_USED = "already_used"
    WRONG_ANSWER = "wrong_answer"


_CONSUME_OUTCOMES = {
    ConsumeStatus.NOT_FOUND: (Outcome.NOT_FOUND, MSG_EXPIRED),
    ConsumeStatus.EXPIRED: (Outcome.EXPIRED, MSG_EXPIRED),
    ConsumeStatus.ALREADY_USED: (Outcome.ALREADY_USED, MSG_ALREADY_USED),
}


@dataclass
class IssueResult:
    outcome: Outcome
    id: Optional[str] = None
    image: Optional[str] = None
    remaining: Optional[int] = None
    error: Optional[str] = None
    cooldown_ms: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"id": self.id, "imageHtml": self.image, "remaining": self.remaining}
        body: Dict[str, Any] = {"error": self.error}
        if self.cooldown_ms is not None:
            body["cooldownMs"] = self.cooldown_ms
        return body


@dataclass
class VerifyResult:
    outcome: Outcome
    credits: int = 0
    remaining: Optional[int] = None
    error: Optional[str] = None
    cooldown_ms: Optional[int] = None

    @property
    def success(self) -> bool:
        return self.outcome is Outcome.OK

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "credits": self.credits, "remaining": self.remaining}
        body: Dict[str, Any] = {"success": False, "error": self.error}
        if self.cooldown_ms is not None:
            body["cooldownMs"] = self.cooldown_ms
        return body


@dataclass
class Status:
    solved_today: int
    limit: int
    remaining: int
    cooldown_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "solvedToday": self.solved_today,
            "limit": self.limit,
            "remaining": self.remaining,
            "cooldownMs": self.cooldown_ms,
        }


class CaptchaGate:
    """Issues arithmetic captchas and pays out for correct answers.

    Quota failures and challenge failures are returned as results, never
    raised. A challenge is not tied to the user who requested it: verify
    checks the quota of whichever user_id the caller supplies.
    """

    def __init__(
        self,
        store: Optional[ChallengeStore] = None,
        quota: Optional[QuotaTracker] = None,
        cap: Optional[MathCap] = None,
        credits_per_solve: int = settings.CREDITS_PER_SOLVE,
    ):
        self.store = store if store is not None else ChallengeStore()
        self.quota = quota if quota is not None else QuotaTracker()
        self.cap = cap if cap is not None else MathCap()
        self.credits_per_solve = credits_per_solve
        self._verify_lock = threading.Lock()

    def _limit_message(self, issuing: bool) -> str:
        msg = f"Daily limit reached ({self.quota.daily_limit}/day)"
        return msg + ". Come back tomorrow!" if issuing else msg

    def issue_challenge(self, user_id: str) -> IssueResult:
        elig = self.quota.check_eligible(user_id)
        if elig.status is EligibilityStatus.DAILY_LIMIT_EXCEEDED:
            logger.info("Issue refused for %s: daily limit", user_id)
            return IssueResult(Outcome.DAILY_LIMIT_EXCEEDED, error=self._limit_message(True))
        if elig.status is EligibilityStatus.COOLDOWN_ACTIVE:
            return IssueResult(Outcome.COOLDOWN_ACTIVE, error=MSG_COOLDOWN, cooldown_ms=elig.cooldown_ms)

        puzzle, image = self.cap.issue()
        challenge_id = self.store.create(puzzle.answer)
        logger.debug("Issued challenge %s to %s", challenge_id, user_id)
        return IssueResult(
            Outcome.OK,
            id=challenge_id,
            image=image,
            remaining=self.quota.daily_limit - elig.solved_today,
        )

    def _refused(self, elig: Eligibility) -> VerifyResult:
        if elig.status is EligibilityStatus.DAILY_LIMIT_EXCEEDED:
            return VerifyResult(Outcome.DAILY_LIMIT_EXCEEDED, error=self._limit_message(False))
        return VerifyResult(Outcome.COOLDOWN_ACTIVE, error=MSG_COOLDOWN, cooldown_ms=elig.cooldown_ms)

    def verify_challenge(self, user_id: str, challenge_id: str, answer: Optional[str]) -> VerifyResult:
        with self._verify_lock:
            if self.store.is_spent(challenge_id):
                return VerifyResult(Outcome.ALREADY_USED, error=MSG_ALREADY_USED)

            elig = self.quota.check_eligible(user_id)
            if not elig.allowed:
                logger.info("Verify refused for %s: %s", user_id, elig.status.value)
                return self._refused(elig)

            consumed = self.store.consume(challenge_id)
            if consumed.status is not ConsumeStatus.FOUND:
                outcome, msg = _CONSUME_OUTCOMES[consumed.status]
                return VerifyResult(outcome, error=msg)

            if answer is None or answer.strip() != consumed.answer:
                logger.info("Wrong answer from %s for %s", user_id, challenge_id)
                return VerifyResult(Outcome.WRONG_ANSWER, error=MSG_WRONG)

            state = self.quota.record_solve(user_id)
        logger.info("Challenge solved by %s (%d today)", user_id, state.solved_today)
        return VerifyResult(
            Outcome.OK,
            credits=self.credits_per_solve,
            remaining=self.quota.daily_limit - state.solved_today,
        )

    def get_status(self, user_id: str) -> Status:
        solved, cooldown = self.quota.snapshot(user_id)
        limit = self.quota.daily_limit
        return Status(solved_today=solved, limit=limit, remaining=limit - solved, cooldown_ms=cooldown)
