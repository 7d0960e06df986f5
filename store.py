import enum
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import settings

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Challenge:
    id: str
    answer: str
    created_at: int


class ConsumeStatus(str, enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    ALREADY_USED = "already_used"


@dataclass
class Consumed:
    status: ConsumeStatus
    answer: Optional[str] = None


class ChallengeStore:
    """Holds pending challenges and hands each one out at most once.

    Any consume() that reaches a stored challenge removes it, whether or not the
    caller's answer turns out to be right. Removed ids are kept as tombstones:
    within the TTL a replay is reported as already used, and for one more TTL
    after that as expired, however the challenge left the active map.

    Expiry is checked lazily on every access; purge_expired() (called on create
    and by the optional sweeper thread) only keeps memory bounded.
    """

    def __init__(self, ttl_ms: int = settings.CHALLENGE_TTL_MS, clock: Callable[[], int] = now_ms):
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self._ttl = int(ttl_ms)
        self._clock = clock
        self._lock = threading.Lock()
        self._active: Dict[str, Challenge] = {}
        # challenge_id -> created_at of challenges no longer active
        self._retired: Dict[str, int] = {}
        self._sweeper: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)

    def __contains__(self, challenge_id: object) -> bool:
        with self._lock:
            return challenge_id in self._active

    def _new_id(self) -> str:
        while True:
            challenge_id = secrets.token_urlsafe(16)
            if challenge_id not in self._active and challenge_id not in self._retired:
                return challenge_id

    def create(self, answer: str) -> str:
        self.purge_expired()
        with self._lock:
            challenge_id = self._new_id()
            self._active[challenge_id] = Challenge(
                id=challenge_id,
                answer=answer,
                created_at=self._clock(),
            )
        return challenge_id

    def _expired(self, created_at: int, now: int) -> bool:
        return now - created_at > self._ttl

    def _forgotten(self, created_at: int, now: int) -> bool:
        return now - created_at > 2 * self._ttl

    def is_spent(self, challenge_id: str) -> bool:
        with self._lock:
            created_at = self._retired.get(challenge_id)
            return created_at is not None and not self._expired(created_at, self._clock())

    def consume(self, challenge_id: str) -> Consumed:
        now = self._clock()
        with self._lock:
            challenge = self._active.pop(challenge_id, None)
            if challenge is None:
                created_at = self._retired.get(challenge_id)
                if created_at is None or self._forgotten(created_at, now):
                    return Consumed(ConsumeStatus.NOT_FOUND)
                if self._expired(created_at, now):
                    return Consumed(ConsumeStatus.EXPIRED)
                return Consumed(ConsumeStatus.ALREADY_USED)

            self._retired[challenge_id] = challenge.created_at
            if self._expired(challenge.created_at, now):
                return Consumed(ConsumeStatus.EXPIRED)
            return Consumed(ConsumeStatus.FOUND, answer=challenge.answer)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [cid for cid, ch in self._active.items() if self._expired(ch.created_at, now)]
            for cid in stale:
                self._retired[cid] = self._active.pop(cid).created_at
            for cid in [cid for cid, created in self._retired.items() if self._forgotten(created, now)]:
                del self._retired[cid]
        if stale:
            logger.debug("Purged %d expired challenges", len(stale))
        return len(stale)

    def start_sweeper(self, interval_s: float) -> None:
        if self._sweeper is not None:
            return
        self._stop.clear()

        def _run():
            while not self._stop.wait(interval_s):
                self.purge_expired()

        self._sweeper = threading.Thread(target=_run, name="challenge-sweeper", daemon=True)
        self._sweeper.start()
        logger.info("Challenge sweeper started (every %.1fs)", interval_s)

    def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._stop.set()
        self._sweeper.join()
        self._sweeper = None
