"""
Shared pytest fixtures: a controllable clock, seeded randomness and a gate
wired to both so tests can read back the answer of every issued puzzle.
"""

import random

import pytest

from gate import CaptchaGate
from mathcap import MathCap
from quota import QuotaTracker
from store import ChallengeStore
from tests.helpers import T0


class FakeClock:
    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingCap(MathCap):
    """MathCap that keeps every puzzle it hands out."""

    def __init__(self, rng=None):
        super().__init__(rng)
        self.issued = []

    def issue(self):
        puzzle, image = super().issue()
        self.issued.append(puzzle)
        return puzzle, image

    @property
    def last_answer(self) -> str:
        return self.issued[-1].answer


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def store(clock):
    return ChallengeStore(ttl_ms=5 * 60 * 1000, clock=clock)


@pytest.fixture
def quota(clock):
    return QuotaTracker(daily_limit=10, cooldown_ms=30_000, clock=clock)


@pytest.fixture
def cap(rng):
    return RecordingCap(rng)


@pytest.fixture
def gate(store, quota, cap):
    return CaptchaGate(store=store, quota=quota, cap=cap, credits_per_solve=1)
